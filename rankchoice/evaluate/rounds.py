'''Round-by-round records of a tabulation.

A tabulation result is an ordered sequence of :class:`Round` snapshots.
Each round holds the tallies of the candidates still in contention at the
start of that round, the number (or, for the single transferable vote,
weight) of exhausted ballots so far and the decision taken in the round.
Rounds are immutable once recorded; their tallies are exposed as read-only
mappings.
'''

import types
from fractions import Fraction
from numbers import Number
from typing import Any, Dict, Hashable, List, Mapping, Optional, Sequence, \
    Tuple

from rankchoice.persist import serialize_value, simple_serialization


@simple_serialization
class TieBreak:
    '''A record of a resolved tie.

    :param strategy: Name of the tie-break strategy that resolved the tie.
    :param tied: The candidates that were tied, in declared order.
    :param loser: The candidate that lost the tie (is eliminated, or is
        placed later in the election order).
    '''
    def __init__(self,
                 strategy: str,
                 tied: Sequence[Hashable],
                 loser: Hashable,
                 ):
        self.strategy = strategy
        self.tied = tuple(tied)
        self.loser = loser

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, TieBreak)
            and (self.strategy, self.tied, self.loser)
            == (other.strategy, other.tied, other.loser)
        )

    def __repr__(self) -> str:
        return f'<TieBreak({self.strategy}: {self.loser!r} of {self.tied})>'


@simple_serialization
class Round:
    '''A single round of a tabulation.

    :param number: 1-based round number.
    :param tallies: Votes of each candidate in contention, in declared
        candidate order.
    :param exhausted: Ballots (or ballot weight) with no continuing
        preference at this round, including those exhausted earlier.
    :param eliminated: The candidate eliminated in this round, if any.
    :param winner: Single-winner only - the winner declared in this round.
    :param by_majority: Single-winner only - whether the winner holds
        a majority of the continuing votes, as opposed to being the last
        candidate remaining.
    :param majority_threshold: Single-winner only - votes needed for
        a majority in this round.
    :param elected: Multi-winner only - candidates elected in this round,
        in election order.
    :param quota: Multi-winner only - the election quota.
    :param transfer_values: Multi-winner only - transfer values of the
        surpluses of the candidates elected by quota in this round.
    :param tie_breaks: Ties resolved in this round.
    '''
    def __init__(self,
                 number: int,
                 tallies: Mapping[Hashable, Number],
                 exhausted: Number = 0,
                 eliminated: Optional[Hashable] = None,
                 winner: Optional[Hashable] = None,
                 by_majority: Optional[bool] = None,
                 majority_threshold: Optional[int] = None,
                 elected: Sequence[Hashable] = (),
                 quota: Optional[Number] = None,
                 transfer_values: Optional[Mapping[Hashable, Fraction]] = None,
                 tie_breaks: Sequence[TieBreak] = (),
                 ):
        self.number = number
        self.tallies = types.MappingProxyType(dict(tallies))
        self.exhausted = exhausted
        self.eliminated = eliminated
        self.winner = winner
        self.by_majority = by_majority
        self.majority_threshold = majority_threshold
        self.elected = tuple(elected)
        self.quota = quota
        self.transfer_values = types.MappingProxyType(
            dict(transfer_values or {})
        )
        self.tie_breaks = tuple(tie_breaks)

    @property
    def total_votes(self) -> Number:
        '''Votes held by candidates in contention in this round.'''
        return sum(self.tallies.values())

    def _key(self) -> Tuple:
        return (
            self.number, list(self.tallies.items()), self.exhausted,
            self.eliminated, self.winner, self.by_majority,
            self.majority_threshold, self.elected, self.quota,
            list(self.transfer_values.items()), self.tie_breaks,
        )

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Round) and self._key() == other._key()

    def __repr__(self) -> str:
        return f'<Round({self.number}: {dict(self.tallies)})>'


class TabulationResult:
    '''The complete outcome of a tabulation.

    :param rounds: All rounds, first to last.
    :param elected: Elected candidates in election order; a single-winner
        tabulation elects exactly one.
    :param total_ballots: Number of ballots tabulated.
    '''
    def __init__(self,
                 rounds: Sequence[Round],
                 elected: Sequence[Hashable],
                 total_ballots: int,
                 ):
        self.rounds = tuple(rounds)
        self.elected = tuple(elected)
        self.total_ballots = total_ballots

    @property
    def winner(self) -> Optional[Hashable]:
        '''The first elected candidate (the winner of a single-winner poll).'''
        return self.elected[0] if self.elected else None

    @property
    def exhausted(self) -> Number:
        '''Ballots (or weight) exhausted by the end of the tabulation.'''
        return self.rounds[-1].exhausted if self.rounds else 0

    @property
    def eliminated(self) -> List[Hashable]:
        '''Eliminated candidates in order of elimination.'''
        return [
            rnd.eliminated for rnd in self.rounds
            if rnd.eliminated is not None
        ]

    def eliminated_round(self, candidate: Hashable) -> Optional[int]:
        '''Return the number of the round the candidate was eliminated in.'''
        for rnd in self.rounds:
            if rnd.eliminated == candidate:
                return rnd.number
        return None

    def elected_round(self, candidate: Hashable) -> Optional[int]:
        '''Return the number of the round the candidate was elected in.'''
        for rnd in self.rounds:
            if candidate in rnd.elected or rnd.winner == candidate:
                return rnd.number
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rounds': [rnd.to_dict() for rnd in self.rounds],
            'elected': [serialize_value(cand) for cand in self.elected],
            'total_ballots': self.total_ballots,
        }

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, TabulationResult)
            and self.rounds == other.rounds
            and self.elected == other.elected
            and self.total_ballots == other.total_ballots
        )

    def __repr__(self) -> str:
        return (
            f'<TabulationResult({len(self.rounds)} rounds,'
            f' elected {list(self.elected)})>'
        )


class RoundRecorder:
    '''Accumulate rounds with sequential numbers.'''
    def __init__(self):
        self.rounds: List[Round] = []

    @property
    def next_number(self) -> int:
        return len(self.rounds) + 1

    def record(self, tallies: Mapping[Hashable, Number], **kwargs) -> Round:
        '''Record a new round, numbering it after the previous one.

        :param tallies: Tallies of the candidates in contention.
        :param kwargs: Other :class:`Round` attributes.
        :returns: The recorded round.
        '''
        rnd = Round(self.next_number, tallies, **kwargs)
        self.rounds.append(rnd)
        return rnd

    def result(self,
               elected: Sequence[Hashable],
               total_ballots: int,
               ) -> TabulationResult:
        return TabulationResult(self.rounds, elected, total_ballots)
