'''Deterministic resolution of ties between candidates.

A tie arises when the candidates with the lowest tally are to be eliminated
and more than one candidate has that tally, or when candidates elected in
the same round have equal tallies and must be put into an election order.

Ties are resolved by a chain of strategies tried in a configured order. Each
strategy narrows the tied set down to the candidates that lose by its
criterion; when one candidate remains, the tie is resolved and the name of
the resolving strategy is recorded in the round. When a strategy cannot
narrow the set down to a single candidate, the narrowed set passes to the
next strategy. The ``candidate_order`` strategy always decides, so it is
appended to every chain that does not contain it.

Strategies are registered in the `STRATEGIES` dictionary by their name;
`get()` retrieves them by name. The following are available:

-   ``prior_round`` - walk back through the recorded rounds; in the latest
    round in which the tied candidates' tallies differ, the candidate(s) with
    the fewest votes lose.
-   ``first_choice`` - the candidate(s) with the fewest first-preference
    ballots lose.
-   ``votes_to_distribute`` - for eliminations in the single transferable
    vote only: the candidate(s) whose ballots would transfer the least weight
    to other continuing candidates lose.
-   ``random`` - a pseudo-random choice driven by a fixed seed; the same tie
    is always resolved the same way for the same seed and candidate order.
-   ``candidate_order`` - the candidate declared earliest loses.
'''

import logging
from random import Random
from numbers import Number
from typing import Any, Dict, Hashable, List, Mapping, Optional, Sequence, \
    Tuple

import rankchoice.component.core
from rankchoice.evaluate.core import VotingSystemError
from rankchoice.evaluate.rounds import Round, TieBreak
from rankchoice.persist import simple_serialization

logger = logging.getLogger(__name__)


STRATEGIES = {}


strategy_mark, get, construct = rankchoice.component.core.register_functions(
    STRATEGIES, 'tie-break strategy'
)


class TieContext:
    '''Information about the tabulation state available to strategies.

    :param rounds: Rounds recorded before the current one.
    :param candidate_order: All candidates of the poll in declared order.
    :param first_preferences: Numbers of first-preference ballots per
        candidate.
    :param transferable: Weight that each candidate's current ballots would
        transfer to other continuing candidates on elimination. Only given
        by the single transferable vote.
    :param electing: True if the tie is about the order of election rather
        than about elimination.
    '''
    def __init__(self,
                 rounds: Sequence[Round],
                 candidate_order: Sequence[Hashable],
                 first_preferences: Optional[Mapping[Hashable, int]] = None,
                 transferable: Optional[Mapping[Hashable, Number]] = None,
                 electing: bool = False,
                 ):
        self.rounds = rounds
        self.candidate_order = list(candidate_order)
        self.first_preferences = first_preferences or {}
        self.transferable = transferable
        self.electing = electing

    def declared_order(self, candidates: Sequence[Hashable]) -> List[Hashable]:
        return sorted(candidates, key=self.candidate_order.index)


def _lowest(values: Mapping[Hashable, Number],
            candidates: Sequence[Hashable],
            ) -> List[Hashable]:
    minimum = min(values[cand] for cand in candidates)
    return [cand for cand in candidates if values[cand] == minimum]


@strategy_mark
def prior_round(tied: Sequence[Hashable],
                context: TieContext,
                seed: Any = None,
                ) -> List[Hashable]:
    remaining = list(tied)
    for rnd in reversed(context.rounds):
        if not all(cand in rnd.tallies for cand in remaining):
            continue
        remaining = _lowest(rnd.tallies, remaining)
        if len(remaining) == 1:
            break
    return remaining


@strategy_mark
def first_choice(tied: Sequence[Hashable],
                 context: TieContext,
                 seed: Any = None,
                 ) -> List[Hashable]:
    return _lowest(
        {cand: context.first_preferences.get(cand, 0) for cand in tied},
        tied,
    )


@strategy_mark
def votes_to_distribute(tied: Sequence[Hashable],
                        context: TieContext,
                        seed: Any = None,
                        ) -> List[Hashable]:
    if context.electing or context.transferable is None:
        return list(tied)
    return _lowest(context.transferable, tied)


@strategy_mark
def random(tied: Sequence[Hashable],
           context: TieContext,
           seed: Any = None,
           ) -> List[Hashable]:
    if seed is None:
        raise ValueError('random tie-break requires a seed')
    return [Random(seed).choice(list(tied))]


@strategy_mark
def candidate_order(tied: Sequence[Hashable],
                    context: TieContext,
                    seed: Any = None,
                    ) -> List[Hashable]:
    return [min(tied, key=context.candidate_order.index)]


DEFAULT_STRATEGIES = ('prior_round', 'votes_to_distribute', 'candidate_order')


@simple_serialization
class TieBreaker:
    '''Resolve ties by a fixed chain of strategies.

    :param strategies: Names of the strategies to try, in priority order.
        ``candidate_order`` is implicitly added at the end if not present.
    :param seed: Seed for the ``random`` strategy. Must be given if that
        strategy is used; an integer, string or bytes value is expected.
    :raises KeyError: If an unknown strategy name is given.
    :raises ValueError: If the ``random`` strategy is requested without
        a seed, or if the seed cannot seed :class:`random.Random`.
    '''
    def __init__(self,
                 strategies: Sequence[str] = DEFAULT_STRATEGIES,
                 seed: Any = None,
                 ):
        self.strategies = tuple(strategies)
        self.seed = seed
        if 'random' in self.strategies and seed is None:
            raise ValueError('random tie-break requires a seed')
        if seed is not None:
            try:
                Random(seed)
            except TypeError as err:
                raise ValueError(f'unusable random seed: {seed!r}') from err
        chain = list(self.strategies)
        if 'candidate_order' not in chain:
            chain.append('candidate_order')
        self._chain = [(name, get(name)) for name in chain]

    def resolve(self,
                tied: Sequence[Hashable],
                context: TieContext,
                ) -> TieBreak:
        '''Select the candidate that loses the tie.

        :param tied: Candidates tied on the decisive metric (two or more).
        :param context: Tabulation state to consult.
        :returns: A record naming the loser and the strategy that decided.
        '''
        tied = context.declared_order(tied)
        remaining = tied
        for name, strategy in self._chain:
            narrowed = strategy(remaining, context, seed=self.seed)
            if not narrowed or not set(narrowed).issubset(remaining):
                raise VotingSystemError(
                    f'tie-break strategy {name} returned {narrowed!r}'
                    f' for a tie among {remaining!r}'
                )
            remaining = context.declared_order(narrowed)
            if len(remaining) == 1:
                logger.info('tie among %s resolved by %s: %s loses',
                            tied, name, remaining[0])
                return TieBreak(name, tied, remaining[0])
        raise VotingSystemError(f'tie among {tied!r} not resolved')

    def lowest(self,
               tallies: Mapping[Hashable, Number],
               context: TieContext,
               ) -> Tuple[Hashable, Optional[TieBreak]]:
        '''Select the candidate with the lowest tally for elimination.

        :param tallies: Tallies of candidates in contention.
        :param context: Tabulation state to consult in case of a tie.
        :returns: The candidate to eliminate and the tie-break record (None
            if the lowest tally was not tied).
        '''
        lowest = _lowest(tallies, list(tallies))
        if len(lowest) == 1:
            return lowest[0], None
        tie_break = self.resolve(lowest, context)
        return tie_break.loser, tie_break

    def order(self,
              tallies: Mapping[Hashable, Number],
              context: TieContext,
              ) -> Tuple[List[Hashable], List[TieBreak]]:
        '''Order candidates by descending tally, resolving equal tallies.

        Within a group of equal tallies, every tie loser is placed after the
        candidates it was tied with.

        :param tallies: Tallies of the candidates to order.
        :param context: Tabulation state to consult in case of a tie.
        :returns: The ordered candidates and the tie-break records made.
        '''
        groups: Dict[Number, List[Hashable]] = {}
        for cand, tally in tallies.items():
            groups.setdefault(tally, []).append(cand)
        ordered = []
        tie_breaks = []
        for tally in sorted(groups, reverse=True):
            remaining = list(groups[tally])
            group_order = []
            while len(remaining) > 1:
                tie_break = self.resolve(remaining, context)
                tie_breaks.append(tie_break)
                group_order.insert(0, tie_break.loser)
                remaining.remove(tie_break.loser)
            ordered.extend(remaining + group_order)
        return ordered, tie_breaks
