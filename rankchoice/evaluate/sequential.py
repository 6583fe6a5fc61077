'''Tabulators that count ranked ballots round by round.

Two tabulators are provided:

-   :class:`InstantRunoff` elects a single winner by eliminating the weakest
    candidate round by round until a candidate holds a majority of the
    continuing votes.
-   :class:`SingleTransferableVote` fills several seats. Candidates reaching
    the quota are elected and their surplus is transferred to the next
    preferences at a fractional transfer value (the Gregory method); when no
    candidate reaches the quota, the weakest candidate is eliminated and their
    ballots move on at full weight.

Both recount all ballots from scratch in every round. Ballot weights are exact
fractions, so repeated transfers accumulate no rounding drift, and every round
is checked against the conservation of votes before it is recorded.

A tabulation either returns the complete sequence of rounds or raises;
nothing is kept between calls, so tabulators can be shared between threads.
'''

import collections
import logging
from fractions import Fraction
from numbers import Number
from typing import Any, Callable, Dict, Hashable, Iterable, Mapping, \
    Optional, Sequence, Union

import rankchoice.component.quota
from rankchoice.candidate import CandidateLike, candidate_ids
from rankchoice.component.transfer import allocate, apply_transfer_values, \
    transfer_value, transferable_weight
from rankchoice.evaluate.core import InsufficientCandidates, \
    InvalidWinnerCount, VotingSystemError
from rankchoice.evaluate.rounds import RoundRecorder, TabulationResult
from rankchoice.evaluate.tiebreak import TieBreaker, TieContext
from rankchoice.persist import simple_serialization
from rankchoice.vote import RankedBallotValidator, validate_ballots

logger = logging.getLogger(__name__)


def majority_threshold(total_votes: int) -> int:
    '''Return the smallest number of votes forming a strict majority.'''
    return total_votes // 2 + 1


def first_preferences(rankings: Iterable[Sequence[Hashable]]
                      ) -> Dict[Hashable, int]:
    return dict(collections.Counter(
        ranking[0] for ranking in rankings if ranking
    ))


def _check_tallies(tallies: Mapping[Hashable, Number]) -> None:
    for cand, tally in tallies.items():
        if tally < 0:
            raise VotingSystemError(f'negative tally for {cand!r}: {tally}')


@simple_serialization
class InstantRunoff:
    '''Single-winner tabulation by instant runoff.

    In every round, each ballot counts for its highest-ranked candidate not
    yet eliminated; ballots with no such candidate are exhausted and stay
    out of every later round. A candidate holding more than half of the
    continuing votes wins. Otherwise the candidate with the fewest votes is
    eliminated, with ties resolved by the tie breaker. When a single
    candidate remains without a majority, they win by exhaustion.

    :param tie_breaker: Tie breaker for elimination ties. The default one
        uses prior rounds and then the declared candidate order.
    :param validator: Validator to check the ballots with before counting.
    '''
    def __init__(self,
                 tie_breaker: Optional[TieBreaker] = None,
                 validator: Optional[RankedBallotValidator] = None,
                 ):
        self.tie_breaker = tie_breaker if tie_breaker else TieBreaker()
        self.validator = validator if validator else RankedBallotValidator()

    def tabulate(self,
                 candidates: Sequence[CandidateLike],
                 ballots: Iterable[Any],
                 ) -> TabulationResult:
        '''Run the instant runoff.

        :param candidates: Candidates standing in the poll, in declared order.
        :param ballots: Ballots as :class:`rankchoice.vote.Ballot` objects or
            bare rankings of candidate identifiers.
        :returns: The rounds and the winner.
        :raises InsufficientCandidates: With fewer than two candidates.
        :raises VoteError: If any ballot is invalid.
        '''
        order = candidate_ids(candidates)
        if len(order) < 2:
            raise InsufficientCandidates(len(order))
        ballots = validate_ballots(ballots, frozenset(order), self.validator)
        rankings = [ballot.ranking for ballot in ballots]
        first_prefs = first_preferences(rankings)
        logger.info('instant runoff: %d ballots, %d candidates',
                    len(rankings), len(order))
        recorder = RoundRecorder()
        continuing = list(order)
        while True:
            if recorder.next_number > len(order):
                raise VotingSystemError('instant runoff did not terminate')
            allocation = allocate(rankings, continuing)
            tallies = allocation.totals()
            exhausted = allocation.exhausted_total()
            _check_tallies(tallies)
            if sum(tallies.values()) + exhausted != len(rankings):
                raise VotingSystemError(
                    f'round {recorder.next_number} does not account'
                    ' for all ballots'
                )
            threshold = majority_threshold(sum(tallies.values()))
            logger.debug('round %d tallies: %s, exhausted: %d',
                         recorder.next_number, tallies, exhausted)
            winner = next(
                (cand for cand, tally in tallies.items()
                 if tally >= threshold),
                None
            )
            if winner is not None or len(continuing) == 1:
                by_majority = winner is not None
                if not by_majority:
                    winner = continuing[0]
                recorder.record(
                    tallies,
                    exhausted=exhausted,
                    winner=winner,
                    by_majority=by_majority,
                    majority_threshold=threshold,
                )
                logger.info('round %d: %s wins%s', recorder.next_number - 1,
                            winner, '' if by_majority else ' by exhaustion')
                return recorder.result([winner], len(rankings))
            context = TieContext(recorder.rounds, order, first_prefs)
            loser, tie_break = self.tie_breaker.lowest(tallies, context)
            recorder.record(
                tallies,
                exhausted=exhausted,
                eliminated=loser,
                majority_threshold=threshold,
                tie_breaks=[tie_break] if tie_break else [],
            )
            logger.info('round %d: eliminating %s', recorder.next_number - 1,
                        loser)
            continuing.remove(loser)


@simple_serialization
class SingleTransferableVote:
    '''Multi-winner tabulation by the single transferable vote.

    The quota is computed once from the number of ballots and stays fixed.
    In every round, each ballot with a positive weight counts its weight for
    its highest-ranked candidate neither elected nor eliminated. All
    candidates reaching the quota are elected in that round, in descending
    order of their tallies; the weight of each ballot counting for them is
    multiplied by their surplus transfer value, (tally - quota) / tally.
    If nobody reaches the quota, the candidate with the fewest votes is
    eliminated and their ballots continue at unchanged weight. As soon as
    the candidates remaining equal the seats left, they are all elected in
    one final round regardless of the quota.

    :param tie_breaker: Tie breaker for elimination and election order ties.
    :param quota_function: Quota function or its name in
        :mod:`rankchoice.component.quota`.
    :param validator: Validator to check the ballots with before counting.
    '''
    def __init__(self,
                 tie_breaker: Optional[TieBreaker] = None,
                 quota_function: Union[
                     str, Callable[[int, int], Number]
                 ] = 'droop',
                 validator: Optional[RankedBallotValidator] = None,
                 ):
        self.tie_breaker = tie_breaker if tie_breaker else TieBreaker()
        self.quota_function = quota_function
        self._quota_function = rankchoice.component.quota.construct(
            quota_function
        )
        self.validator = validator if validator else RankedBallotValidator()

    def tabulate(self,
                 candidates: Sequence[CandidateLike],
                 ballots: Iterable[Any],
                 n_seats: int,
                 ) -> TabulationResult:
        '''Run the single transferable vote count.

        :param candidates: Candidates standing in the poll, in declared order.
        :param ballots: Ballots as :class:`rankchoice.vote.Ballot` objects or
            bare rankings of candidate identifiers.
        :param n_seats: Number of candidates to elect; at least one and
            fewer than the number of candidates.
        :returns: The rounds and the elected candidates in election order.
        :raises InsufficientCandidates: With fewer than two candidates.
        :raises InvalidWinnerCount: If the number of seats is out of range.
        :raises VoteError: If any ballot is invalid.
        '''
        order = candidate_ids(candidates)
        if len(order) < 2:
            raise InsufficientCandidates(len(order))
        if not isinstance(n_seats, int) or not 1 <= n_seats < len(order):
            raise InvalidWinnerCount(n_seats, len(order))
        ballots = validate_ballots(ballots, frozenset(order), self.validator)
        rankings = [ballot.ranking for ballot in ballots]
        first_prefs = first_preferences(rankings)
        quota = self._quota_function(len(rankings), n_seats)
        if quota <= 0:
            raise VotingSystemError(f'non-positive quota: {quota}')
        logger.info('single transferable vote: %d ballots, %d candidates,'
                    ' %d seats, quota %s',
                    len(rankings), len(order), n_seats, quota)
        weights = tuple(Fraction(1) for ranking in rankings)
        recorder = RoundRecorder()
        continuing = list(order)
        elected = []
        n_elected_by_quota = 0
        while len(elected) < n_seats:
            if recorder.next_number > len(order):
                raise VotingSystemError(
                    'single transferable vote did not terminate'
                )
            allocation = allocate(rankings, continuing, weights)
            tallies = allocation.totals(weights)
            exhausted = allocation.exhausted_total(weights)
            _check_tallies(tallies)
            accounted = (
                sum(tallies.values()) + exhausted + quota * n_elected_by_quota
            )
            if accounted != len(rankings):
                raise VotingSystemError(
                    f'round {recorder.next_number} accounts for {accounted}'
                    f' votes out of {len(rankings)}'
                )
            logger.debug('round %d tallies: %s, exhausted: %s',
                         recorder.next_number, tallies, exhausted)
            open_seats = n_seats - len(elected)
            if len(continuing) == open_seats:
                newly_elected, tie_breaks = self.tie_breaker.order(
                    tallies,
                    TieContext(recorder.rounds, order, first_prefs,
                               electing=True),
                )
                recorder.record(
                    tallies,
                    exhausted=exhausted,
                    elected=newly_elected,
                    quota=quota,
                    tie_breaks=tie_breaks,
                )
                logger.info('round %d: electing all remaining: %s',
                            recorder.next_number - 1, newly_elected)
                elected.extend(newly_elected)
                break
            reached = {
                cand: tally for cand, tally in tallies.items()
                if tally >= quota
            }
            if reached:
                ranked, tie_breaks = self.tie_breaker.order(
                    reached,
                    TieContext(recorder.rounds, order, first_prefs,
                               electing=True),
                )
                newly_elected = ranked[:open_seats]
                values = {
                    cand: transfer_value(tallies[cand], quota)
                    for cand in newly_elected
                }
                recorder.record(
                    tallies,
                    exhausted=exhausted,
                    elected=newly_elected,
                    quota=quota,
                    transfer_values=values,
                    tie_breaks=tie_breaks,
                )
                logger.info('round %d: %s elected by quota,'
                            ' transfer values %s',
                            recorder.next_number - 1, newly_elected, values)
                weights = apply_transfer_values(
                    weights, allocation.piles, values
                )
                elected.extend(newly_elected)
                n_elected_by_quota += len(newly_elected)
                for cand in newly_elected:
                    continuing.remove(cand)
            else:
                context = TieContext(
                    recorder.rounds, order, first_prefs,
                    transferable=self._transferable(
                        rankings, allocation.piles, tallies, weights
                    ),
                )
                loser, tie_break = self.tie_breaker.lowest(tallies, context)
                recorder.record(
                    tallies,
                    exhausted=exhausted,
                    eliminated=loser,
                    quota=quota,
                    tie_breaks=[tie_break] if tie_break else [],
                )
                logger.info('round %d: eliminating %s',
                            recorder.next_number - 1, loser)
                continuing.remove(loser)
        return recorder.result(elected, len(rankings))

    @staticmethod
    def _transferable(rankings: Sequence[Sequence[Hashable]],
                      piles: Mapping[Hashable, Sequence[int]],
                      tallies: Mapping[Hashable, Number],
                      weights: Sequence[Fraction],
                      ) -> Optional[Dict[Hashable, Number]]:
        # Only the candidates tied for the lowest tally are ever compared.
        lowest = min(tallies.values())
        tied = [cand for cand, tally in tallies.items() if tally == lowest]
        if len(tied) < 2:
            return None
        return {
            cand: transferable_weight(
                rankings,
                piles[cand],
                frozenset(c for c in tallies if c != cand),
                weights,
            )
            for cand in tied
        }


def tabulate_single_winner(candidates: Sequence[CandidateLike],
                           ballots: Iterable[Any],
                           tie_breaker: Optional[TieBreaker] = None,
                           validator: Optional[RankedBallotValidator] = None,
                           ) -> TabulationResult:
    '''Tabulate a single-winner poll by instant runoff.

    See :class:`InstantRunoff` for the parameters.
    '''
    return InstantRunoff(tie_breaker, validator).tabulate(candidates, ballots)


def tabulate_multi_winner(candidates: Sequence[CandidateLike],
                          ballots: Iterable[Any],
                          n_seats: int,
                          tie_breaker: Optional[TieBreaker] = None,
                          quota_function: Union[
                              str, Callable[[int, int], Number]
                          ] = 'droop',
                          validator: Optional[RankedBallotValidator] = None,
                          ) -> TabulationResult:
    '''Tabulate a multi-winner poll by the single transferable vote.

    See :class:`SingleTransferableVote` for the parameters.
    '''
    return SingleTransferableVote(
        tie_breaker, quota_function, validator
    ).tabulate(candidates, ballots, n_seats)
