'''Allocation of ballots to candidates and transfers of their weights.

Both tabulators count by allocating every ballot to its highest-ranked
candidate still in contention. The single transferable vote additionally
tracks a weight per ballot, lowered by surplus transfers (the Gregory
method with exact fractions). Weights are kept as immutable snapshots: a
transfer produces a new tuple of weights and never changes the old one, so
any round can be recounted from the snapshot it started with.
'''

from fractions import Fraction
from numbers import Number
from typing import Collection, Dict, Hashable, List, Mapping, Optional, \
    Sequence, Tuple

RankingType = Tuple[Hashable, ...]
WeightsType = Tuple[Fraction, ...]


class Allocation:
    '''Ballots allocated to their current preferences.

    :param piles: Indices of ballots allocated to each candidate in
        contention, keyed by candidate identifier in the order of the
        candidates given to :func:`allocate`.
    :param exhausted: Indices of ballots with no remaining preference.
    '''
    def __init__(self,
                 piles: Dict[Hashable, List[int]],
                 exhausted: List[int],
                 ):
        self.piles = piles
        self.exhausted = exhausted

    def totals(self,
               weights: Optional[Sequence[Number]] = None,
               ) -> Dict[Hashable, Number]:
        '''Sum the ballots (or their weights) in each candidate's pile.'''
        if weights is None:
            return {cand: len(pile) for cand, pile in self.piles.items()}
        return {
            cand: sum((weights[i] for i in pile), Fraction(0))
            for cand, pile in self.piles.items()
        }

    def exhausted_total(self,
                        weights: Optional[Sequence[Number]] = None,
                        ) -> Number:
        if weights is None:
            return len(self.exhausted)
        return sum((weights[i] for i in self.exhausted), Fraction(0))


def next_preference(ranking: RankingType,
                    continuing: Collection[Hashable],
                    ) -> Optional[Hashable]:
    '''Return the highest-ranked candidate of the ranking still in contention.

    :param ranking: Candidate identifiers, first preference first.
    :param continuing: Candidates still in contention.
    :returns: The candidate, or None if the ballot is exhausted.
    '''
    for cand in ranking:
        if cand in continuing:
            return cand
    return None


def allocate(rankings: Sequence[RankingType],
             continuing: Sequence[Hashable],
             weights: Optional[Sequence[Number]] = None,
             ) -> Allocation:
    '''Allocate ballots to their highest-ranked continuing candidates.

    Every continuing candidate gets a pile, even an empty one.

    :param rankings: Rankings of all ballots.
    :param continuing: Candidates still in contention, in declared order.
    :param weights: Current ballot weights. Ballots with zero weight are
        fully used up and are left out of all piles. If not given, all
        ballots take part.
    '''
    continuing_set = frozenset(continuing)
    piles = {cand: [] for cand in continuing}
    exhausted = []
    for i, ranking in enumerate(rankings):
        if weights is not None and not weights[i]:
            continue
        target = next_preference(ranking, continuing_set)
        if target is None:
            exhausted.append(i)
        else:
            piles[target].append(i)
    return Allocation(piles, exhausted)


def transfer_value(tally: Number, quota: Number) -> Fraction:
    '''Return the fraction of each ballot's weight carried over a surplus.

    :param tally: Votes of the elected candidate.
    :param quota: The election quota.
    :returns: (tally - quota) / tally, or zero for a zero tally.
    '''
    if not tally:
        return Fraction(0)
    return Fraction(tally - quota) / Fraction(tally)


def apply_transfer_values(weights: WeightsType,
                          piles: Mapping[Hashable, Sequence[int]],
                          values: Mapping[Hashable, Fraction],
                          ) -> WeightsType:
    '''Produce a new weight snapshot after surplus transfers.

    :param weights: Ballot weights before the transfer.
    :param piles: Ballot indices allocated to each candidate.
    :param values: Transfer values of the elected candidates. The weight of
        every ballot in an elected candidate's pile is multiplied by it.
    :returns: A new tuple of weights; the input is left untouched.
    '''
    new_weights = list(weights)
    for cand, value in values.items():
        for i in piles[cand]:
            new_weights[i] = weights[i] * value
    return tuple(new_weights)


def transferable_weight(rankings: Sequence[RankingType],
                        pile: Sequence[int],
                        continuing: Collection[Hashable],
                        weights: Optional[Sequence[Number]] = None,
                        ) -> Number:
    '''Return how much of a pile would move on to continuing candidates.

    :param rankings: Rankings of all ballots.
    :param pile: Indices of the ballots allocated to a candidate.
    :param continuing: Candidates that would remain in contention after the
        pile's candidate is removed.
    :param weights: Current ballot weights; all ballots count as one if not
        given.
    '''
    total = Fraction(0)
    for i in pile:
        if next_preference(rankings[i], continuing) is not None:
            total += 1 if weights is None else weights[i]
    return total
