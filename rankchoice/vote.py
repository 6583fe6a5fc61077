'''Ballots and ballot validation.

A ballot is a voter's ranked preference list, represented positionally: a
tuple of candidate identifiers with the first preference first. Ballots
submitted as rank/candidate pairs (as a voting form produces them) can be
converted into this positional form by :class:`RankedBallotValidator`, which
also checks that the rank numbers are consistent.

Invalid ballots are reported by raising a subclass of :class:`VoteError`.
The tabulators refuse to count a ballot set containing any invalid ballot
rather than silently dropping it; filtering bad ballots is the job of the
code collecting them.
'''

import collections
from typing import Any, Collection, Hashable, Iterable, List, Optional, \
    Sequence, Tuple

from rankchoice.persist import simple_serialization


class VoteError(Exception):
    '''A ballot is invalid given the poll's candidates and ranking rules.'''
    pass


class UnknownCandidate(VoteError):
    '''A ballot ranks a candidate that does not stand in the poll.

    :param candidate: The unknown candidate identifier.
    '''
    def __init__(self, candidate: Hashable):
        self.candidate = candidate
        super().__init__(f'unknown candidate in ranking: {candidate!r}')


class DuplicateCandidate(VoteError):
    '''A ballot ranks a candidate more than once.

    :param candidate: The candidate identifier that repeats.
    '''
    def __init__(self, candidate: Hashable):
        self.candidate = candidate
        super().__init__(f'candidate ranked more than once: {candidate!r}')


class EmptyBallot(VoteError):
    '''A ballot ranks no candidates at all.'''
    def __init__(self):
        super().__init__('ballot ranks no candidates')


class NonSequentialRanks(VoteError):
    '''Rank numbers given with a ballot are inconsistent.

    :param ranks: The offending rank numbers.
    :param reason: One of ``'non-positive'``, ``'duplicate'`` or ``'gap'``.
    '''
    def __init__(self, ranks: Sequence[int], reason: str):
        self.ranks = tuple(ranks)
        self.reason = reason
        super().__init__(f'invalid ranks ({reason}): {list(self.ranks)}')


@simple_serialization
class Ballot:
    '''A single voter's ranked ballot.

    :param id: Identifier of the ballot, for audit purposes.
    :param ranking: Candidate identifiers in order of preference, first
        preference first. Stored as a tuple so that it cannot change during
        tabulation.
    '''
    def __init__(self, id: Hashable, ranking: Iterable[Hashable]):
        self.id = id
        self.ranking = tuple(ranking)

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Ballot)
            and self.id == other.id
            and self.ranking == other.ranking
        )

    def __hash__(self) -> int:
        return hash((self.id, self.ranking))

    def __len__(self) -> int:
        return len(self.ranking)

    def __repr__(self) -> str:
        return f'<Ballot({self.id!r},{list(self.ranking)})>'


RankPairType = Tuple[Hashable, int]


@simple_serialization
class RankedBallotValidator:
    '''Validate a ranked ballot against the candidates of a poll.

    The positional checks are performed in this order: every ranked
    identifier must stand in the poll (:class:`UnknownCandidate`), no
    identifier may repeat (:class:`DuplicateCandidate`) and the ranking must
    not be empty (:class:`EmptyBallot`).

    When the ballot is given as rank/candidate pairs, the ranks must be
    strictly positive and unique. Whether they must also be contiguous from
    one upwards is a policy decision expressed by `allow_sparse_ranks`.

    :param allow_sparse_ranks: If True, a voter may skip rank numbers (e.g.
        ranks 1 and 3 with no rank 2); the pairs are then ordered by rank.
        If False, the ranks must form the sequence 1, 2, ..., n exactly,
        otherwise :class:`NonSequentialRanks` is raised.
    '''
    def __init__(self, allow_sparse_ranks: bool = False):
        self.allow_sparse_ranks = allow_sparse_ranks

    def validate(self,
                 ranking: Iterable[Hashable],
                 candidates: Collection[Hashable],
                 ) -> None:
        '''Check a positional ranking.

        :param ranking: Candidate identifiers, first preference first.
        :param candidates: Identifiers of all candidates standing in the poll.
        :raises UnknownCandidate: If a ranked identifier is not a candidate.
        :raises DuplicateCandidate: If an identifier repeats.
        :raises EmptyBallot: If the ranking is empty.
        '''
        ranking = tuple(ranking)
        for cand in ranking:
            if cand not in candidates:
                raise UnknownCandidate(cand)
        seen = set()
        for cand in ranking:
            if cand in seen:
                raise DuplicateCandidate(cand)
            seen.add(cand)
        if not ranking:
            raise EmptyBallot()

    def accept(self,
               ranking: Iterable[Hashable],
               candidates: Collection[Hashable],
               ballot_id: Optional[Hashable] = None,
               ) -> Ballot:
        '''Validate a positional ranking and wrap it into a ballot.

        :param ranking: Candidate identifiers, first preference first. Any
            iterable is accepted; it is read exactly once.
        :param candidates: Identifiers of all candidates standing in the poll.
        :param ballot_id: Identifier to give the ballot.
        :returns: The accepted ballot.
        '''
        ranking = tuple(ranking)
        self.validate(ranking, candidates)
        return Ballot(ballot_id, ranking)

    def accept_rank_pairs(self,
                          pairs: Iterable[RankPairType],
                          candidates: Collection[Hashable],
                          ballot_id: Optional[Hashable] = None,
                          ) -> Ballot:
        '''Validate a ballot given as (candidate, rank) pairs.

        :param pairs: Candidate identifiers paired with the rank the voter
            assigned them (1 being the first preference), in any order.
        :param candidates: Identifiers of all candidates standing in the poll.
        :param ballot_id: Identifier to give the ballot.
        :returns: The accepted ballot, with the candidates in rank order.
        :raises NonSequentialRanks: If the ranks are not strictly positive,
            if two candidates share a rank, or if there is a gap in the ranks
            and sparse ranks are not allowed.
        '''
        pairs = list(pairs)
        self.validate([cand for cand, rank in pairs], candidates)
        self.check_ranks([rank for cand, rank in pairs])
        ranking = [cand for cand, rank in sorted(pairs, key=lambda p: p[1])]
        return Ballot(ballot_id, ranking)

    def check_ranks(self, ranks: Sequence[int]) -> None:
        '''Check that rank numbers are usable to order a ballot.

        :param ranks: Rank numbers as given by the voter.
        :raises NonSequentialRanks: If the ranks are invalid.
        '''
        nonpositive = [rank for rank in ranks if rank < 1]
        if nonpositive:
            raise NonSequentialRanks(nonpositive, 'non-positive')
        repeated = [
            rank for rank, count in collections.Counter(ranks).items()
            if count > 1
        ]
        if repeated:
            raise NonSequentialRanks(sorted(repeated), 'duplicate')
        if not self.allow_sparse_ranks:
            if sorted(ranks) != list(range(1, len(ranks) + 1)):
                raise NonSequentialRanks(sorted(ranks), 'gap')


def validate_ballots(ballots: Iterable[Any],
                     candidates: Collection[Hashable],
                     validator: Optional[RankedBallotValidator] = None,
                     ) -> List[Ballot]:
    '''Validate all ballots of a poll before tabulation.

    :param ballots: Ballots as :class:`Ballot` objects or bare rankings
        (iterables of candidate identifiers); bare rankings get their
        position in the input as their identifier.
    :param candidates: Identifiers of all candidates standing in the poll.
    :param validator: Validator to use; the default one is used if not given.
    :returns: The ballots as :class:`Ballot` objects, in input order.
    :raises VoteError: On the first invalid ballot.
    '''
    if validator is None:
        validator = RankedBallotValidator()
    accepted = []
    for i, ballot in enumerate(ballots):
        if isinstance(ballot, Ballot):
            validator.validate(ballot.ranking, candidates)
            accepted.append(ballot)
        else:
            accepted.append(validator.accept(ballot, candidates, ballot_id=i))
    return accepted
