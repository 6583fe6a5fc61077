'''Candidate specifications and candidate set validation.

A poll's candidates are given to the tabulators as a sequence; the order of
that sequence (the declared order) is significant only for deterministic
presentation of tallies and for the last-resort tie-break strategy.

Candidates can be given either as :class:`Candidate` objects or as bare
hashable identifiers (e.g. strings or UUIDs); ballots always refer to
candidates by their identifier.
'''

from typing import Any, Hashable, List, Sequence, Union

from rankchoice.persist import simple_serialization


class CandidateError(Exception):
    '''The candidate set is invalid in the given context.

    :param candidate: Identifier of the candidate that was found to be
        invalid.
    :param reason: What is wrong with the candidate.
    '''
    def __init__(self, candidate: Any, reason: str = 'invalid'):
        self.candidate = candidate
        self.reason = reason
        super().__init__(f'{reason} candidate: {candidate!r}')


@simple_serialization
class Candidate:
    '''A candidate standing in a poll.

    Candidates are compared and hashed by their identifier only; the display
    name is carried along for the presentation layer.

    :param id: Identifier of the candidate, unique within the poll. Any
        hashable value is accepted.
    :param name: Display name of the candidate.
    '''
    def __init__(self, id: Hashable, name: str = ''):
        self.id = id
        self.name = name

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Candidate) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return (
            f'<Candidate({self.id!r}'
            + (f',{self.name}' if self.name else '')
            + ')>'
        )


CandidateLike = Union[Candidate, Hashable]


def candidate_id(candidate: CandidateLike) -> Hashable:
    '''Return the identifier of a candidate object or a bare identifier.'''
    return candidate.id if isinstance(candidate, Candidate) else candidate


def candidate_ids(candidates: Sequence[CandidateLike]) -> List[Hashable]:
    '''Return candidate identifiers in declared order, checking uniqueness.

    :param candidates: Candidates of the poll.
    :raises CandidateError: If any identifier is given more than once.
    '''
    ids = []
    seen = set()
    for cand in candidates:
        cand_id = candidate_id(cand)
        if cand_id in seen:
            raise CandidateError(cand_id, 'duplicate')
        seen.add(cand_id)
        ids.append(cand_id)
    return ids
