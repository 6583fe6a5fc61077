'''Errors raised by the tabulators.

Input errors are deterministic: the same input fails the same way every time,
so a failed tabulation is never worth retrying. They are all collected in
:data:`INPUT_ERRORS` so that the embedding system can map them to its own
presentation in one place.
'''

import rankchoice.candidate
import rankchoice.vote


class ElectionSetupError(Exception):
    '''The poll cannot be tabulated with the given setup.'''
    pass


class InsufficientCandidates(ElectionSetupError):
    '''Fewer than two candidates stand in the poll.

    :param n_candidates: Number of candidates given.
    '''
    def __init__(self, n_candidates: int):
        self.n_candidates = n_candidates
        super().__init__(
            f'at least 2 candidates needed, got {n_candidates}'
        )


class InvalidWinnerCount(ElectionSetupError):
    '''The number of seats is not between 1 and the number of candidates.

    :param n_seats: Number of seats requested.
    :param n_candidates: Number of candidates standing.
    '''
    def __init__(self, n_seats: int, n_candidates: int):
        self.n_seats = n_seats
        self.n_candidates = n_candidates
        super().__init__(
            f'invalid number of seats: {n_seats}, must be at least 1'
            f' and less than the number of candidates ({n_candidates})'
        )


class VotingSystemError(Exception):
    '''A tabulation with a valid setup ended up in an inconsistent state.'''
    pass


INPUT_ERRORS = (
    ElectionSetupError,
    rankchoice.candidate.CandidateError,
    rankchoice.vote.VoteError,
)
