'''Quota functions for the single transferable vote.

A quota function takes the total number of ballots and the number of seats
to fill and returns the number of votes a candidate needs to be elected.

All supported quota functions are assembled in the `QUOTAS` dictionary keyed
by their name. `get()` retrieves from this dictionary by string key;
`construct()` also accepts callables and passes them through.
'''

from fractions import Fraction

import rankchoice.component.core


QUOTAS = {}


quota_mark, get, construct = rankchoice.component.core.register_functions(
    QUOTAS, 'quota'
)


@quota_mark
def droop(votes: int, seats: int) -> int:
    '''Droop quota, floor(votes / (seats + 1)) + 1.

    This is the smallest integer quota guaranteeing the number of candidates
    reaching it will not be higher than the number of seats.
    '''
    return int(Fraction(votes, seats + 1)) + 1


@quota_mark
def hare(votes: int, seats: int) -> Fraction:
    '''Hare quota, the most basic one.

    This is the unrounded variant, giving the exact fraction. More candidates
    than seats can reach it when few votes exhaust.
    '''
    return Fraction(votes, seats)
