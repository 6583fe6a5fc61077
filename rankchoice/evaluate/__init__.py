'''Tabulate ranked ballots.

The :mod:`sequential` module contains the two tabulators, the instant runoff
for single-winner polls and the single transferable vote for multi-winner
polls. Both produce a :class:`rounds.TabulationResult` listing every round
of the count, and both consult a :class:`tiebreak.TieBreaker` whenever
candidates are tied.

The errors a tabulation can raise because of invalid input are gathered in
:data:`core.INPUT_ERRORS`.
'''

from rankchoice.evaluate.core import *    # noqa
