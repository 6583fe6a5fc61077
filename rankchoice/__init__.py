"""Rankchoice - ranked-choice vote tabulation.

Rankchoice takes a poll's candidates and its ranked ballots and produces
the sequence of counting rounds that determines the winners. Two counting
methods are provided:

-   **Instant runoff** (:func:`tabulate_single_winner`) for polls with
    a single winner.
-   **Single transferable vote** (:func:`tabulate_multi_winner`) for polls
    filling several seats, with the Droop quota and fractional surplus
    transfers.

Ballots are checked by the validators from the :mod:`vote` module before any
counting starts. Ties are resolved deterministically by a configurable chain
of strategies from the :mod:`evaluate.tiebreak` module, and every tie
resolution is recorded in the round it affects.

The engine works on in-memory data only. Loading polls and ballots from
storage and presenting the rounds to voters is left to the embedding
system; :mod:`persist` helps with turning results and configuration into
JSON-ready dictionaries.
"""

from rankchoice.evaluate.sequential import tabulate_single_winner    # noqa
from rankchoice.evaluate.sequential import tabulate_multi_winner    # noqa
