import sys
import os
import json
import random
from fractions import Fraction

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))
import rankchoice.vote
from rankchoice.candidate import Candidate, CandidateError
from rankchoice.evaluate.core import InsufficientCandidates, \
    InvalidWinnerCount, INPUT_ERRORS
from rankchoice.evaluate.sequential import InstantRunoff, \
    SingleTransferableVote, tabulate_single_winner, tabulate_multi_winner
from rankchoice.evaluate.tiebreak import TieBreaker


def expand(votes):
    ballots = []
    for ranking, n_votes in votes.items():
        ballots.extend([ranking] * n_votes)
    return ballots


def random_ballots(candidates, n_ballots, seed):
    rng = random.Random(seed)
    ballots = []
    for i in range(n_ballots):
        ranking = list(candidates)
        rng.shuffle(ranking)
        ballots.append(tuple(ranking[:rng.randint(1, len(ranking))]))
    return ballots


IRV_EXAMPLE = expand({
    tuple('AB'): 2,
    tuple('BC'): 3,
    tuple('CA'): 1,
})


def test_irv_example():
    result = tabulate_single_winner(list('ABC'), IRV_EXAMPLE)
    first, second, third = result.rounds
    assert dict(first.tallies) == {'A': 2, 'B': 3, 'C': 1}
    assert first.majority_threshold == 4
    assert first.eliminated == 'C'
    assert first.winner is None
    assert first.tie_breaks == ()
    assert dict(second.tallies) == {'A': 3, 'B': 3}
    assert second.eliminated == 'A'
    assert second.tie_breaks[0].strategy == 'prior_round'
    assert dict(third.tallies) == {'B': 5}
    assert third.exhausted == 1
    assert third.winner == 'B'
    assert third.by_majority
    assert result.winner == 'B'
    assert result.elected == ('B',)


@pytest.mark.parametrize('seed', range(10))
def test_irv_example_random_tie(seed):
    breaker = TieBreaker(['random'], seed=seed)
    result = tabulate_single_winner(list('ABC'), IRV_EXAMPLE, breaker)
    tied_round = result.rounds[1]
    assert tied_round.tie_breaks[0].strategy == 'random'
    loser = tied_round.eliminated
    assert {loser, result.winner} == {'A', 'B'}
    again = tabulate_single_winner(list('ABC'), IRV_EXAMPLE, breaker)
    assert again == result


def test_irv_first_round_majority():
    result = tabulate_single_winner(
        list('ABC'), expand({('A',): 3, tuple('BA'): 1, tuple('CB'): 1})
    )
    assert len(result.rounds) == 1
    assert result.winner == 'A'
    assert result.rounds[0].majority_threshold == 3


def test_irv_half_is_not_majority():
    result = tabulate_single_winner(
        list('ABC'), expand({('A',): 2, ('B',): 1, tuple('CA'): 1})
    )
    first = result.rounds[0]
    assert first.majority_threshold == 3
    assert first.winner is None
    assert first.eliminated == 'B'
    second = result.rounds[1]
    assert dict(second.tallies) == {'A': 2, 'C': 1}
    assert second.exhausted == 1
    assert second.majority_threshold == 2
    assert second.by_majority
    assert result.winner == 'A'


def test_irv_transfer():
    result = tabulate_single_winner(list('ABC'), [
        tuple('AB'), tuple('AC'), tuple('BA'), tuple('BC'), tuple('CA'),
    ])
    assert len(result.rounds) == 2
    assert result.rounds[0].eliminated == 'C'
    assert dict(result.rounds[1].tallies) == {'A': 3, 'B': 2}
    assert result.winner == 'A'
    assert result.eliminated_round('C') == 1
    assert result.elected_round('A') == 2


def test_irv_exhausted_ballots():
    result = tabulate_single_winner(list('ABC'), expand({
        tuple('AB'): 2,
        tuple('BA'): 2,
        ('C',): 1,
    }))
    assert result.rounds[0].eliminated == 'C'
    assert result.rounds[1].exhausted == 1
    # undecided by prior rounds, so the declared order decides
    assert result.rounds[1].tie_breaks[0].strategy == 'candidate_order'
    assert result.rounds[1].eliminated == 'A'
    assert result.rounds[1].majority_threshold == 3
    assert result.winner == 'B'
    assert result.exhausted == 1


def test_irv_zero_vote_candidates_eliminated_first():
    result = tabulate_single_winner(
        list('ABCD'), expand({tuple('AB'): 2, tuple('BA'): 2, ('C',): 1})
    )
    first = result.rounds[0]
    assert dict(first.tallies) == {'A': 2, 'B': 2, 'C': 1, 'D': 0}
    assert first.eliminated == 'D'


def test_irv_winner_by_exhaustion():
    result = tabulate_single_winner(list('AB'), [])
    assert result.rounds[0].eliminated == 'A'
    last = result.rounds[-1]
    assert last.winner == 'B'
    assert not last.by_majority
    assert dict(last.tallies) == {'B': 0}


def test_irv_candidate_objects():
    candidates = [Candidate('a', 'Alice'), Candidate('b', 'Bob')]
    result = tabulate_single_winner(candidates, [('a',), ('a', 'b'), ('b',)])
    assert result.winner == 'a'


@pytest.mark.parametrize('candidates', [[], ['A']])
def test_irv_insufficient_candidates(candidates):
    with pytest.raises(InsufficientCandidates):
        tabulate_single_winner(candidates, [tuple(candidates)])


@pytest.mark.parametrize(('ballot', 'error'), [
    (tuple('AA'), rankchoice.vote.DuplicateCandidate),
    (tuple('AE'), rankchoice.vote.UnknownCandidate),
    ((), rankchoice.vote.EmptyBallot),
])
def test_invalid_ballot_rejected(ballot, error):
    ballots = [tuple('AB'), ballot, tuple('BA')]
    with pytest.raises(error):
        tabulate_single_winner(list('ABC'), ballots)
    with pytest.raises(error):
        tabulate_multi_winner(list('ABC'), ballots, 2)


@pytest.mark.parametrize(('ranking', 'error'), [
    (['A', 'A'], rankchoice.vote.DuplicateCandidate),
    ([], rankchoice.vote.EmptyBallot),
])
def test_invalid_iterator_ballot_rejected(ranking, error):
    with pytest.raises(error):
        tabulate_single_winner(
            list('AB'), [iter(ranking), ('B',), ('B',)]
        )
    with pytest.raises(error):
        tabulate_multi_winner(
            list('ABC'), [iter(ranking), ('B',), ('C',)], 2
        )


def test_iterator_ballots_counted():
    result = tabulate_single_winner(
        list('AB'), [iter('AB'), iter('A'), ('B',)]
    )
    assert dict(result.rounds[0].tallies) == {'A': 2, 'B': 1}
    assert result.winner == 'A'


def test_input_errors_tuple():
    with pytest.raises(INPUT_ERRORS):
        tabulate_single_winner(list('ABA'), [tuple('AB')])
    with pytest.raises(CandidateError):
        tabulate_single_winner(list('ABA'), [tuple('AB')])


@pytest.mark.parametrize('seed', range(5))
def test_irv_properties(seed):
    candidates = list('ABCDE')
    ballots = random_ballots(candidates, 200, seed)
    result = tabulate_single_winner(candidates, ballots)
    assert len(result.rounds) <= len(candidates)
    assert [rnd.number for rnd in result.rounds] == list(
        range(1, len(result.rounds) + 1)
    )
    assert [rnd.winner is not None for rnd in result.rounds] == (
        [False] * (len(result.rounds) - 1) + [True]
    )
    prev_total = None
    prev_exhausted = 0
    for rnd in result.rounds:
        total = rnd.total_votes + rnd.exhausted
        assert prev_total is None or total <= prev_total
        assert rnd.exhausted >= prev_exhausted
        prev_total, prev_exhausted = total, rnd.exhausted
    assert result.winner == result.rounds[-1].winner


@pytest.mark.parametrize('seed', range(5))
def test_determinism(seed):
    candidates = list('ABCDEF')
    ballots = random_ballots(candidates, 100, seed)
    breaker = TieBreaker(['prior_round', 'random'], seed=seed)
    single = [
        json.dumps(tabulate_single_winner(candidates, ballots, breaker)
                   .to_dict())
        for i in range(2)
    ]
    assert single[0] == single[1]
    multi = [
        json.dumps(tabulate_multi_winner(candidates, ballots, 3, breaker)
                   .to_dict())
        for i in range(2)
    ]
    assert multi[0] == multi[1]


FOOD = expand({
    ('Orange',): 4,
    ('Pear', 'Orange'): 2,
    ('Chocolate', 'Strawberry'): 8,
    ('Chocolate', 'Burger'): 4,
    ('Strawberry',): 1,
    ('Burger',): 1,
})

FOOD_CANDIDATES = ['Orange', 'Pear', 'Chocolate', 'Strawberry', 'Burger']


def test_stv_food():
    result = tabulate_multi_winner(FOOD_CANDIDATES, FOOD, 3)
    assert result.elected == ('Chocolate', 'Orange', 'Strawberry')
    assert [rnd.quota for rnd in result.rounds] == [6] * 5
    first, second, third, fourth, fifth = result.rounds
    assert first.elected == ('Chocolate',)
    assert dict(first.transfer_values) == {'Chocolate': Fraction(1, 2)}
    assert dict(second.tallies) == {
        'Orange': 4, 'Pear': 2, 'Strawberry': 5, 'Burger': 3,
    }
    assert second.eliminated == 'Pear'
    assert third.elected == ('Orange',)
    assert dict(third.transfer_values) == {'Orange': 0}
    assert fourth.eliminated == 'Burger'
    assert fourth.exhausted == 0
    assert fifth.elected == ('Strawberry',)
    assert fifth.exhausted == 3
    assert dict(fifth.transfer_values) == {}


def test_stv_example_ten_ballots():
    result = tabulate_multi_winner(list('ABCDE'), expand({
        tuple('AB'): 4,
        tuple('BC'): 2,
        tuple('CD'): 2,
        ('D',): 1,
        tuple('EC'): 1,
    }), 3)
    rounds = result.rounds
    assert rounds[0].quota == 3
    assert rounds[0].elected == ('A',)
    assert rounds[0].transfer_values['A'] == Fraction(1, 4)
    assert rounds[1].tallies['B'] == 3
    assert rounds[1].elected == ('B',)
    assert rounds[1].transfer_values['B'] == 0
    # D and E are tied; D has nothing to pass on
    assert rounds[2].eliminated == 'D'
    assert rounds[2].tie_breaks[0].strategy == 'votes_to_distribute'
    assert rounds[3].eliminated == 'E'
    assert rounds[4].elected == ('C',)
    assert rounds[4].tallies['C'] == 3
    assert result.elected == ('A', 'B', 'C')


def test_stv_simultaneous_election_order():
    result = tabulate_multi_winner(list('ABC'), expand({
        ('A',): 5,
        ('B',): 4,
        ('C',): 1,
    }), 2)
    assert len(result.rounds) == 1
    assert result.rounds[0].quota == 4
    assert result.rounds[0].elected == ('A', 'B')
    assert dict(result.rounds[0].transfer_values) == {
        'A': Fraction(1, 5), 'B': 0,
    }


def test_stv_simultaneous_election_tie():
    result = tabulate_multi_winner(list('ABC'), expand({
        tuple('AC'): 4,
        tuple('BC'): 4,
        ('C',): 1,
    }), 2)
    assert result.rounds[0].elected == ('B', 'A')
    assert result.rounds[0].tie_breaks[0].loser == 'A'
    assert result.elected == ('B', 'A')


def test_stv_remaining_elected_together():
    result = tabulate_multi_winner(list('ABC'), [('A',), ('B',), ('C',)], 2)
    first, second = result.rounds
    assert first.eliminated == 'A'
    assert first.tie_breaks[0].strategy == 'candidate_order'
    assert second.elected == ('C', 'B')
    assert dict(second.tallies) == {'B': 1, 'C': 1}
    assert second.exhausted == 1
    assert result.elected == ('C', 'B')


def test_stv_single_seat_matches_irv():
    candidates = list('ABC')
    result = tabulate_multi_winner(candidates, IRV_EXAMPLE, 1)
    assert result.elected == (
        tabulate_single_winner(candidates, IRV_EXAMPLE).winner,
    )


@pytest.mark.parametrize('n_seats', [0, -1, 3, 4, 1.5])
def test_stv_invalid_winner_count(n_seats):
    with pytest.raises(InvalidWinnerCount):
        tabulate_multi_winner(list('ABC'), [tuple('AB')], n_seats)


def test_stv_insufficient_candidates():
    with pytest.raises(InsufficientCandidates):
        tabulate_multi_winner(['A'], [('A',)], 1)


@pytest.mark.parametrize('seed', range(5))
def test_stv_conservation(seed):
    candidates = list('ABCDEFG')
    ballots = random_ballots(candidates, 150, seed)
    result = tabulate_multi_winner(candidates, ballots, 3)
    assert len(result.elected) == 3
    assert len(set(result.elected)) == 3
    consumed = 0
    for rnd in result.rounds:
        assert all(tally >= 0 for tally in rnd.tallies.values())
        assert rnd.total_votes + rnd.exhausted + consumed == len(ballots)
        consumed += rnd.quota * len(rnd.transfer_values)
        for cand in rnd.elected:
            assert cand in result.elected
    assert len(result.rounds) <= len(candidates)


def test_stv_hare_quota():
    result = tabulate_multi_winner(
        list('ABC'),
        expand({('A',): 3, ('B',): 3, ('C',): 2}),
        2,
        quota_function='hare',
    )
    assert result.rounds[0].quota == 4
    assert result.rounds[0].eliminated == 'C'
    assert result.elected == ('A', 'B')


def test_tabulators_reusable():
    irv = InstantRunoff()
    stv = SingleTransferableVote()
    assert irv.tabulate(list('ABC'), IRV_EXAMPLE) == irv.tabulate(
        list('ABC'), IRV_EXAMPLE
    )
    assert stv.tabulate(FOOD_CANDIDATES, FOOD, 3) == stv.tabulate(
        FOOD_CANDIDATES, FOOD, 3
    )


def test_sparse_ballots_validated_by_configured_validator():
    validator = rankchoice.vote.RankedBallotValidator(allow_sparse_ranks=True)
    ballot = validator.accept_rank_pairs([('A', 1), ('C', 3)], set('ABC'))
    result = InstantRunoff(validator=validator).tabulate(
        list('ABC'), [ballot, ('A', 'B'), ('C',)]
    )
    assert result.winner == 'A'
