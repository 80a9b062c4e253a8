"""Tests for single-elimination bracket generation."""
import math
import random
from functools import partial

import pytest

from conftest import make_teams
from tourney.services.bracket_gen import build_bracket, bye_positions, count_rounds, round_name, round_sizes
from tourney.services.bracket_types import UNFILLED, Filled, MatchState
from tourney.services.errors import InsufficientParticipants
from tourney.services.seeding import random_seed


def _rounds(matches):
    rounds = {}
    for m in matches:
        rounds.setdefault(m.round, []).append(m)
    return rounds


@pytest.mark.parametrize("n", range(2, 40))
def test_round_count_and_single_final(n):
    matches = build_bracket(make_teams(n), tournament_id=1)
    rounds = _rounds(matches)
    assert len(rounds) == math.ceil(math.log2(n))
    assert sorted(rounds) == list(range(1, len(rounds) + 1))
    assert len(rounds[max(rounds)]) == 1


@pytest.mark.parametrize("n", range(2, 40))
def test_per_round_match_counts(n):
    matches = build_bracket(make_teams(n), tournament_id=1)
    rounds = _rounds(matches)
    first = math.ceil(n / 2)
    for k, ms in rounds.items():
        assert len(ms) == math.ceil(first / 2 ** (k - 1))
        assert [m.match_index for m in ms] == list(range(len(ms)))
    assert len(matches) == sum(round_sizes(n))


@pytest.mark.parametrize("n", [2, 3, 4, 7, 8, 15, 16, 31, 32])
def test_total_matches_when_first_round_is_power_of_two(n):
    matches = build_bracket(make_teams(n), tournament_id=1)
    assert len(matches) == 2 * math.ceil(n / 2) - 1


@pytest.mark.parametrize("n", range(2, 40))
def test_round_and_index_unique(n):
    matches = build_bracket(make_teams(n), tournament_id=1)
    positions = [(m.round, m.match_index) for m in matches]
    assert len(positions) == len(set(positions))
    assert len({m.id for m in matches}) == len(matches)


def test_first_round_filled_later_rounds_empty():
    matches = build_bracket(make_teams(8), tournament_id=3)
    for m in matches:
        assert m.tournament_id == 3
        assert m.winner is None
        if m.round == 1:
            assert isinstance(m.team1, Filled) and isinstance(m.team2, Filled)
            assert m.state == MatchState.READY
        else:
            assert m.team1 == UNFILLED and m.team2 == UNFILLED
            assert m.state == MatchState.UNFILLED


def test_every_participant_appears_once_in_round_one():
    teams = make_teams(13)
    matches = build_bracket(teams, tournament_id=1)
    seen = [p.id for m in matches if m.round == 1 for p in m.participants]
    assert sorted(seen) == [t.id for t in teams]


def test_odd_count_leaves_one_bye():
    matches = build_bracket(make_teams(5), tournament_id=1)
    first = [m for m in matches if m.round == 1]
    assert len(first) == 3
    byes = [m for m in first if m.team2 == UNFILLED]
    assert len(byes) == 1
    assert byes[0].match_index == 2
    assert byes[0].winner is None  # no auto-advance


def test_weighted_six_round_one_pairs():
    matches = build_bracket(make_teams(6, weights=[1, 2, 3, 4, 5, 6]), tournament_id=1)
    first = sorted((m for m in matches if m.round == 1), key=lambda m: m.match_index)
    pairs = [tuple(p.weight for p in m.participants) for m in first]
    assert pairs == [(1, 6), (2, 5), (3, 4)]


def test_match_ids():
    matches = build_bracket(make_teams(4), tournament_id=9)
    assert [m.id for m in matches] == ["9-match-1-0", "9-match-1-1", "9-match-2-0"]


def test_two_participants_single_final():
    matches = build_bracket(make_teams(2), tournament_id=1)
    assert len(matches) == 1
    assert matches[0].round == 1
    assert matches[0].state == MatchState.READY


@pytest.mark.parametrize("n", [0, 1])
def test_insufficient_participants(n):
    with pytest.raises(InsufficientParticipants):
        build_bracket(make_teams(n), tournament_id=1)


def test_weighted_build_is_repeatable():
    teams = make_teams(10, weights=[2, 5, 1, 3, 3, 4, 1, 2, 5, 4])
    assert build_bracket(teams, 1) == build_bracket(teams, 1)


def test_random_build_same_layout():
    teams = make_teams(11)
    a = build_bracket(teams, 1, seed=partial(random_seed, rng=random.Random(1)))
    b = build_bracket(teams, 1, seed=partial(random_seed, rng=random.Random(2)))
    assert [(m.id, m.round, m.match_index) for m in a] == [(m.id, m.round, m.match_index) for m in b]


def test_count_rounds():
    assert count_rounds(1) == 0
    assert count_rounds(2) == 1
    assert count_rounds(3) == 2
    assert count_rounds(8) == 3
    assert count_rounds(9) == 4


def test_round_name():
    assert round_name(1) == "Final"
    assert round_name(2) == "Semifinal"
    assert round_name(4) == "Quarterfinal"
    assert round_name(8) == "Round of 16"
    assert round_name(3) == "Round of 6"


def test_bye_positions():
    assert bye_positions(1) == set()
    assert bye_positions(2) == set()
    assert bye_positions(8) == set()
    assert bye_positions(5) == {(1, 2), (2, 1)}
    assert bye_positions(6) == {(2, 1)}
    assert bye_positions(7) == {(1, 3)}
    assert bye_positions(9) == {(1, 4), (2, 2), (3, 1)}


@pytest.mark.parametrize("n", range(2, 40))
def test_round_one_byes_are_the_unfilled_matches(n):
    matches = build_bracket(make_teams(n), tournament_id=1)
    unfilled = {(m.round, m.match_index) for m in matches if m.round == 1 and m.team2 == UNFILLED}
    assert unfilled == {pos for pos in bye_positions(n) if pos[0] == 1}
