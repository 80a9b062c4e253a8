"""Bracket generation service."""
from __future__ import annotations

import logging
from typing import List, Sequence, Set, Tuple

from tourney.services.bracket_types import UNFILLED, Filled, Match, Participant
from tourney.services.errors import InconsistentBracket, InsufficientParticipants
from tourney.services.seeding import SeedFn, weighted_seed

logger = logging.getLogger("tourney.bracket_gen")


def count_rounds(n: int) -> int:
    """ceil(log2(n)); 0 for a single participant."""
    if n < 2:
        return 0
    return (n - 1).bit_length()


def round_sizes(n: int) -> List[int]:
    """Match count per round, round 1 first. Round k has ceil(first / 2^(k-1)) matches."""
    first = (n + 1) // 2
    sizes = []
    for r in range(1, count_rounds(n) + 1):
        step = 1 << (r - 1)
        sizes.append((first + step - 1) // step)
    return sizes


def bye_positions(n: int) -> Set[Tuple[int, int]]:
    """(round, match_index) of every match whose team2 can never be filled.

    Round 1 has one when n is odd. In later rounds a match is a bye when its
    odd child (2 * match_index + 1) does not exist in the previous round.
    """
    if n < 2:
        return set()
    sizes = round_sizes(n)
    byes = set()
    if n % 2:
        byes.add((1, sizes[0] - 1))
    for round_num in range(2, len(sizes) + 1):
        prev = sizes[round_num - 2]
        for i in range(sizes[round_num - 1]):
            if 2 * i + 1 >= prev:
                byes.add((round_num, i))
    return byes


def round_name(matches_in_round: int) -> str:
    """Get the name of a round based on how many matches it holds."""
    teams_in_round = matches_in_round * 2
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def match_id(tournament_id, round_num: int, match_index: int) -> str:
    return f"{tournament_id}-match-{round_num}-{match_index}"


def build_bracket(
    participants: Sequence[Participant],
    tournament_id: int,
    seed: SeedFn = weighted_seed,
) -> List[Match]:
    """Create every match of a single-elimination bracket, round 1 first.

    Round 1 pairs seeded[2i] vs seeded[2i+1]; an odd field leaves team2 of the
    last round-1 match unfilled (a bye, which still needs an explicit winner).
    Later rounds are placeholders filled only by winner advancement.
    """
    n = len(participants)
    if n < 2:
        raise InsufficientParticipants(n)

    seeded = seed(participants)
    if len(seeded) != n:
        raise InconsistentBracket(f"Seeding returned {len(seeded)} teams for {n} participants")

    sizes = round_sizes(n)
    if sizes[-1] != 1:
        raise InconsistentBracket(f"Final round has {sizes[-1]} matches for {n} participants")

    matches: List[Match] = []
    for i in range(sizes[0]):
        team2 = Filled(seeded[2 * i + 1]) if 2 * i + 1 < n else UNFILLED
        matches.append(
            Match(
                id=match_id(tournament_id, 1, i),
                tournament_id=tournament_id,
                round=1,
                match_index=i,
                team1=Filled(seeded[2 * i]),
                team2=team2,
            )
        )

    for round_num, size in enumerate(sizes[1:], start=2):
        for i in range(size):
            matches.append(
                Match(
                    id=match_id(tournament_id, round_num, i),
                    tournament_id=tournament_id,
                    round=round_num,
                    match_index=i,
                )
            )

    logger.info(
        "Built bracket for tournament %s: %d teams, %d rounds, %d matches",
        tournament_id, n, len(sizes), len(matches),
    )
    return matches
