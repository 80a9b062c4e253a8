"""Winner advancement: record a match result and push the winner to its parent match."""
from __future__ import annotations

import dataclasses
import logging
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from tourney.services.bracket_types import Match, Participant, fill, slot_participant
from tourney.services.errors import InconsistentBracket, InvalidWinner, MatchNotFound

logger = logging.getLogger("tourney.advancement")


class AdvanceResult(NamedTuple):
    matches: List[Match]
    completed: bool


def parent_position(match: Match) -> Tuple[int, int, int]:
    """(round, match_index, slot) the winner of this match moves to. Even index -> slot 1."""
    return match.round + 1, match.match_index // 2, 1 if match.match_index % 2 == 0 else 2


def is_completed(matches: Sequence[Match]) -> bool:
    return bool(matches) and all(m.winner is not None for m in matches)


def _with_slot(match: Match, slot: int, participant: Optional[Participant]) -> Match:
    value = fill(participant)
    if slot == 1:
        return dataclasses.replace(match, team1=value)
    return dataclasses.replace(match, team2=value)


def advance_winner(matches: Sequence[Match], match_id: str, winner_id) -> AdvanceResult:
    """Declare winner_id the winner of match_id and propagate it one round up.

    Matches are immutable; the input sequence is never modified and a new list
    is returned, so a failed call leaves the caller's bracket untouched.

    Changing an existing winner overwrites the same parent slot (the slot
    depends only on match_index). If the displaced team had already won the
    parent match, that result is retracted and the team is removed from every
    later slot it reached.
    """
    match = next((m for m in matches if m.id == match_id), None)
    if match is None:
        raise MatchNotFound(match_id)

    winner = next((p for p in match.participants if p.id == winner_id), None)
    if winner is None:
        raise InvalidWinner(match_id, winner_id)

    by_pos: Dict[Tuple[int, int], Match] = {(m.round, m.match_index): m for m in matches}
    final_round = max(m.round for m in matches)
    updated: Dict[str, Match] = {match.id: dataclasses.replace(match, winner=winner)}

    if match.round < final_round:
        child = match
        carried: Optional[Participant] = winner
        while child.round < final_round:
            p_round, p_index, p_slot = parent_position(child)
            parent = by_pos.get((p_round, p_index))
            if parent is None:
                raise InconsistentBracket(
                    f"No parent match (round {p_round}, index {p_index}) for match {child.id}"
                )
            parent = updated.get(parent.id, parent)
            displaced = slot_participant(parent.slot(p_slot))
            if displaced == carried:
                break
            parent = _with_slot(parent, p_slot, carried)
            if displaced is not None and parent.winner == displaced:
                # The displaced team already won here; its later progress is void
                logger.info("Retracting %s from match %s", displaced.name, parent.id)
                parent = dataclasses.replace(parent, winner=None)
                updated[parent.id] = parent
                child = parent
                carried = None
                continue
            updated[parent.id] = parent
            break

    result = [updated.get(m.id, m) for m in matches]
    completed = is_completed(result)
    logger.info(
        "Match %s won by %s%s", match_id, winner.name, " (tournament completed)" if completed else ""
    )
    return AdvanceResult(result, completed)
