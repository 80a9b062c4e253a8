"""Value types shared by the bracket builder and the winner advancer."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class Participant:
    """A registered team. Lower weight = stronger seed; None = weakest."""

    id: int
    name: str
    players: Tuple[str, ...] = ()
    weight: Optional[float] = None


@dataclass(frozen=True)
class Filled:
    """Slot occupied by a participant."""

    participant: Participant


@dataclass(frozen=True)
class Unfilled:
    """Slot not (yet) occupied. Distinct from an eliminated participant."""


UNFILLED = Unfilled()

Slot = Union[Filled, Unfilled]


class MatchState(str, enum.Enum):
    UNFILLED = "unfilled"  # one or both slots empty
    READY = "ready"  # both slots filled, no winner
    DECIDED = "decided"  # winner set


@dataclass(frozen=True)
class Match:
    """One match of a bracket. (round, match_index) is unique per tournament."""

    id: str
    tournament_id: int
    round: int
    match_index: int
    team1: Slot = UNFILLED
    team2: Slot = UNFILLED
    winner: Optional[Participant] = None

    @property
    def state(self) -> MatchState:
        if self.winner is not None:
            return MatchState.DECIDED
        if isinstance(self.team1, Filled) and isinstance(self.team2, Filled):
            return MatchState.READY
        return MatchState.UNFILLED

    @property
    def participants(self) -> Tuple[Participant, ...]:
        """Participants currently occupying a slot, team1 first."""
        return tuple(s.participant for s in (self.team1, self.team2) if isinstance(s, Filled))

    def slot(self, position: int) -> Slot:
        return self.team1 if position == 1 else self.team2


def slot_participant(slot: Slot) -> Optional[Participant]:
    """Return the occupant of a slot, or None when unfilled."""
    if isinstance(slot, Filled):
        return slot.participant
    return None


def fill(participant: Optional[Participant]) -> Slot:
    return Filled(participant) if participant is not None else UNFILLED
