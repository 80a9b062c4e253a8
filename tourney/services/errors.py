"""Bracket errors. All are ValueErrors so callers can map them to 400 like other input errors."""
from __future__ import annotations


class BracketError(ValueError):
    """Base class for bracket generation and advancement failures."""


class InsufficientParticipants(BracketError):
    def __init__(self, count: int):
        super().__init__(f"Need at least 2 teams to start a tournament (got {count})")
        self.count = count


class MatchNotFound(BracketError):
    def __init__(self, match_id: str):
        super().__init__(f"Match not found: {match_id}")
        self.match_id = match_id


class InvalidWinner(BracketError):
    def __init__(self, match_id: str, winner_id):
        super().__init__(f"Team {winner_id} is not playing in match {match_id}")
        self.match_id = match_id
        self.winner_id = winner_id


class InconsistentBracket(BracketError):
    """Internal invariant violated (e.g. missing parent match). Indicates a builder bug."""


class UnknownSeedingStrategy(BracketError):
    def __init__(self, name: str):
        super().__init__(f"Unknown seeding strategy: {name!r}")
        self.name = name


class TournamentCompleted(BracketError):
    """Results of a completed tournament are final until it is restarted."""

    def __init__(self, tournament_id: int, match_id: str):
        super().__init__(
            f"Tournament {tournament_id} is completed; restart it to change match {match_id}"
        )
        self.tournament_id = tournament_id
        self.match_id = match_id
