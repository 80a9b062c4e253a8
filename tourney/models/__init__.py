"""Database models."""
from tourney.models.base import Base, init_db
from tourney.models.team import Team, tournament_teams
from tourney.models.tournament import Tournament
from tourney.models.bracket import BracketMatch  # noqa: F401 - for metadata

__all__ = [
    "Base",
    "Team",
    "Tournament",
    "BracketMatch",
    "tournament_teams",
    "init_db",
]
