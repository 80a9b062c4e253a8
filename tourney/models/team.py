"""Team model and tournament roster association."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import JSON, Column, Float, ForeignKey, Integer, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tourney.models.base import Base

# Roster: which teams are entered in which tournament
tournament_teams = Table(
    "tournament_teams",
    Base.metadata,
    Column("tournament_id", ForeignKey("tournaments.id", ondelete="CASCADE"), primary_key=True),
    Column("team_id", ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
)


class Team(Base):
    """Registered team. Teams are global and may enter several tournaments."""

    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    players: Mapped[list] = mapped_column(JSON, default=list)
    weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # 1-5, lower = higher seed

    tournaments = relationship(
        "Tournament", secondary=tournament_teams, back_populates="teams"
    )
