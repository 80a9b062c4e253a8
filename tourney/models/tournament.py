"""Tournament model."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tourney.models.base import Base
from tourney.models.team import tournament_teams

TOURNAMENT_STATUSES = ("upcoming", "active", "completed")


class Tournament(Base):
    """Tournament with its roster, seeding strategy and lifecycle status."""

    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    month: Mapped[str] = mapped_column(String(16), nullable=False)
    year: Mapped[str] = mapped_column(String(8), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="upcoming")  # upcoming, active, completed
    seeding: Mapped[str] = mapped_column(String(16), default="weighted")  # fixed for every (re)start
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))

    teams = relationship(
        "Team", secondary=tournament_teams, back_populates="tournaments", order_by="Team.id"
    )
    matches = relationship(
        "BracketMatch", back_populates="tournament", cascade="all, delete-orphan"
    )
