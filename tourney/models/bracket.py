"""Bracket match model."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tourney.models.base import Base


class BracketMatch(Base):
    """Single match in a tournament bracket."""

    __tablename__ = "bracket_matches"
    __table_args__ = (
        UniqueConstraint("tournament_id", "round_num", "match_index", name="uq_match_position"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # "{tournament_id}-match-{round}-{index}"
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id"), nullable=False, index=True)
    round_num: Mapped[int] = mapped_column(Integer, nullable=False)
    match_index: Mapped[int] = mapped_column(Integer, nullable=False)
    team1_id: Mapped[Optional[int]] = mapped_column(ForeignKey("teams.id"), nullable=True)
    team2_id: Mapped[Optional[int]] = mapped_column(ForeignKey("teams.id"), nullable=True)
    winner_id: Mapped[Optional[int]] = mapped_column(ForeignKey("teams.id"), nullable=True)
    court_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    match_time: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)  # e.g. "14:30" or "2:30 PM"

    tournament = relationship("Tournament", back_populates="matches")
