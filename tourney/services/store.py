"""Persistence for brackets: the store interface the service layer works against, and its SQL implementation."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tourney.models import BracketMatch, Team, Tournament
from tourney.models.tournament import TOURNAMENT_STATUSES
from tourney.services.bracket_types import Match, Participant, fill, slot_participant


class BracketStore(Protocol):
    """What the bracket service needs from storage, per tournament."""

    async def get_participants(self, tournament_id: int) -> List[Participant]: ...

    async def get_matches(self, tournament_id: int) -> List[Match]: ...

    async def save_matches(self, tournament_id: int, matches: Sequence[Match]) -> None: ...

    async def update_matches(self, tournament_id: int, matches: Iterable[Match]) -> None: ...

    async def get_status(self, tournament_id: int) -> Optional[str]: ...

    async def set_status(self, tournament_id: int, status: str) -> None: ...


def to_participant(team: Team) -> Participant:
    return Participant(
        id=team.id,
        name=team.name,
        players=tuple(team.players or ()),
        weight=team.weight,
    )


class SqlBracketStore:
    """BracketStore backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_participants(self, tournament_id: int) -> List[Participant]:
        result = await self.session.execute(
            select(Tournament)
            .where(Tournament.id == tournament_id)
            .options(selectinload(Tournament.teams))
            .execution_options(populate_existing=True)
        )
        t = result.scalar_one_or_none()
        if not t:
            return []
        return [to_participant(team) for team in t.teams]

    async def get_matches(self, tournament_id: int) -> List[Match]:
        result = await self.session.execute(
            select(BracketMatch)
            .where(BracketMatch.tournament_id == tournament_id)
            .order_by(BracketMatch.round_num, BracketMatch.match_index)
        )
        rows = result.scalars().all()
        team_ids = {
            tid for m in rows for tid in (m.team1_id, m.team2_id, m.winner_id) if tid is not None
        }
        teams: Dict[int, Participant] = {}
        if team_ids:
            team_result = await self.session.execute(select(Team).where(Team.id.in_(team_ids)))
            teams = {t.id: to_participant(t) for t in team_result.scalars().all()}
        return [
            Match(
                id=m.id,
                tournament_id=m.tournament_id,
                round=m.round_num,
                match_index=m.match_index,
                team1=fill(teams.get(m.team1_id)),
                team2=fill(teams.get(m.team2_id)),
                winner=teams.get(m.winner_id),
            )
            for m in rows
        ]

    async def save_matches(self, tournament_id: int, matches: Sequence[Match]) -> None:
        """Replace the whole bracket of a tournament."""
        existing = await self.session.execute(
            select(BracketMatch).where(BracketMatch.tournament_id == tournament_id)
        )
        for row in existing.scalars().all():
            await self.session.delete(row)
        # Old rows must be gone before re-inserting the same ids
        await self.session.flush()
        for m in matches:
            row = BracketMatch(
                id=m.id,
                tournament_id=tournament_id,
                round_num=m.round,
                match_index=m.match_index,
            )
            _copy_slots(row, m)
            self.session.add(row)
        await self.session.flush()

    async def update_matches(self, tournament_id: int, matches: Iterable[Match]) -> None:
        for m in matches:
            row = await self.session.get(BracketMatch, m.id)
            if not row or row.tournament_id != tournament_id:
                raise LookupError(f"Match {m.id} is not stored for tournament {tournament_id}")
            _copy_slots(row, m)
        await self.session.flush()

    async def get_status(self, tournament_id: int) -> Optional[str]:
        t = await self.session.get(Tournament, tournament_id)
        return t.status if t else None

    async def set_status(self, tournament_id: int, status: str) -> None:
        if status not in TOURNAMENT_STATUSES:
            raise ValueError(f"Unknown tournament status: {status}")
        t = await self.session.get(Tournament, tournament_id)
        if t:
            t.status = status


def _copy_slots(row: BracketMatch, m: Match) -> None:
    team1 = slot_participant(m.team1)
    team2 = slot_participant(m.team2)
    row.team1_id = team1.id if team1 else None
    row.team2_id = team2.id if team2 else None
    row.winner_id = m.winner.id if m.winner else None
