"""API routes for teams, tournaments and bracket play."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

import config
from tourney.models import BracketMatch, Team, Tournament
from tourney.models.base import async_session_factory
from tourney.services.bracket_gen import bye_positions, round_name
from tourney.services.bracket_types import Match, Participant, slot_participant
from tourney.services.errors import (
    InconsistentBracket,
    InsufficientParticipants,
    InvalidWinner,
    MatchNotFound,
    TournamentCompleted,
    UnknownSeedingStrategy,
)
from tourney.services.seeding import SEEDING_STRATEGIES
from tourney.services.store import SqlBracketStore
from tourney.services.tournament_service import (
    TournamentLocks,
    declare_winner,
    rebuild_after_roster_change,
    start_tournament,
)

router = APIRouter(prefix="/api", tags=["tournaments"])
logger = logging.getLogger("tourney.api")


def get_locks(request: Request) -> TournamentLocks:
    return request.app.state.tournament_locks


# --- Pydantic schemas ---


def _required_text(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("must not be empty")
    return v


class TeamCreate(BaseModel):
    name: str
    players: list[str] = []
    weight: Optional[float] = None  # 1-5, lower = higher seed, max one decimal

    @field_validator("name")
    @classmethod
    def name_required(cls, v):
        return _required_text(v)

    @field_validator("players")
    @classmethod
    def strip_players(cls, v):
        return [p.strip() for p in v if p and p.strip()]

    @field_validator("weight")
    @classmethod
    def check_weight(cls, v):
        if v is None:
            return v
        if v < 1 or v > 5:
            raise ValueError("Weight must be between 1 and 5")
        if round(v, 1) != v:
            raise ValueError("Weight can have maximum one digit after decimal point")
        return v


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    players: list[str]
    weight: Optional[float]


class TournamentCreate(BaseModel):
    name: str
    month: str
    year: str
    seeding: Optional[str] = None  # weighted | random; defaults to config.SEEDING_STRATEGY

    @field_validator("name", "month", "year")
    @classmethod
    def text_required(cls, v):
        return _required_text(v)


class TournamentUpdate(BaseModel):
    name: Optional[str] = None
    month: Optional[str] = None
    year: Optional[str] = None

    @field_validator("name", "month", "year")
    @classmethod
    def text_required(cls, v):
        return None if v is None else _required_text(v)


class RosterAdd(BaseModel):
    team_id: int


class WinnerRequest(BaseModel):
    winner_id: int


class MatchScheduleUpdate(BaseModel):
    court_number: Optional[str] = None
    match_time: Optional[str] = None  # e.g. "14:30" or "2:30 PM"

    @field_validator("court_number", "match_time")
    @classmethod
    def blank_is_none(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None


# --- Serialization helpers ---


def _participant_dict(p: Optional[Participant]) -> Optional[dict]:
    if p is None:
        return None
    return {"id": p.id, "name": p.name, "players": list(p.players), "weight": p.weight}


def _match_dict(m: Match, schedule: dict) -> dict:
    court_number, match_time = schedule.get(m.id, (None, None))
    return {
        "id": m.id,
        "tournament_id": m.tournament_id,
        "round": m.round,
        "match_index": m.match_index,
        "team1": _participant_dict(slot_participant(m.team1)),
        "team2": _participant_dict(slot_participant(m.team2)),
        "winner": _participant_dict(m.winner),
        "state": m.state.value,
        "court_number": court_number,
        "match_time": match_time,
    }


async def _schedule(session: AsyncSession, tournament_id: int) -> dict:
    result = await session.execute(
        select(BracketMatch.id, BracketMatch.court_number, BracketMatch.match_time).where(
            BracketMatch.tournament_id == tournament_id
        )
    )
    return {row[0]: (row[1], row[2]) for row in result.all()}


async def _matches_payload(session: AsyncSession, tournament_id: int, matches=None) -> list[dict]:
    if matches is None:
        matches = await SqlBracketStore(session).get_matches(tournament_id)
    schedule = await _schedule(session, tournament_id)
    return [_match_dict(m, schedule) for m in matches]


def _tournament_summary(t: Tournament) -> dict:
    return {
        "id": t.id,
        "name": t.name,
        "month": t.month,
        "year": t.year,
        "status": t.status,
        "seeding": t.seeding,
        "created_at": t.created_at.isoformat() if t.created_at else None,
    }


async def _load_tournament(session: AsyncSession, tournament_id: int) -> Tournament:
    result = await session.execute(
        select(Tournament)
        .where(Tournament.id == tournament_id)
        .options(selectinload(Tournament.teams))
        .execution_options(populate_existing=True)
    )
    t = result.scalar_one_or_none()
    if not t:
        raise HTTPException(404, "Tournament not found")
    return t


async def _load_team(session: AsyncSession, team_id: int) -> Team:
    result = await session.execute(
        select(Team)
        .where(Team.id == team_id)
        .options(selectinload(Team.tournaments))
        .execution_options(populate_existing=True)
    )
    team = result.scalar_one_or_none()
    if not team:
        raise HTTPException(404, "Team not found")
    return team


async def _tournament_details(session: AsyncSession, tournament_id: int) -> dict:
    t = await _load_tournament(session, tournament_id)
    data = _tournament_summary(t)
    data["teams"] = [TeamResponse.model_validate(team).model_dump() for team in t.teams]
    data["matches"] = await _matches_payload(session, tournament_id)
    return data


# --- Teams ---


@router.get("/teams")
async def list_teams():
    """List all registered teams."""
    async with async_session_factory() as session:
        result = await session.execute(select(Team).order_by(Team.id))
        return [TeamResponse.model_validate(t) for t in result.scalars().all()]


@router.post("/teams", status_code=201)
async def create_team(body: TeamCreate):
    """Register a team."""
    async with async_session_factory() as session:
        team = Team(name=body.name, players=body.players, weight=body.weight)
        session.add(team)
        await session.commit()
        await session.refresh(team)
        return TeamResponse.model_validate(team)


@router.put("/teams/{team_id}")
async def update_team(team_id: int, body: TeamCreate):
    """Edit a team. Matches reference teams by id, so brackets show the new details."""
    async with async_session_factory() as session:
        team = await session.get(Team, team_id)
        if not team:
            raise HTTPException(404, "Team not found")
        team.name = body.name
        team.players = body.players
        team.weight = body.weight
        await session.commit()
        await session.refresh(team)
        return TeamResponse.model_validate(team)


@router.delete("/teams/{team_id}")
async def delete_team(team_id: int, locks: TournamentLocks = Depends(get_locks)):
    """Delete a team, removing it from every roster and rebuilding affected brackets."""
    # The team lock keeps it from entering tournaments we have not locked
    async with locks.for_team(team_id):
        async with async_session_factory() as session:
            team = await _load_team(session, team_id)
            async with locks.hold(*(t.id for t in team.tournaments)):
                # Rosters may only have shrunk while waiting for the tournament locks
                team = await _load_team(session, team_id)
                affected = [(t.id, t.seeding) for t in team.tournaments]
                rebuilt = []
                try:
                    team.tournaments.clear()
                    await session.flush()
                    store = SqlBracketStore(session)
                    for tid, seeding in affected:
                        if await rebuild_after_roster_change(store, tid, seeding) is not None:
                            rebuilt.append(tid)
                    await session.delete(team)
                    await session.commit()
                except Exception:
                    await session.rollback()
                    logger.exception("delete_team failed")
                    raise
    locks.discard_team(team_id)
    return {"ok": True, "deleted": team_id, "rebuilt_tournaments": rebuilt}


# --- Tournaments ---


@router.get("/tournaments")
async def list_tournaments():
    """List tournaments, newest first."""
    async with async_session_factory() as session:
        result = await session.execute(select(Tournament).order_by(Tournament.id.desc()))
        return [_tournament_summary(t) for t in result.scalars().all()]


@router.post("/tournaments", status_code=201)
async def create_tournament(body: TournamentCreate):
    """Create an upcoming tournament. Its seeding strategy is fixed for every (re)start."""
    seeding = (body.seeding or config.SEEDING_STRATEGY).strip().lower()
    if seeding not in SEEDING_STRATEGIES:
        raise HTTPException(400, str(UnknownSeedingStrategy(seeding)))
    async with async_session_factory() as session:
        t = Tournament(
            name=body.name,
            month=body.month,
            year=body.year,
            status="upcoming",
            seeding=seeding,
        )
        session.add(t)
        await session.commit()
        await session.refresh(t)
        return _tournament_summary(t)


@router.get("/tournaments/{tournament_id}")
async def get_tournament(tournament_id: int):
    """Tournament with its roster and matches."""
    async with async_session_factory() as session:
        return await _tournament_details(session, tournament_id)


@router.patch("/tournaments/{tournament_id}")
async def update_tournament(tournament_id: int, body: TournamentUpdate):
    """Rename a tournament or change its month/year."""
    async with async_session_factory() as session:
        t = await session.get(Tournament, tournament_id)
        if not t:
            raise HTTPException(404, "Tournament not found")
        for key, value in body.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(t, key, value)
        await session.commit()
        await session.refresh(t)
        return _tournament_summary(t)


@router.delete("/tournaments/{tournament_id}")
async def delete_tournament(tournament_id: int, locks: TournamentLocks = Depends(get_locks)):
    """Delete a tournament with its roster entries and bracket. Teams are kept."""
    async with locks.for_tournament(tournament_id):
        async with async_session_factory() as session:
            result = await session.execute(
                select(Tournament)
                .where(Tournament.id == tournament_id)
                .options(selectinload(Tournament.teams), selectinload(Tournament.matches))
            )
            t = result.scalar_one_or_none()
            if not t:
                raise HTTPException(404, "Tournament not found")
            name = t.name
            await session.delete(t)
            await session.commit()
    locks.discard(tournament_id)
    return {"ok": True, "deleted": name}


# --- Roster ---


@router.get("/tournaments/{tournament_id}/teams")
async def list_tournament_teams(tournament_id: int):
    async with async_session_factory() as session:
        t = await _load_tournament(session, tournament_id)
        return [TeamResponse.model_validate(team) for team in t.teams]


@router.post("/tournaments/{tournament_id}/teams")
async def add_tournament_team(
    tournament_id: int, body: RosterAdd, locks: TournamentLocks = Depends(get_locks)
):
    """Enter a team. A started bracket is rebuilt with the new roster."""
    async with locks.for_team(body.team_id), locks.for_tournament(tournament_id):
        async with async_session_factory() as session:
            t = await _load_tournament(session, tournament_id)
            team = await session.get(Team, body.team_id)
            if not team:
                raise HTTPException(404, "Team not found")
            if any(x.id == team.id for x in t.teams):
                raise HTTPException(400, "Team already in tournament")
            try:
                t.teams.append(team)
                await session.flush()
                await rebuild_after_roster_change(SqlBracketStore(session), tournament_id, t.seeding)
                await session.commit()
            except Exception:
                await session.rollback()
                logger.exception("add_tournament_team failed")
                raise
            return await _tournament_details(session, tournament_id)


@router.delete("/tournaments/{tournament_id}/teams/{team_id}")
async def remove_tournament_team(
    tournament_id: int, team_id: int, locks: TournamentLocks = Depends(get_locks)
):
    """Withdraw a team. A started bracket is rebuilt, or cleared if fewer than two teams remain."""
    async with locks.for_tournament(tournament_id):
        async with async_session_factory() as session:
            t = await _load_tournament(session, tournament_id)
            team = next((x for x in t.teams if x.id == team_id), None)
            if not team:
                raise HTTPException(404, "Team not found in tournament")
            try:
                t.teams.remove(team)
                await session.flush()
                await rebuild_after_roster_change(SqlBracketStore(session), tournament_id, t.seeding)
                await session.commit()
            except Exception:
                await session.rollback()
                logger.exception("remove_tournament_team failed")
                raise
            return await _tournament_details(session, tournament_id)


# --- Bracket ---


@router.post("/tournaments/{tournament_id}/start")
async def start_tournament_route(tournament_id: int, locks: TournamentLocks = Depends(get_locks)):
    """Start (or restart) a tournament: discard any bracket and seed a new one."""
    async with locks.for_tournament(tournament_id):
        async with async_session_factory() as session:
            t = await _load_tournament(session, tournament_id)
            try:
                matches = await start_tournament(SqlBracketStore(session), tournament_id, t.seeding)
                await session.commit()
            except (InsufficientParticipants, UnknownSeedingStrategy) as e:
                await session.rollback()
                raise HTTPException(400, str(e))
            except Exception:
                await session.rollback()
                logger.exception("start_tournament failed")
                raise
            return {
                "ok": True,
                "status": "active",
                "matches": await _matches_payload(session, tournament_id, matches),
            }


@router.get("/tournaments/{tournament_id}/matches")
async def list_matches(tournament_id: int):
    async with async_session_factory() as session:
        await _load_tournament(session, tournament_id)
        return await _matches_payload(session, tournament_id)


@router.get("/tournaments/{tournament_id}/bracket")
async def get_bracket(tournament_id: int):
    """Matches grouped by round, with round names and BYE markers where team2 can never be filled."""
    async with async_session_factory() as session:
        t = await _load_tournament(session, tournament_id)
        matches = await _matches_payload(session, tournament_id)
        entrants = sum(1 for m in matches if m["round"] == 1 for k in ("team1", "team2") if m[k])
        byes = bye_positions(entrants)
        rounds: dict[int, list] = {}
        for m in matches:
            if (m["round"], m["match_index"]) in byes:
                m["bye"] = True
            rounds.setdefault(m["round"], []).append(m)
        return {
            "tournament_id": t.id,
            "status": t.status,
            "rounds": [
                {"round": r, "name": round_name(len(ms)), "matches": ms}
                for r, ms in sorted(rounds.items())
            ],
        }


@router.post("/tournaments/{tournament_id}/matches/{match_id}/winner")
async def record_winner(
    tournament_id: int,
    match_id: str,
    body: WinnerRequest,
    locks: TournamentLocks = Depends(get_locks),
):
    """Declare a match winner and advance them. Completes the tournament when every match is decided."""
    async with locks.for_tournament(tournament_id):
        async with async_session_factory() as session:
            await _load_tournament(session, tournament_id)
            store = SqlBracketStore(session)
            try:
                result = await declare_winner(store, tournament_id, match_id, body.winner_id)
                await session.commit()
            except MatchNotFound as e:
                await session.rollback()
                raise HTTPException(404, str(e))
            except InvalidWinner as e:
                await session.rollback()
                raise HTTPException(400, str(e))
            except TournamentCompleted as e:
                await session.rollback()
                raise HTTPException(409, str(e))
            except InconsistentBracket as e:
                await session.rollback()
                raise HTTPException(409, f"Bracket is inconsistent: {e}")
            except Exception:
                await session.rollback()
                logger.exception("record_winner failed")
                raise
            return {
                "matches": await _matches_payload(session, tournament_id, result.matches),
                "completed": result.completed,
                "status": await store.get_status(tournament_id),
            }


@router.patch("/tournaments/{tournament_id}/matches/{match_id}")
async def update_match_schedule(
    tournament_id: int,
    match_id: str,
    body: MatchScheduleUpdate,
    locks: TournamentLocks = Depends(get_locks),
):
    """Set court number and/or match time. Blank values clear the field."""
    async with locks.for_tournament(tournament_id):
        async with async_session_factory() as session:
            row = await session.get(BracketMatch, match_id)
            if not row or row.tournament_id != tournament_id:
                raise HTTPException(404, "Match not found")
            for key, value in body.model_dump(exclude_unset=True).items():
                setattr(row, key, value)
            await session.commit()
            matches = await _matches_payload(session, tournament_id)
            return next(m for m in matches if m["id"] == match_id)
