"""Tournament bracket lifecycle: start/restart, record winners, rebuild after roster changes.

These functions read and write through a BracketStore but never commit; the
caller owns the transaction and must hold the tournament's lock (see
TournamentLocks) from the first read until the commit.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from tourney.services.advancement import AdvanceResult, advance_winner
from tourney.services.bracket_gen import build_bracket
from tourney.services.bracket_types import Match
from tourney.services.errors import InconsistentBracket, TournamentCompleted
from tourney.services.seeding import get_seeding_strategy
from tourney.services.store import BracketStore

logger = logging.getLogger("tourney.tournament_service")


class TournamentLocks:
    """One asyncio.Lock per tournament id. Different tournaments never contend.

    Team locks guard roster membership of a single team (entering it in a
    tournament vs deleting it). When both are needed the team lock is taken
    first.
    """

    def __init__(self) -> None:
        self._locks: Dict[int, asyncio.Lock] = {}
        self._team_locks: Dict[int, asyncio.Lock] = {}

    def for_tournament(self, tournament_id: int) -> asyncio.Lock:
        lock = self._locks.get(tournament_id)
        if lock is None:
            lock = self._locks[tournament_id] = asyncio.Lock()
        return lock

    def for_team(self, team_id: int) -> asyncio.Lock:
        lock = self._team_locks.get(team_id)
        if lock is None:
            lock = self._team_locks[team_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, *tournament_ids: int) -> AsyncIterator[None]:
        """Hold the locks of several tournaments, acquired in id order."""
        async with AsyncExitStack() as stack:
            for tid in sorted(set(tournament_ids)):
                await stack.enter_async_context(self.for_tournament(tid))
            yield

    def discard(self, tournament_id: int) -> None:
        lock = self._locks.get(tournament_id)
        if lock is not None and not lock.locked():
            del self._locks[tournament_id]

    def discard_team(self, team_id: int) -> None:
        lock = self._team_locks.get(team_id)
        if lock is not None and not lock.locked():
            del self._team_locks[team_id]


async def start_tournament(store: BracketStore, tournament_id: int, seeding: str) -> List[Match]:
    """Build a fresh bracket from the current roster, replacing any existing one.

    Raises InsufficientParticipants before anything is written.
    """
    seed = get_seeding_strategy(seeding)
    participants = await store.get_participants(tournament_id)
    matches = build_bracket(participants, tournament_id, seed)
    await store.save_matches(tournament_id, matches)
    await store.set_status(tournament_id, "active")
    return matches


async def declare_winner(
    store: BracketStore, tournament_id: int, match_id: str, winner_id: int
) -> AdvanceResult:
    """Record a match result and persist only the matches that changed.

    A completed tournament only accepts repeats of its recorded results;
    anything else raises TournamentCompleted until it is restarted.
    """
    matches = await store.get_matches(tournament_id)
    try:
        result = advance_winner(matches, match_id, winner_id)
    except InconsistentBracket:
        logger.error(
            "Bracket for tournament %s is inconsistent; left unchanged", tournament_id, exc_info=True
        )
        raise

    changed = [new for old, new in zip(matches, result.matches) if old != new]
    current = await store.get_status(tournament_id)
    if current == "completed":
        if changed:
            raise TournamentCompleted(tournament_id, match_id)
        return result

    if changed:
        await store.update_matches(tournament_id, changed)

    status = "completed" if result.completed else "active"
    if current != status:
        await store.set_status(tournament_id, status)
        logger.info("Tournament %s is now %s", tournament_id, status)
    return result


async def rebuild_after_roster_change(
    store: BracketStore, tournament_id: int, seeding: str
) -> Optional[List[Match]]:
    """Discard and rebuild a started bracket after teams were added or removed.

    Tournaments without a bracket are left alone. With fewer than two teams
    left the bracket is cleared and the tournament goes back to upcoming.
    """
    if not await store.get_matches(tournament_id):
        return None
    participants = await store.get_participants(tournament_id)
    if len(participants) < 2:
        await store.save_matches(tournament_id, [])
        await store.set_status(tournament_id, "upcoming")
        logger.info("Tournament %s cleared: %d team(s) left", tournament_id, len(participants))
        return []
    logger.info("Roster changed for tournament %s; rebuilding bracket", tournament_id)
    return await start_tournament(store, tournament_id, seeding)
