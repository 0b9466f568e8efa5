"""
Schedule Sync Service

Reconciles upstream schedule records into the local store.

Each record is processed on its own transaction:
1. Resolve home/away teams (find-or-create)
2. Update the game's status/scores if it exists, otherwise insert it

Per-record failures are collected into SyncResult.errors and never abort
the batch, so re-running a window is always safe.
"""

from datetime import date, timedelta
from typing import List, Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings, get_settings
from ..core.logging import get_logger
from ..core.exceptions import ValidationError
from ..db import session_scope
from ..db.models import Team
from ..db.repositories import GameRepository, TeamRepository
from ..models.results import SyncResult
from ..models.schedule import InvalidScheduleRecord, ScheduleGame, ScheduleTeam
from .schedule_api import ScheduleAPIService, get_schedule_api, map_status, score_or_none

logger = get_logger(__name__)

DateLike = Union[date, str]


def parse_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value!r}") from e


def month_chunks(start: date, end: date) -> List[Tuple[date, date]]:
    """Split [start, end] into calendar-month windows."""
    chunks = []
    cursor = start
    while cursor <= end:
        next_month = (cursor.replace(day=1) + timedelta(days=32)).replace(day=1)
        chunk_end = min(next_month - timedelta(days=1), end)
        chunks.append((cursor, chunk_end))
        cursor = chunk_end + timedelta(days=1)
    return chunks


class ScheduleSyncService:
    """Idempotent upsert of schedule records into teams/games."""

    def __init__(
        self,
        schedule_api: Optional[ScheduleAPIService] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.schedule_api = schedule_api or get_schedule_api()
        self.session_factory = session_factory

    async def sync_range(self, start: DateLike, end: DateLike) -> SyncResult:
        """
        Sync every game between start and end (inclusive).

        Raises:
            ValidationError if the dates are unparsable or start > end.
            Nothing else: upstream and per-record failures land in errors.
        """
        start, end = parse_date(start), parse_date(end)
        if start > end:
            raise ValidationError(f"Start date {start} is after end date {end}")

        logger.info("schedule_sync_started", start=str(start), end=str(end))
        result = SyncResult()

        try:
            records = await self.schedule_api.fetch_all(start, end)
        except Exception as e:
            logger.error("schedule_sync_fetch_failed", start=str(start), end=str(end), error=str(e))
            result.errors.append(f"Sync failed: {e}")
            return result

        for record in records:
            if isinstance(record, InvalidScheduleRecord):
                result.errors.append(f"Failed to sync game {record.id}: {record.error}")
                continue
            try:
                created = await self._sync_game(record)
            except Exception as e:
                logger.warning("schedule_sync_game_failed", external_id=record.external_id, error=str(e))
                result.errors.append(f"Failed to sync game {record.id}: {e}")
                continue

            if created:
                result.games_added += 1
            else:
                result.games_updated += 1

        logger.info(
            "schedule_sync_completed",
            start=str(start),
            end=str(end),
            fetched=len(records),
            added=result.games_added,
            updated=result.games_updated,
            errors=len(result.errors),
        )
        return result

    async def _sync_game(self, record: ScheduleGame) -> bool:
        """Upsert one record. Returns True if a game row was inserted."""
        async with session_scope(self.session_factory) as session:
            teams = TeamRepository(session)
            games = GameRepository(session)

            home = await self._find_or_create_team(teams, record.home_team)
            away = await self._find_or_create_team(teams, record.visitor_team)

            status = map_status(record)
            home_score = score_or_none(record.home_team_score)
            away_score = score_or_none(record.visitor_team_score)

            existing = await games.find_by_external_id(record.external_id)
            if existing is not None:
                await games.update_status(existing, status, home_score, away_score)
                return False

            await games.create(
                external_id=record.external_id,
                game_date=record.game_date,
                game_time=record.tipoff,
                home_team_id=home.id,
                away_team_id=away.id,
                status=status,
                home_score=home_score,
                away_score=away_score,
            )
            return True

    async def _find_or_create_team(self, teams: TeamRepository, upstream: ScheduleTeam) -> Team:
        """
        Resolve a team by external id, then by abbreviation (linking the
        external id), else create it from the embedded upstream record.
        """
        team = await teams.find_by_external_id(upstream.id)
        if team is not None:
            return team

        team = await teams.find_by_abbreviation(upstream.abbreviation)
        if team is not None:
            logger.info("team_external_id_linked", abbreviation=team.abbreviation, external_id=upstream.id)
            return await teams.set_external_id(team, upstream.id)

        logger.info("team_created", abbreviation=upstream.abbreviation, external_id=upstream.id)
        return await teams.create(
            name=upstream.name,
            full_name=upstream.full_name,
            abbreviation=upstream.abbreviation,
            conference=upstream.conference,
            division=upstream.division,
            external_id=upstream.id,
        )

    # =========================================================================
    # Named windows
    # =========================================================================

    async def sync_today(self) -> SyncResult:
        today = self.schedule_api.today()
        return await self.sync_range(today, today)

    async def sync_yesterday(self) -> SyncResult:
        yesterday = self.schedule_api.yesterday()
        return await self.sync_range(yesterday, yesterday)

    async def sync_upcoming(self, days: Optional[int] = None) -> SyncResult:
        start, end = self.schedule_api.upcoming_range(days)
        return await self.sync_range(start, end)

    async def update_live_scores(self) -> SyncResult:
        """
        Refresh status and scores of today's games.

        Only games already in the store are touched; unknown records are
        skipped (the upcoming sync creates them).
        """
        today = self.schedule_api.today()
        result = SyncResult()

        try:
            records = await self.schedule_api.fetch_all(today, today)
        except Exception as e:
            logger.error("live_scores_fetch_failed", error=str(e))
            result.errors.append(f"Sync failed: {e}")
            return result

        skipped = 0
        for record in records:
            if isinstance(record, InvalidScheduleRecord):
                result.errors.append(f"Failed to sync game {record.id}: {record.error}")
                continue
            try:
                async with session_scope(self.session_factory) as session:
                    games = GameRepository(session)
                    game = await games.find_by_external_id(record.external_id)
                    if game is None:
                        skipped += 1
                        continue
                    await games.update_status(
                        game,
                        map_status(record),
                        score_or_none(record.home_team_score),
                        score_or_none(record.visitor_team_score),
                    )
                result.games_updated += 1
            except Exception as e:
                logger.warning("live_score_update_failed", external_id=record.external_id, error=str(e))
                result.errors.append(f"Failed to sync game {record.id}: {e}")

        logger.info(
            "live_scores_updated",
            date=str(today),
            updated=result.games_updated,
            skipped=skipped,
            errors=len(result.errors),
        )
        return result

    async def backfill(self, start: DateLike, end: DateLike) -> SyncResult:
        """Sync a long range (e.g. a season) one calendar month at a time."""
        start, end = parse_date(start), parse_date(end)
        if start > end:
            raise ValidationError(f"Start date {start} is after end date {end}")

        total = SyncResult()
        chunks = month_chunks(start, end)
        for index, (chunk_start, chunk_end) in enumerate(chunks, start=1):
            logger.info(
                "backfill_chunk_started",
                chunk=index,
                chunks=len(chunks),
                start=str(chunk_start),
                end=str(chunk_end),
            )
            total = total.merge(await self.sync_range(chunk_start, chunk_end))

        logger.info(
            "backfill_completed",
            added=total.games_added,
            updated=total.games_updated,
            errors=len(total.errors),
        )
        return total

    async def sync_teams(self) -> int:
        """Link (or create) every upstream franchise. Returns teams touched."""
        upstream_teams = await self.schedule_api.fetch_teams()
        async with session_scope(self.session_factory) as session:
            teams = TeamRepository(session)
            for upstream in upstream_teams:
                await self._find_or_create_team(teams, upstream)
        logger.info("teams_synced", count=len(upstream_teams))
        return len(upstream_teams)
