"""
Repositories

Thin async data-access helpers over a single AsyncSession. Callers own
the transaction (commit/rollback); repositories only flush.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.exceptions import DuplicateConflictError
from .models import Game, GameStatus, JobRunRecord, Team, Video


class TeamRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, team_id: int) -> Optional[Team]:
        return await self.session.get(Team, team_id)

    async def find_by_external_id(self, external_id: int) -> Optional[Team]:
        result = await self.session.execute(
            select(Team).where(Team.external_id == external_id)
        )
        return result.scalar_one_or_none()

    async def find_by_abbreviation(self, abbreviation: str) -> Optional[Team]:
        result = await self.session.execute(
            select(Team).where(Team.abbreviation == abbreviation)
        )
        return result.scalar_one_or_none()

    async def find_all(self) -> Sequence[Team]:
        result = await self.session.execute(
            select(Team).order_by(Team.conference, Team.division, Team.abbreviation)
        )
        return result.scalars().all()

    async def create(self, **fields) -> Team:
        team = Team(**fields)
        self.session.add(team)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateConflictError(
                f"Team already exists: {fields.get('abbreviation')}"
            ) from e
        return team

    async def set_external_id(self, team: Team, external_id: int) -> Team:
        team.external_id = external_id
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateConflictError(
                f"Team external id already assigned: {external_id}"
            ) from e
        return team

    async def count(self) -> int:
        return await self.session.scalar(select(func.count(Team.id))) or 0


class GameRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _with_teams(self):
        return select(Game).options(
            selectinload(Game.home_team), selectinload(Game.away_team)
        )

    async def find_by_id(self, game_id: int) -> Optional[Game]:
        result = await self.session.execute(
            self._with_teams().where(Game.id == game_id)
        )
        return result.scalar_one_or_none()

    async def find_by_external_id(self, external_id: str) -> Optional[Game]:
        result = await self.session.execute(
            select(Game).where(Game.external_id == external_id)
        )
        return result.scalar_one_or_none()

    async def find_finished_without_video(
        self, limit: Optional[int] = None, game_date: Optional[date] = None
    ) -> Sequence[Game]:
        """Most recent finished games that have no video yet."""
        query = (
            self._with_teams()
            .outerjoin(Video, Video.game_id == Game.id)
            .where(Game.status == GameStatus.FINISHED.value, Video.id.is_(None))
            .order_by(Game.game_date.desc(), Game.id.desc())
        )
        if game_date is not None:
            query = query.where(Game.game_date == game_date)
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def create(self, **fields) -> Game:
        fields.setdefault("status", GameStatus.SCHEDULED.value)
        game = Game(**fields)
        self.session.add(game)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateConflictError(
                f"Game already exists for external id {fields.get('external_id')}"
            ) from e
        return game

    async def update_status(
        self,
        game: Game,
        status: str,
        home_score: Optional[int],
        away_score: Optional[int],
    ) -> Game:
        """Only status and scores are mutable after creation."""
        game.status = status
        if home_score is not None:
            game.home_score = home_score
        if away_score is not None:
            game.away_score = away_score
        await self.session.flush()
        return game

    async def count(self) -> int:
        return await self.session.scalar(select(func.count(Game.id))) or 0


class VideoRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, video_id: int) -> Optional[Video]:
        return await self.session.get(Video, video_id)

    async def find_by_game_id(self, game_id: int) -> Optional[Video]:
        result = await self.session.execute(
            select(Video).where(Video.game_id == game_id)
        )
        return result.scalar_one_or_none()

    async def find_all(self, limit: int = 50, offset: int = 0) -> Sequence[Video]:
        result = await self.session.execute(
            select(Video).order_by(Video.published_at.desc()).limit(limit).offset(offset)
        )
        return result.scalars().all()

    async def create(self, **fields) -> Video:
        video = Video(**fields)
        self.session.add(video)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateConflictError(
                f"Video already exists for game {fields.get('game_id')} "
                f"or YouTube id {fields.get('youtube_video_id')}"
            ) from e
        return video

    async def update_view_count(self, video: Video, view_count: Optional[int]) -> Video:
        video.view_count = view_count
        await self.session.flush()
        return video

    async def count(self) -> int:
        return await self.session.scalar(select(func.count(Video.id))) or 0

    async def count_verified(self) -> int:
        return await self.session.scalar(
            select(func.count(Video.id)).where(Video.is_verified.is_(True))
        ) or 0


class JobRunRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, **fields) -> JobRunRecord:
        record = JobRunRecord(**fields)
        self.session.add(record)
        await self.session.flush()
        return record

    async def find_recent(self, job_name: Optional[str] = None, limit: int = 20) -> List[JobRunRecord]:
        query = select(JobRunRecord)
        if job_name is not None:
            query = query.where(JobRunRecord.job_name == job_name)
        result = await self.session.execute(
            query.order_by(JobRunRecord.started_at.desc(), JobRunRecord.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
