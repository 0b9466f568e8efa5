"""
Pytest Fixtures

Shared settings, database and upstream payload fixtures.
"""

import json
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from highlights.config import Settings
from highlights.db import create_engine, init_db, make_session_factory, session_scope
from highlights.db.models import Game, Team, Video
from highlights.services.quota_manager import QuotaManager
from highlights.services.rate_limit import RequestPacer


@pytest.fixture
def settings() -> Settings:
    """Settings with test keys and no real pacing delays."""
    return Settings(
        _env_file=None,
        environment="test",
        admin_api_key="test-admin-key",
        schedule_api_url="https://schedule.test/v1",
        schedule_api_key="schedule-key",
        schedule_request_delay=0,
        youtube_api_key="youtube-key",
        video_request_delay=0,
        stats_request_delay=0,
        scheduler_enabled=False,
    )


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def quota_manager(settings) -> QuotaManager:
    """Process-local quota tracker with a no-op pacer."""
    return QuotaManager(settings=settings, pacer=RequestPacer(0, name="test"))


@pytest.fixture
def no_sleep() -> AsyncMock:
    return AsyncMock()


# =========================================================================
# Database helpers
# =========================================================================

@pytest.fixture
def make_team(session_factory) -> Callable:
    async def _make_team(abbreviation: str, full_name: str, external_id: Optional[int] = None,
                         conference: str = "Eastern", division: str = "Atlantic") -> Team:
        async with session_scope(session_factory) as session:
            team = Team(
                name=full_name.split()[-1],
                full_name=full_name,
                abbreviation=abbreviation,
                conference=conference,
                division=division,
                external_id=external_id,
            )
            session.add(team)
            await session.flush()
            return team
    return _make_team


@pytest.fixture
def make_game(session_factory) -> Callable:
    async def _make_game(home: Team, away: Team, status: str = "finished",
                         game_date: date = date(2024, 1, 15), external_id: Optional[str] = None,
                         home_score: Optional[int] = 110, away_score: Optional[int] = 102) -> Game:
        async with session_scope(session_factory) as session:
            game = Game(
                external_id=external_id,
                game_date=game_date,
                home_team_id=home.id,
                away_team_id=away.id,
                status=status,
                home_score=home_score,
                away_score=away_score,
            )
            session.add(game)
            await session.flush()
            return game
    return _make_game


@pytest.fixture
def make_video(session_factory) -> Callable:
    async def _make_video(game: Game, youtube_video_id: str = "existing123", view_count: int = 1000) -> Video:
        async with session_scope(session_factory) as session:
            video = Video(
                game_id=game.id,
                youtube_video_id=youtube_video_id,
                title="Existing highlights",
                channel_name="NBA",
                channel_id="UCWJ2lWNubArHWmf3FIHbfcQ",
                duration_seconds=600,
                thumbnail_url="https://i.ytimg.com/vi/existing123/hqdefault.jpg",
                published_at=datetime(2024, 1, 16, 5, 0, tzinfo=timezone.utc),
                view_count=view_count,
                url=f"https://www.youtube.com/watch?v={youtube_video_id}",
                is_verified=True,
            )
            session.add(video)
            await session.flush()
            return video
    return _make_video


# =========================================================================
# Schedule API payloads
# =========================================================================

TEAMS = {
    "BOS": {"id": 2, "abbreviation": "BOS", "name": "Celtics", "full_name": "Boston Celtics",
            "conference": "East", "division": "Atlantic", "city": "Boston"},
    "MIA": {"id": 16, "abbreviation": "MIA", "name": "Heat", "full_name": "Miami Heat",
            "conference": "East", "division": "Southeast", "city": "Miami"},
    "LAL": {"id": 14, "abbreviation": "LAL", "name": "Lakers", "full_name": "Los Angeles Lakers",
            "conference": "West", "division": "Pacific", "city": "Los Angeles"},
    "GSW": {"id": 10, "abbreviation": "GSW", "name": "Warriors", "full_name": "Golden State Warriors",
            "conference": "West", "division": "Pacific", "city": "Golden State"},
}


def game_payload(game_id: int, home: str = "BOS", visitor: str = "MIA", status: str = "Final",
                 period: int = 4, home_score: int = 110, visitor_score: int = 102,
                 game_date: str = "2024-01-15") -> Dict[str, Any]:
    return {
        "id": game_id,
        "date": game_date,
        "datetime": f"{game_date}T00:30:00Z",
        "season": 2023,
        "status": status,
        "period": period,
        "time": "Final" if status == "Final" else "",
        "postseason": False,
        "home_team": TEAMS[home],
        "home_team_score": home_score,
        "visitor_team": TEAMS[visitor],
        "visitor_team_score": visitor_score,
    }


def page_payload(games: List[Dict[str, Any]], next_cursor: Optional[int] = None) -> Dict[str, Any]:
    meta = {"per_page": 100}
    if next_cursor is not None:
        meta["next_cursor"] = next_cursor
    return {"data": games, "meta": meta}


def json_response(payload: Dict[str, Any], status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload),
                          headers={"Content-Type": "application/json"})
