"""
Tests for Video Discovery (matching finished games to highlight videos).
"""

from datetime import date, datetime, timezone
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import func, select

from highlights.core.exceptions import QuotaExceededError
from highlights.db import session_scope
from highlights.db.models import Video
from highlights.models.video import VideoCandidate
from highlights.services.verified_channels import VerifiedChannels
from highlights.services.video_discovery import VideoDiscoveryService, select_candidate
from highlights.services.youtube_api import YouTubeAPIService

NBA_CHANNEL = "UCWJ2lWNubArHWmf3FIHbfcQ"


def candidate(video_id: str, channel_id: str = "UCfan", channel_title: str = "Hoops Fan",
              duration: str = "PT9M41S", view_count: Optional[int] = 5000) -> VideoCandidate:
    return VideoCandidate(
        id=video_id,
        title=f"Highlights {video_id}",
        channel_id=channel_id,
        channel_title=channel_title,
        published_at=datetime(2024, 1, 16, 4, 0, tzinfo=timezone.utc),
        thumbnail_url=f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg",
        duration=duration,
        view_count=view_count,
    )


@pytest.fixture
def youtube():
    mock = MagicMock(spec=YouTubeAPIService)
    mock.search_highlights = AsyncMock(return_value=[])
    mock.get_video_details = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def pacer():
    mock = MagicMock()
    mock.wait = AsyncMock(return_value=0.0)
    return mock


@pytest.fixture
def discovery(youtube, quota_manager, session_factory, settings, pacer):
    quota_manager.pacer = pacer
    return VideoDiscoveryService(
        youtube,
        quota_manager,
        session_factory,
        is_verified=VerifiedChannels.from_settings(settings),
        settings=settings,
        stats_pacer=pacer,
        today=lambda: date(2024, 1, 16),
    )


@pytest_asyncio.fixture
async def teams(make_team):
    home = await make_team("BOS", "Boston Celtics", external_id=2)
    away = await make_team("MIA", "Miami Heat", external_id=16)
    return home, away


async def video_count(session_factory) -> int:
    async with session_scope(session_factory) as session:
        return await session.scalar(select(func.count(Video.id)))


class TestSelectCandidate:
    def test_prefers_first_verified(self, settings):
        predicate = VerifiedChannels.from_settings(settings)
        candidates = [candidate("a"), candidate("b", NBA_CHANNEL, "NBA"), candidate("c", "UCx", "ESPN")]

        assert select_candidate(candidates, predicate).id == "b"

    def test_falls_back_to_first(self, settings):
        predicate = VerifiedChannels.from_settings(settings)

        assert select_candidate([candidate("a"), candidate("b")], predicate).id == "a"

    def test_empty(self, settings):
        assert select_candidate([], VerifiedChannels.from_settings(settings)) is None

    def test_name_match_is_case_sensitive(self):
        predicate = VerifiedChannels(channel_ids=[], channel_names=["BR"])

        assert predicate("UCx", "BR Highlights")
        assert not predicate("UCx", "Brooklyn Fan Zone")


class TestDiscoverVideoForGame:
    @pytest.mark.asyncio
    async def test_stores_verified_candidate(self, discovery, youtube, teams, make_game, session_factory):
        home, away = teams
        game = await make_game(home, away)
        youtube.search_highlights.return_value = [
            candidate("fan1"),
            candidate("nba1", NBA_CHANNEL, "NBA", duration="PT10M2S"),
        ]

        result = await discovery.discover_video_for_game(game.id)

        assert result.success
        assert result.youtube_video_id == "nba1"
        youtube.search_highlights.assert_awaited_once_with("Boston Celtics", "Miami Heat", date(2024, 1, 15))

        async with session_scope(session_factory) as session:
            video = await session.get(Video, result.video_id)
            assert video.game_id == game.id
            assert video.is_verified is True
            assert video.duration_seconds == 602
            assert video.url == "https://www.youtube.com/watch?v=nba1"

    @pytest.mark.asyncio
    async def test_unverified_fallback(self, discovery, youtube, teams, make_game, session_factory):
        home, away = teams
        game = await make_game(home, away)
        youtube.search_highlights.return_value = [candidate("fan1"), candidate("fan2")]

        result = await discovery.discover_video_for_game(game.id)

        async with session_scope(session_factory) as session:
            video = await session.get(Video, result.video_id)
            assert video.youtube_video_id == "fan1"
            assert video.is_verified is False

    @pytest.mark.asyncio
    async def test_repeat_discovery_makes_no_upstream_call(self, discovery, youtube, teams,
                                                          make_game, session_factory):
        home, away = teams
        game = await make_game(home, away)
        youtube.search_highlights.return_value = [candidate("nba1", NBA_CHANNEL, "NBA")]

        first = await discovery.discover_video_for_game(game.id)
        second = await discovery.discover_video_for_game(game.id)

        assert first.success and second.success
        assert second.video_id == first.video_id
        assert youtube.search_highlights.await_count == 1
        assert await video_count(session_factory) == 1

    @pytest.mark.asyncio
    async def test_unfinished_game_is_not_eligible(self, discovery, youtube, teams, make_game):
        home, away = teams
        game = await make_game(home, away, status="in_progress")

        result = await discovery.discover_video_for_game(game.id)

        assert not result.success
        assert result.error_code == "not_eligible"
        youtube.search_highlights.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_game_is_not_found(self, discovery, youtube):
        result = await discovery.discover_video_for_game(999)

        assert not result.success
        assert result.error_code == "not_found"
        youtube.search_highlights.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_candidates(self, discovery, youtube, teams, make_game, session_factory):
        home, away = teams
        game = await make_game(home, away)

        result = await discovery.discover_video_for_game(game.id)

        assert not result.success
        assert result.error == "No highlights found"
        assert result.error_code == "no_results"
        assert await video_count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_video_already_used_by_another_game(self, discovery, youtube, teams,
                                                     make_game, make_video):
        home, away = teams
        other = await make_game(home, away, game_date=date(2024, 1, 10))
        await make_video(other, youtube_video_id="dup1")
        game = await make_game(home, away)
        youtube.search_highlights.return_value = [candidate("dup1")]

        result = await discovery.discover_video_for_game(game.id)

        assert not result.success
        assert result.error_code == "duplicate_conflict"

    @pytest.mark.asyncio
    async def test_unparsable_duration_is_rejected(self, discovery, youtube, teams, make_game, session_factory):
        home, away = teams
        game = await make_game(home, away)
        youtube.search_highlights.return_value = [candidate("bad", duration="garbage")]

        result = await discovery.discover_video_for_game(game.id)

        assert not result.success
        assert result.error_code == "validation_error"
        assert await video_count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_quota_error_becomes_result(self, discovery, youtube, teams, make_game):
        home, away = teams
        game = await make_game(home, away)
        youtube.search_highlights.side_effect = QuotaExceededError("youtube")

        result = await discovery.discover_video_for_game(game.id)

        assert result.error_code == "quota_exhausted"


class TestBatches:
    @pytest.mark.asyncio
    async def test_finished_games_batch_is_limited_and_paced(self, discovery, youtube, teams,
                                                            make_game, pacer):
        home, away = teams
        for day in range(10, 15):
            await make_game(home, away, game_date=date(2024, 1, day))
        await make_game(home, away, status="scheduled", game_date=date(2024, 1, 20))
        youtube.search_highlights.side_effect = lambda h, a, d: [candidate(f"v{d.day}")]

        results = await discovery.discover_videos_for_finished_games(limit=3)

        assert len(results) == 3
        assert all(r.success for r in results)
        # Most recent first
        assert [r.youtube_video_id for r in results] == ["v14", "v13", "v12"]
        assert pacer.wait.await_count == 3

    @pytest.mark.asyncio
    async def test_batch_skips_games_with_videos(self, discovery, youtube, teams, make_game, make_video):
        home, away = teams
        done = await make_game(home, away, game_date=date(2024, 1, 10))
        await make_video(done)
        await make_game(home, away, game_date=date(2024, 1, 11))
        youtube.search_highlights.return_value = [candidate("new1")]

        results = await discovery.discover_videos_for_finished_games(limit=10)

        assert len(results) == 1
        assert youtube.search_highlights.await_count == 1

    @pytest.mark.asyncio
    async def test_batch_stops_when_quota_runs_out(self, discovery, youtube, teams, make_game):
        home, away = teams
        for day in range(10, 13):
            await make_game(home, away, game_date=date(2024, 1, day))
        youtube.search_highlights.side_effect = QuotaExceededError("youtube")

        results = await discovery.discover_videos_for_finished_games(limit=10)

        assert len(results) == 1
        assert results[0].error_code == "quota_exhausted"

    @pytest.mark.asyncio
    async def test_batch_keeps_going_after_failures(self, discovery, youtube, teams, make_game):
        home, away = teams
        for day in range(10, 13):
            await make_game(home, away, game_date=date(2024, 1, day))
        youtube.search_highlights.side_effect = [
            [candidate("v1")],
            RuntimeError("connection reset"),
            [candidate("v3")],
        ]

        results = await discovery.discover_videos_for_finished_games(limit=10)

        assert [r.success for r in results] == [True, False, True]
        assert "connection reset" in results[1].error

    @pytest.mark.asyncio
    async def test_yesterday_only(self, discovery, youtube, teams, make_game):
        home, away = teams
        yesterday = await make_game(home, away, game_date=date(2024, 1, 15))
        await make_game(home, away, game_date=date(2024, 1, 14))
        youtube.search_highlights.return_value = [candidate("y1")]

        results = await discovery.discover_videos_for_yesterday()

        assert [r.game_id for r in results] == [yesterday.id]


class TestStats:
    @pytest.mark.asyncio
    async def test_update_stats_overwrites_view_count(self, discovery, youtube, teams, make_game,
                                                     make_video, session_factory):
        home, away = teams
        game = await make_game(home, away)
        video = await make_video(game, view_count=100)
        youtube.get_video_details.return_value = candidate("existing123", view_count=98765)

        assert await discovery.update_stats(video.id) is True

        async with session_scope(session_factory) as session:
            refreshed = await session.get(Video, video.id)
            assert refreshed.view_count == 98765
            assert refreshed.title == "Existing highlights"

    @pytest.mark.asyncio
    async def test_update_stats_missing_upstream(self, discovery, youtube, teams, make_game, make_video):
        home, away = teams
        video = await make_video(await make_game(home, away))

        assert await discovery.update_stats(video.id) is False
        assert await discovery.update_stats(12345) is False

    @pytest.mark.asyncio
    async def test_refresh_all_counts_updates(self, discovery, youtube, teams, make_game,
                                             make_video, pacer):
        home, away = teams
        first = await make_game(home, away, game_date=date(2024, 1, 10))
        second = await make_game(home, away, game_date=date(2024, 1, 11))
        await make_video(first, youtube_video_id="a1")
        await make_video(second, youtube_video_id="b2")
        youtube.get_video_details.side_effect = [candidate("a1", view_count=1), None]

        updated = await discovery.refresh_all_video_stats(limit=10)

        assert updated == 1
        assert pacer.wait.await_count == 2


class TestUpstreamFailures:
    @pytest.fixture
    def offline_discovery(self, quota_manager, session_factory, settings, pacer):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        youtube = YouTubeAPIService(quota_manager, settings=settings, transport=httpx.MockTransport(handler))
        quota_manager.pacer = pacer
        return VideoDiscoveryService(
            youtube,
            quota_manager,
            session_factory,
            is_verified=VerifiedChannels.from_settings(settings),
            settings=settings,
            stats_pacer=pacer,
        )

    @pytest.mark.asyncio
    async def test_network_error_becomes_failed_result(self, offline_discovery, teams, make_game,
                                                       session_factory):
        home, away = teams
        game = await make_game(home, away)

        result = await offline_discovery.discover_video_for_game(game.id)

        assert not result.success
        assert result.error_code == "upstream_error"
        assert "connection refused" in result.error
        assert await video_count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_network_error_does_not_abort_stats_refresh(self, offline_discovery, teams,
                                                              make_game, make_video, pacer):
        home, away = teams
        await make_video(await make_game(home, away, game_date=date(2024, 1, 10)), youtube_video_id="a1")
        await make_video(await make_game(home, away, game_date=date(2024, 1, 11)), youtube_video_id="b2")

        updated = await offline_discovery.refresh_all_video_stats(limit=10)

        assert updated == 0
        assert pacer.wait.await_count == 2

    @pytest.mark.asyncio
    async def test_hidden_statistics_keep_stored_count(self, discovery, youtube, teams, make_game,
                                                       make_video, session_factory):
        home, away = teams
        video = await make_video(await make_game(home, away), view_count=4321)
        youtube.get_video_details.return_value = candidate("existing123", view_count=None)

        assert await discovery.update_stats(video.id) is True

        async with session_scope(session_factory) as session:
            refreshed = await session.get(Video, video.id)
            assert refreshed.view_count == 4321
