"""Pydantic models for the highlights backend."""

from .schedule import ScheduleTeam, ScheduleGame, ScheduleMeta, SchedulePage, InvalidScheduleRecord
from .video import SearchResponse, VideosResponse, VideoItem, VideoCandidate
from .results import (
    SyncResult,
    DiscoveryResult,
    QuotaState,
    QuotaCheck,
    JobRun,
    JobRunStatus,
)

__all__ = [
    "ScheduleTeam",
    "ScheduleGame",
    "ScheduleMeta",
    "SchedulePage",
    "InvalidScheduleRecord",
    "SearchResponse",
    "VideosResponse",
    "VideoItem",
    "VideoCandidate",
    "SyncResult",
    "DiscoveryResult",
    "QuotaState",
    "QuotaCheck",
    "JobRun",
    "JobRunStatus",
]
