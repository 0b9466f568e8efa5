"""
Admin API Models

Request bodies and responses for the manual trigger endpoints.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from .results import DiscoveryResult, QuotaState, SyncResult


class SyncRange(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    UPCOMING = "upcoming"


class VideoScope(str, Enum):
    RECENT = "recent"
    YESTERDAY = "yesterday"


class SyncScheduleRequest(BaseModel):
    range: SyncRange = SyncRange.TODAY
    days: Optional[int] = Field(None, ge=1, le=60, description="Only for range=upcoming")


class SyncVideosRequest(BaseModel):
    scope: VideoScope = VideoScope.RECENT
    limit: int = Field(10, ge=1, le=50)


class RefreshStatsRequest(BaseModel):
    limit: int = Field(50, ge=1, le=500)


class SyncScheduleResponse(BaseModel):
    success: bool
    range: str
    result: SyncResult


class SyncVideosResponse(BaseModel):
    success: bool
    scope: str
    processed: int
    succeeded: int
    results: List[DiscoveryResult]


class RefreshStatsResponse(BaseModel):
    success: bool
    updated: int


class HealthResponse(BaseModel):
    status: str = "healthy"
    counts: Dict[str, int]
    quota: QuotaState
    scheduler: Dict[str, Any]
