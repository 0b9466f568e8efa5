"""
Result Models

Aggregate structures returned by the reconciliation and matching engines,
the quota tracker and the job scheduler.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, computed_field


class SyncResult(BaseModel):
    """Outcome of a schedule sync batch."""
    games_added: int = 0
    games_updated: int = 0
    errors: List[str] = Field(default_factory=list)

    def merge(self, other: "SyncResult") -> "SyncResult":
        return SyncResult(
            games_added=self.games_added + other.games_added,
            games_updated=self.games_updated + other.games_updated,
            errors=self.errors + other.errors,
        )


class DiscoveryResult(BaseModel):
    """Outcome of a video discovery for one game."""
    game_id: int
    success: bool
    video_id: Optional[int] = None
    youtube_video_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = Field(
        None, description="not_found, not_eligible, no_results, duplicate_conflict, ..."
    )


class QuotaState(BaseModel):
    """Snapshot of the current quota period."""
    api: str = "youtube"
    period: str
    used: int
    limit: int

    @computed_field
    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)

    @computed_field
    @property
    def percentage(self) -> float:
        if self.limit <= 0:
            return 100.0
        return round((self.used / self.limit) * 100, 1)


class QuotaCheck(BaseModel):
    """Pre-flight decision for a discovery run."""
    allowed: bool
    remaining: int
    batch_size: int
    reason: Optional[str] = None


class JobRunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"


class JobRun(BaseModel):
    """One recorded execution of a named job."""
    job_name: str
    status: JobRunStatus = JobRunStatus.PENDING
    trigger: str = Field("scheduled", description="scheduled or manual")
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)
