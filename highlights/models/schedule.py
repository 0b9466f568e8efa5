"""
Schedule Source Models

Validated shapes of the upstream schedule API (balldontlie-style):
paginated game records that embed home/visitor team sub-records.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


class ScheduleTeam(BaseModel):
    """Team sub-record embedded in every game."""
    id: int = Field(..., description="Upstream team ID")
    abbreviation: str
    name: str = Field(..., description="Short name, e.g. 'Celtics'")
    full_name: str
    conference: str
    division: str
    city: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("conference")
    @classmethod
    def normalize_conference(cls, value: str) -> str:
        # Upstream sends "East"/"West" on some endpoints
        value = value.strip()
        if value.lower().startswith("east"):
            return "Eastern"
        if value.lower().startswith("west"):
            return "Western"
        raise ValueError(f"unknown conference: {value}")


class ScheduleGame(BaseModel):
    """One upstream game record."""
    id: int = Field(..., description="Upstream game ID (our external_id)")
    game_date: date = Field(..., alias="date")
    tipoff: Optional[datetime] = Field(None, alias="datetime")
    season: Optional[int] = None
    status: str = ""
    period: int = 0
    time: Optional[str] = None
    postseason: bool = False
    home_team: ScheduleTeam
    home_team_score: Optional[int] = 0
    visitor_team: ScheduleTeam
    visitor_team_score: Optional[int] = 0

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("game_date", mode="before")
    @classmethod
    def parse_game_date(cls, value):
        # Older responses carry a full ISO timestamp; only the day matters
        if isinstance(value, str) and len(value) > 10:
            return value[:10]
        return value

    @field_validator("period", mode="before")
    @classmethod
    def default_period(cls, value):
        return value or 0

    @property
    def external_id(self) -> str:
        return str(self.id)


class ScheduleMeta(BaseModel):
    """Pagination metadata."""
    next_cursor: Optional[int] = None
    per_page: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class InvalidScheduleRecord(BaseModel):
    """A game record that failed validation, kept so the sync can report it."""
    id: Any = "unknown"
    error: str


class SchedulePage(BaseModel):
    """
    A single page of the games endpoint.

    Records stay raw here; parse_game() validates each one on its own.
    """
    data: List[Dict[str, Any]] = Field(default_factory=list)
    meta: ScheduleMeta = Field(default_factory=ScheduleMeta)

    model_config = ConfigDict(extra="ignore")
