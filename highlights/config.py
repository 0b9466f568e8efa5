"""
Application Configuration

Load settings from environment variables with validation.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Environment
    environment: str = "development"
    debug: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: Optional[str] = None      # "console" or "json"; default follows environment

    # Database
    database_url: str = "sqlite+aiosqlite:///./highlights.db"
    sql_echo: bool = False

    # Redis (optional, shares quota counters across processes)
    redis_url: Optional[str] = None

    # Admin API
    admin_api_key: Optional[str] = None  # Admin routes refuse every request until set
    rate_limit_per_minute: int = 30

    # Schedule source (balldontlie-style API)
    schedule_api_url: str = "https://api.balldontlie.io/v1"
    schedule_api_key: Optional[str] = None
    schedule_page_size: int = 100
    schedule_request_delay: float = 1.0   # Seconds between page fetches
    schedule_max_retries: int = 5
    schedule_backoff_base: float = 2.0    # 2s, 4s, 8s, 16s, 32s
    schedule_timeout: float = 15.0
    league_timezone: str = "America/New_York"
    upcoming_days: int = 7

    # YouTube Data API
    youtube_api_key: Optional[str] = None
    youtube_timeout: float = 10.0
    video_search_results: int = 5
    video_request_delay: float = 1.0      # Between games in a discovery batch
    stats_request_delay: float = 0.5      # Between videos in a stats refresh
    verified_channel_ids: List[str] = [
        "UCWJ2lWNubArHWmf3FIHbfcQ",  # NBA
        "UCiWLfSweyRNmLpgEHekhoAg",  # Bleacher Report
        "UCmKcEj5sGwhoKN5KL7F7Y5Q",  # ESPN
        "UCLlGpZK4bpd5dIgmWlJC5qA",  # Golden State Warriors
    ]
    verified_channel_names: List[str] = ["NBA", "ESPN", "Bleacher Report", "BR", "Official"]

    # Quota Management
    youtube_daily_quota_limit: int = 10000
    youtube_search_cost: int = 100
    youtube_video_cost: int = 1
    quota_safety_buffer: int = 500        # Reserved for manual triggers
    quota_min_remaining: int = 1000       # Below this, discovery runs are skipped
    max_discoveries_per_run: int = 20
    quota_reset_timezone: str = "America/Los_Angeles"

    # Scheduler
    scheduler_enabled: bool = True
    scheduler_timezone: str = "America/New_York"
    job_history_size: int = 100
    persist_job_history: bool = False
    sync_upcoming_cron: str = "0 6 * * *"
    sync_yesterday_cron: str = "30 5 * * *"
    live_scores_cron: str = "*/10 18-23 * * *"
    discover_videos_cron: str = "0 1,3,7,12 * * *"
    refresh_video_stats_cron: str = "0 14 * * *"
    refresh_video_stats_limit: int = 50

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
