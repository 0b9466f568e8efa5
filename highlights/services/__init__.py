"""Services for schedule sync and highlight discovery."""

from .rate_limit import RequestPacer
from .quota_manager import QuotaManager, create_redis_client
from .verified_channels import VerifiedChannels
from .schedule_api import ScheduleAPIService, get_schedule_api, map_status
from .youtube_api import YouTubeAPIService, parse_duration
from .schedule_sync import ScheduleSyncService
from .video_discovery import VideoDiscoveryService
from .scheduler import SchedulerService, JobDefinition, JobHistory, get_scheduler_service

__all__ = [
    "RequestPacer",
    "QuotaManager",
    "create_redis_client",
    "VerifiedChannels",
    "ScheduleAPIService",
    "get_schedule_api",
    "map_status",
    "YouTubeAPIService",
    "parse_duration",
    "ScheduleSyncService",
    "VideoDiscoveryService",
    "SchedulerService",
    "JobDefinition",
    "JobHistory",
    "get_scheduler_service",
]
