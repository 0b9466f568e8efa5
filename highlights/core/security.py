"""
Admin Authentication

Admin routes are protected by a shared API key sent in the
X-Admin-API-Key header (cron jobs, manual triggers).
"""

import secrets
from typing import Optional
from fastapi import Depends
from fastapi.security import APIKeyHeader

from ..config import get_settings
from .exceptions import ConfigurationError, ForbiddenError, UnauthorizedError
from .logging import get_logger

logger = get_logger(__name__)

# Security scheme
admin_key_header = APIKeyHeader(name="X-Admin-API-Key", auto_error=False)


async def verify_admin_access(
    api_key: Optional[str] = Depends(admin_key_header),
) -> dict:
    """
    Verify the admin API key.

    Raises:
        ConfigurationError if no admin key is configured
        UnauthorizedError if the header is missing
        ForbiddenError if the key does not match
    """
    expected = get_settings().admin_api_key
    if not expected:
        logger.error("admin_api_key_not_configured")
        raise ConfigurationError("Admin API key not configured")

    if not api_key:
        raise UnauthorizedError()

    if not secrets.compare_digest(api_key, expected):
        logger.warning("admin_access_denied")
        raise ForbiddenError()

    return {"method": "api_key", "uid": "admin"}
