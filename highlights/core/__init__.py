"""Core infrastructure modules."""

from .security import verify_admin_access
from .exceptions import (
    HighlightsException,
    NotFoundError,
    NotEligibleError,
    DuplicateConflictError,
    ValidationError,
    UpstreamError,
    UpstreamRateLimitedError,
    MaxRetriesExceededError,
    QuotaExceededError,
    ConfigurationError,
    UnauthorizedError,
    ForbiddenError,
)
from .logging import setup_logging, get_logger

__all__ = [
    "verify_admin_access",
    "HighlightsException",
    "NotFoundError",
    "NotEligibleError",
    "DuplicateConflictError",
    "ValidationError",
    "UpstreamError",
    "UpstreamRateLimitedError",
    "MaxRetriesExceededError",
    "QuotaExceededError",
    "ConfigurationError",
    "UnauthorizedError",
    "ForbiddenError",
    "setup_logging",
    "get_logger",
]
