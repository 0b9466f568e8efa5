"""
Exception Taxonomy

Custom exceptions raised by the sync/matching pipeline and the FastAPI
handler that renders them.
"""

from fastapi import Request
from fastapi.responses import JSONResponse


class HighlightsException(Exception):
    """Base exception for highlights backend errors."""

    code = "internal_error"

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(HighlightsException):
    """Resource not found."""

    code = "not_found"

    def __init__(self, resource: str, resource_id):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            message=f"{resource} not found: {resource_id}",
            status_code=404
        )


class NotEligibleError(HighlightsException):
    """Game is not in a state that allows video discovery."""

    code = "not_eligible"

    def __init__(self, game_id: int, status: str):
        self.game_id = game_id
        self.status = status
        super().__init__(
            message=f"Game {game_id} not finished yet (status: {status})",
            status_code=409
        )


class DuplicateConflictError(HighlightsException):
    """Unique constraint violated (external id, game video, video id)."""

    code = "duplicate_conflict"

    def __init__(self, message: str):
        super().__init__(message=message, status_code=409)


class ValidationError(HighlightsException):
    """Malformed input or upstream payload."""

    code = "validation_error"

    def __init__(self, message: str):
        super().__init__(message=message, status_code=400)


class UpstreamError(HighlightsException):
    """Non-retryable failure response from an upstream API."""

    code = "upstream_error"

    def __init__(self, service: str, status: int, detail: str = ""):
        self.service = service
        self.status = status
        message = f"{service} API error: {status}"
        if detail:
            message = f"{message} {detail}"
        super().__init__(message=message, status_code=502)


class UpstreamRateLimitedError(HighlightsException):
    """Upstream answered 429. Retryable with backoff."""

    code = "upstream_rate_limited"

    def __init__(self, service: str):
        self.service = service
        super().__init__(
            message=f"{service} API rate limited",
            status_code=429
        )


class MaxRetriesExceededError(HighlightsException):
    """Rate-limit backoff ladder exhausted."""

    code = "max_retries_exceeded"

    def __init__(self, service: str, attempts: int):
        self.service = service
        self.attempts = attempts
        super().__init__(
            message=f"Max retries exceeded for {service} API after {attempts} attempts",
            status_code=503
        )


class QuotaExceededError(HighlightsException):
    """API quota exceeded."""

    code = "quota_exhausted"

    def __init__(self, api_name: str):
        super().__init__(
            message=f"{api_name} API quota exceeded. Try again tomorrow.",
            status_code=429
        )


class ConfigurationError(HighlightsException):
    """Required setting (API key, URL) is missing."""

    code = "configuration_error"

    def __init__(self, message: str):
        super().__init__(message=message, status_code=500)


class UnauthorizedError(HighlightsException):
    """Authentication missing."""

    code = "unauthorized"

    def __init__(self, message: str = "Admin API key required"):
        super().__init__(message=message, status_code=401)


class ForbiddenError(HighlightsException):
    """Authentication present but wrong."""

    code = "forbidden"

    def __init__(self, message: str = "Invalid admin API key"):
        super().__init__(message=message, status_code=403)


async def highlights_exception_handler(
    request: Request,
    exc: HighlightsException
) -> JSONResponse:
    """Handle HighlightsException and return JSON response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "message": exc.message,
            "code": exc.code,
            "status_code": exc.status_code,
        }
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(HighlightsException, highlights_exception_handler)
