"""
Application exceptions and their FastAPI handlers.

Errors raised before a job record exists propagate to the HTTP caller.
Provider errors raised inside workers are captured into the job record.
"""
import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class RoomwiseError(Exception):
    """Base exception for the application"""

    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(RoomwiseError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, "NOT_FOUND", 404)


class AuthenticationError(RoomwiseError):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, "NOT_AUTHENTICATED", 401)


class AuthorizationError(RoomwiseError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, "UNAUTHORIZED", 403)


class ValidationError(RoomwiseError):
    def __init__(self, message: str):
        super().__init__(message, "VALIDATION_ERROR", 400)


class RateLimitExceeded(RoomwiseError):
    """Raised by request handlers when the hourly quota for an operation is used up"""

    def __init__(self, message: str, retry_after_minutes: int):
        self.retry_after_minutes = retry_after_minutes
        super().__init__(message, "RATE_LIMITED", 429)


class JobSchedulingError(RoomwiseError):
    """Raised when a job record was created but its worker could not be enqueued"""

    def __init__(self, message: str = "Failed to schedule background job"):
        super().__init__(message, "JOB_SCHEDULING_FAILED", 503)


class InvalidTransitionError(RoomwiseError):
    def __init__(self, kind: str, record_id: str, current: str, target: str):
        super().__init__(
            f"{kind} {record_id} cannot move from '{current}' to '{target}'",
            "INVALID_JOB_STATE",
            409,
        )


class StorageError(RoomwiseError):
    """Raised when an object cannot be stored, resolved or fetched"""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, "STORAGE_ERROR", 502)


class ProviderError(RoomwiseError):
    """Base class for failures talking to an external AI or search provider"""

    retryable = False

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.provider_status = status_code
        super().__init__(message, "PROVIDER_ERROR", 502)


class ProviderUnavailable(ProviderError):
    """Transient failure: timeout, connection error, 429/503/504"""

    retryable = True


class InvalidProviderResponse(ProviderError):
    """The provider answered but the payload was malformed or incomplete"""


class ProviderConfigurationError(ProviderError):
    """Credentials or model configuration are missing"""


async def roomwise_exception_handler(request: Request, exc: RoomwiseError):
    """Handle application exceptions"""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"Application exception: {exc.code} - {exc.message}",
        extra={"error_code": exc.code, "request_path": request.url.path},
    )
    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.retry_after_minutes * 60)}
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "message": exc.message, "status_code": exc.status_code},
        headers=headers,
    )
