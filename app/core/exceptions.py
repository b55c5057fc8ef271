"""
Custom exception handlers and error types
"""

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging
import traceback
from typing import List, Optional

logger = logging.getLogger(__name__)


class DurationScoutError(Exception):
    """Base exception for duration resolution errors"""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


# ----- Container parsing (binary tier) -----
class ShortReadError(DurationScoutError):
    """Raised when the source holds fewer bytes than a requested range.

    Non-fatal: the parser stops the current traversal level.
    """

    def __init__(self, offset: int, requested: int, available: int):
        self.offset = offset
        self.requested = requested
        self.available = available
        super().__init__(
            f"Short read at offset {offset}: wanted {requested} bytes, got {available}",
            "SHORT_READ",
        )


class MalformedBoxError(DurationScoutError):
    """Raised when a box declares a size that cannot hold its own header"""

    def __init__(self, message: str, box_type: Optional[str] = None, offset: int = 0):
        super().__init__(message, "MALFORMED_BOX")
        self.box_type = box_type
        self.offset = offset


class BoxNotFoundError(DurationScoutError):
    """Raised when no duration-bearing box is found within the scan budget"""

    def __init__(self, message: str = "No duration-bearing box found"):
        super().__init__(message, "NOT_FOUND")


# ----- Playback probe (probe tier) -----
class ProbeTimeoutError(DurationScoutError):
    """Raised when the playback probe does not settle within its timeout"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Playback probe did not settle within {timeout:g}s", "PROBE_TIMEOUT")


class FormatRejectedError(DurationScoutError):
    """Raised when the playback engine refuses to decode the media"""

    def __init__(self, message: str = "Format Error"):
        super().__init__(message, "FORMAT_REJECTED")


# ----- Remote fallback (remote tier) -----
class RemoteUnavailableError(DurationScoutError):
    """Raised when the remote fallback cannot be reached or is not configured"""

    def __init__(self, message: str):
        super().__init__(message, "REMOTE_UNAVAILABLE")


class RemoteUnparseableError(DurationScoutError):
    """Raised when the remote fallback answers with something that is not a duration"""

    def __init__(self, message: str, response_text: Optional[str] = None):
        super().__init__(message, "REMOTE_UNPARSEABLE")
        self.response_text = response_text


# ----- Resolution / queue -----
class MediaSourceError(DurationScoutError):
    """Raised when a locator cannot be opened or fetched"""

    def __init__(self, message: str, locator: Optional[str] = None):
        super().__init__(message, "MEDIA_SOURCE_ERROR")
        self.locator = locator


class DurationUnresolvedError(DurationScoutError):
    """Raised when every configured tier failed or was skipped

    Args:
        message (str): Error message
        outcomes (Optional[list]): Per-tier outcomes in execution order
    """

    def __init__(self, message: str, outcomes: Optional[List] = None):
        super().__init__(message, "DURATION_UNRESOLVED")
        self.outcomes = outcomes or []


class QueueItemNotFoundError(DurationScoutError):
    """Raised when a queue command targets an unknown item id"""

    def __init__(self, item_id: str):
        super().__init__(f"Queue item not found: {item_id}", "ITEM_NOT_FOUND")
        self.item_id = item_id


class QueueFullError(DurationScoutError):
    """Raised when enqueuing would exceed the configured queue size"""

    def __init__(self, limit: int):
        super().__init__(f"Queue is full (max {limit} items)", "QUEUE_FULL")
        self.limit = limit


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors"""
    logger.warning("Validation error: %s", exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            "detail": {
                "error": "Validation error",
                "details": "Invalid request data",
                "errors": exc.errors(),
            }
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format"""
    logger.warning("HTTP exception: %s - %s", exc.status_code, exc.detail)

    if isinstance(exc.detail, dict):
        detail = exc.detail
    else:
        detail = {"error": "HTTP Error", "details": str(exc.detail)}

    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


_STATUS_BY_ERROR = {
    QueueItemNotFoundError: 404,
    QueueFullError: 409,
    MediaSourceError: 400,
    DurationUnresolvedError: 422,
}


async def duration_scout_exception_handler(request: Request, exc: DurationScoutError):
    """Handle duration resolution and queue errors"""
    status_code = 500
    for exc_type, code in _STATUS_BY_ERROR.items():
        if isinstance(exc, exc_type):
            status_code = code
            break
    log = logger.error if status_code >= 500 else logger.warning
    log("Duration scout error (%s): %s", exc.error_code, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": {
                "error": "Duration resolution failed",
                "details": exc.message,
                "error_code": exc.error_code,
            }
        },
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors"""
    logger.error("Unexpected error: %s: %s", type(exc).__name__, str(exc))
    logger.error("Traceback: %s", traceback.format_exc())

    return JSONResponse(
        status_code=500,
        content={
            "detail": {
                "error": "Internal server error",
                "details": "An unexpected error occurred",
            }
        },
    )
