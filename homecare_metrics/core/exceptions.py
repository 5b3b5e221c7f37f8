"""Error taxonomy and exception handlers for the metrics API."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from homecare_metrics.core.logging import get_logger

logger = get_logger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for the API."""

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Reporting Errors
    SOURCE_FETCH_ERROR = "SOURCE_FETCH_ERROR"
    EMPTY_INPUT = "EMPTY_INPUT"

    # System Errors
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class APIException(Exception):
    """Base API exception with enhanced error information."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.field = field
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

        super().__init__(message)


class ValidationException(APIException):
    """Validation error exception."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            field=field,
            context=context,
        )


class SourceFetchError(APIException):
    """The record store rejected or timed out a read."""

    def __init__(
        self,
        collection: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.collection = collection
        super().__init__(
            message=f"{collection} fetch failed: {message}",
            error_code=ErrorCode.SOURCE_FETCH_ERROR,
            status_code=status.HTTP_502_BAD_GATEWAY,
            context={"collection": collection, **(context or {})},
        )


class EmptyInputError(APIException):
    """A normalizer received a group with no records."""

    def __init__(self, message: str = "Nothing to report"):
        super().__init__(
            message=message,
            error_code=ErrorCode.EMPTY_INPUT,
            status_code=status.HTTP_404_NOT_FOUND,
        )


def get_request_id(request: Request) -> str:
    """Get request ID from request state or generate new one."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return str(uuid.uuid4())


def create_error_response(
    exception: APIException,
    request: Optional[Request] = None,
    public_message: Optional[str] = None,
) -> JSONResponse:
    """Create standardized error response."""
    request_id = get_request_id(request) if request else None

    logger.error(
        f"API Error: {exception.error_code.value}",
        error_code=exception.error_code.value,
        message=exception.message,
        field=exception.field,
        status_code=exception.status_code,
        request_id=request_id,
        context=exception.context,
    )

    return JSONResponse(
        status_code=exception.status_code,
        content={
            "error": {
                "code": exception.status_code,
                "error_code": exception.error_code.value,
                "message": public_message or exception.message,
                "field": exception.field,
                "timestamp": exception.timestamp.isoformat(),
                "request_id": request_id,
            }
        },
        headers={"X-Request-ID": request_id} if request_id else None,
    )


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handle APIException."""
    return create_error_response(exc, request)


async def source_fetch_exception_handler(request: Request, exc: SourceFetchError) -> JSONResponse:
    """Handle a failed report fetch with a generic message."""
    return create_error_response(exc, request, public_message="Failed to load metrics")
