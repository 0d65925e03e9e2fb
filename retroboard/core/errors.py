"""
Error taxonomy and JSON error responses.

Every failure leaves the API as
``{"error": {"message": ..., "code": ..., "status": ...}}``.
"""

import logging
from enum import Enum
from typing import Any, Type, TypeVar

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from slowapi.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class ErrorCode(str, Enum):
    BAD_REQUEST = "BAD_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    GONE = "GONE"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ApiError(Exception):
    """An error that is returned to the caller as-is."""

    def __init__(self, code: ErrorCode, message: str, status_code: int = 400):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code

    @classmethod
    def bad_request(cls, message: str) -> "ApiError":
        return cls(ErrorCode.BAD_REQUEST, message, status.HTTP_400_BAD_REQUEST)

    @classmethod
    def validation(cls, message: str) -> "ApiError":
        return cls(ErrorCode.VALIDATION_ERROR, message, status.HTTP_400_BAD_REQUEST)

    @classmethod
    def not_found(cls, message: str) -> "ApiError":
        return cls(ErrorCode.NOT_FOUND, message, status.HTTP_404_NOT_FOUND)

    @classmethod
    def gone(cls, message: str = "Session expired") -> "ApiError":
        return cls(ErrorCode.GONE, message, status.HTTP_410_GONE)

    @classmethod
    def forbidden(cls, message: str = "Forbidden") -> "ApiError":
        return cls(ErrorCode.FORBIDDEN, message, status.HTTP_403_FORBIDDEN)

    @classmethod
    def conflict(cls, message: str) -> "ApiError":
        return cls(ErrorCode.CONFLICT, message, status.HTTP_409_CONFLICT)

    def __repr__(self) -> str:
        return f"<ApiError(code={self.code.value}, status={self.status_code}, message={self.message!r})>"


def error_response(message: str, status_code: int, code: ErrorCode) -> JSONResponse:
    """Build the JSON error envelope."""
    return JSONResponse(
        status_code=status_code,
        content={"error": {"message": message, "code": code.value, "status": status_code}},
    )


def first_error_message(errors: Any) -> str:
    """Render the first pydantic error as ``field: message``."""
    if not errors:
        return "Validation failed"
    first = errors[0]
    message = str(first.get("msg", "Validation failed"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    return f"{loc[-1]}: {message}" if loc else message


def validate_model(model: Type[M], data: Any) -> M:
    """Validate ``data`` against ``model`` or raise a VALIDATION_ERROR."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ApiError.validation(first_error_message(exc.errors())) from exc


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(exc.message, exc.status_code, exc.code)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return error_response("Invalid JSON body", status.HTTP_400_BAD_REQUEST, ErrorCode.BAD_REQUEST)
    return error_response(
        first_error_message(errors), status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render slowapi's 429 in the shared envelope with a Retry-After header."""
    from retroboard.core.utils.logging_config import log_security_event

    log_security_event(
        "rate_limited",
        f"Rate limit exceeded on {request.url.path}",
        ip_address=request.client.host if request.client else None,
        extra_data={"limit": str(exc.detail)},
    )
    response = error_response(
        "Rate limit exceeded. Please try again later.",
        status.HTTP_429_TOO_MANY_REQUESTS,
        ErrorCode.RATE_LIMITED,
    )
    rate_limit = getattr(exc, "limit", None)
    if rate_limit is not None:
        response.headers["Retry-After"] = str(rate_limit.limit.get_expiry())
    return response


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        "Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_ERROR
    )
