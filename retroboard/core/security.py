"""
Security utilities for Retro Board

Markup stripping for user-supplied text, identifier validation,
capability-token comparison and the request body size guard.
"""

import hmac
import logging
import re
import uuid
from typing import Optional

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from retroboard.core.errors import ApiError, ErrorCode, error_response

logger = logging.getLogger(__name__)

_TAG_PATTERN = re.compile(r"<[^>]*>")

_BODY_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def strip_markup(value: str) -> str:
    """Trim whitespace and remove anything that looks like an HTML tag."""
    return _TAG_PATTERN.sub("", value.strip()).strip()


def canonical_uuid(value: Optional[str]) -> Optional[str]:
    """Return the canonical lowercase form of a UUID string, or None if malformed."""
    if not value or not isinstance(value, str):
        return None
    try:
        return str(uuid.UUID(value))
    except ValueError:
        return None


def require_uuid(value: Optional[str], label: str) -> str:
    """Canonicalise a path identifier or raise BAD_REQUEST."""
    canonical = canonical_uuid(value)
    if canonical is None:
        raise ApiError.bad_request(f"Invalid {label} ID")
    return canonical


def new_id() -> str:
    return str(uuid.uuid4())


def tokens_match(presented: str, expected: str) -> bool:
    """Constant-time comparison of capability tokens."""
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


def bearer_token(request: Request) -> Optional[str]:
    """Extract a bearer token from the Authorization header."""
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Reject request bodies larger than ``max_body_size`` before they are parsed.

    Uses Content-Length when present and the buffered body size otherwise.
    """

    def __init__(self, app, max_body_size: int):
        super().__init__(app)
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next):
        if request.method not in _BODY_METHODS:
            return await call_next(request)

        declared = request.headers.get("content-length")
        if declared is not None:
            try:
                size = int(declared)
            except ValueError:
                return error_response(
                    "Invalid Content-Length header", status.HTTP_400_BAD_REQUEST, ErrorCode.BAD_REQUEST
                )
        else:
            size = len(await request.body())

        if size > self.max_body_size:
            logger.warning(
                "Rejected oversized request body",
                extra={"path": request.url.path, "size": size, "limit": self.max_body_size},
            )
            return error_response(
                f"Request body too large (max {self.max_body_size} bytes)",
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                ErrorCode.BAD_REQUEST,
            )
        return await call_next(request)


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None
