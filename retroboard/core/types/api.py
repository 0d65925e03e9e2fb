"""Type definitions for API components"""

from typing import Any, Dict, Optional

from fastapi import Query
from pydantic import BaseModel

from retroboard.core.config import settings


class LimitParams:
    """Page size for list endpoints.

    Unparsable or missing values fall back to the default; everything is
    clamped to ``[1, max_page_limit]``.
    """

    def __init__(
        self,
        limit: Optional[str] = Query(None, description="Maximum number of items to return"),
    ):
        self.limit = parse_limit(limit)


def parse_limit(raw: Optional[str]) -> int:
    try:
        value = int(raw) if raw is not None else 0
    except ValueError:
        value = 0
    if value == 0:
        value = settings.default_page_limit
    return min(max(1, value), settings.max_page_limit)


def cache_control_header(max_age: Optional[int] = None) -> str:
    age = settings.cache_max_age_seconds if max_age is None else max_age
    return f"private, max-age={age}, stale-while-revalidate={age}"


# Response models
class StatusResponse(BaseModel):
    """Standard status response"""

    status: str


class ErrorBody(BaseModel):
    message: str
    code: str
    status: int


class ErrorResponse(BaseModel):
    """Standard error response"""

    error: ErrorBody


def error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """OpenAPI ``responses=`` entries documenting the error envelope."""
    return {code: {"model": ErrorResponse} for code in status_codes}
