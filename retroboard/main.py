import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from retroboard.core.config import settings
from retroboard.core.errors import (
    ApiError,
    api_error_handler,
    rate_limit_handler,
    request_validation_handler,
    unhandled_error_handler,
)
from retroboard.core.limiter import limiter
from retroboard.core.security import RequestSizeLimitMiddleware
from retroboard.core.types.api import StatusResponse
from retroboard.core.utils.logging_config import CorrelationIdMiddleware, init_application_logging
from retroboard.db.init_db import init_database

# Initialize structured logging
init_application_logging()

logger = logging.getLogger("retroboard.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    init_database()
    yield


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Real-time retrospective board API",
    version=settings.version,
    lifespan=lifespan,
)

# Attach limiter to app.state for access in route decorators
app.state.limiter = limiter

app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

logger.info(
    "Rate limiting initialized with configuration: read=%s, write=%s, session_create=%s",
    settings.rate_limit_read_endpoints,
    settings.rate_limit_write_endpoints,
    settings.rate_limit_session_create,
)

# Oversized bodies are rejected before any route parses them
app.add_middleware(RequestSizeLimitMiddleware, max_body_size=settings.max_request_body_size)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    expose_headers=["X-Request-ID", "Retry-After"],
)

# Outermost, so every log line of a request carries its correlation ID
app.add_middleware(CorrelationIdMiddleware)

# Import and include API routers
from retroboard.api import cards, sessions, votes  # noqa: E402

app.include_router(sessions.router, prefix="/api/sessions", tags=["Sessions"])
app.include_router(cards.router, prefix="/api", tags=["Cards"])
app.include_router(votes.router, prefix="/api", tags=["Votes"])


def _check_storage_health() -> Dict[str, Any]:
    """
    Check the health of the rate limiting storage backend.

    Returns dict with storage health status and details.
    """
    if not settings.redis_url:
        return {
            "type": "memory",
            "healthy": True,
            "message": "In-memory storage active",
        }

    try:
        import redis

        client = redis.from_url(settings.redis_url, socket_timeout=2)
        client.ping()
        return {
            "type": "redis",
            "healthy": True,
            "message": "Redis connection successful",
        }
    except Exception as e:
        logger.warning("Redis health check failed: %s", str(e))
        return {
            "type": "redis",
            "healthy": False,
            "message": f"Redis connection failed: {str(e)}",
        }


# Health check endpoints
@app.get("/health", response_model=StatusResponse)
def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy"}


@app.get("/api/health")
def api_health_check():
    """
    Detailed health check.

    Reports database connectivity, rate limiting storage, and version info.
    Answers 503 when the service is unhealthy.
    """
    from retroboard.core.utils.database_helpers import check_database_health

    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": {
            "dev_mode": settings.dev_mode,
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        },
        "services": {},
    }

    db_health = check_database_health()
    health_status["services"]["database"] = {
        "status": db_health["status"],
        "type": db_health["database_type"],
        "connected": db_health["connected"],
        "table_count": db_health["table_count"],
        "last_error": db_health["last_error"],
    }
    if db_health["status"] == "unhealthy":
        health_status["status"] = "unhealthy"
    elif db_health["status"] != "healthy":
        health_status["status"] = "degraded"

    storage_health = _check_storage_health()
    rate_limit_status = "enabled" if settings.rate_limit_enabled else "disabled"
    if settings.rate_limit_enabled and not storage_health["healthy"]:
        rate_limit_status = "degraded"
        if health_status["status"] == "healthy":
            health_status["status"] = "degraded"

    health_status["services"]["rate_limiting"] = {
        "status": rate_limit_status,
        "storage": storage_health,
        "configuration": {
            "read_endpoints": settings.rate_limit_read_endpoints,
            "write_endpoints": settings.rate_limit_write_endpoints,
            "session_create": settings.rate_limit_session_create,
        },
    }

    status_code = 503 if health_status["status"] == "unhealthy" else 200
    return JSONResponse(status_code=status_code, content=health_status)
