from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from retroboard.core.config import settings
from retroboard.core.errors import validate_model
from retroboard.core.limiter import limiter
from retroboard.core.schemas.session import (
    DeleteSessionParams,
    SessionCreate,
    SessionCreated,
    SessionInfo,
)
from retroboard.core.security import bearer_token, client_ip, require_uuid
from retroboard.core.types.api import cache_control_header, error_responses
from retroboard.db.session import get_db
from retroboard.services import sessions as session_service

# Create router
router = APIRouter(responses=error_responses(400, 403, 404, 410, 429))


@router.post("", response_model=SessionCreated, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_session_create)
async def create_session(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
) -> SessionCreated:
    """
    Create a retrospective session.

    The response is the only place the admin token is ever returned.
    Rate limit: session creation limit per minute per IP address.
    """
    data = validate_model(SessionCreate, payload)
    session = session_service.create_session(db, data.name)
    return SessionCreated.model_validate(session)


@router.get("/{session_id}", response_model=SessionInfo)
@limiter.limit(settings.rate_limit_read_endpoints)
async def get_session(
    request: Request,
    response: Response,
    session_id: str,
    db: Session = Depends(get_db),
) -> SessionInfo:
    """
    Get a session by ID.

    Expired sessions answer 410 rather than 404.
    Rate limit: Read endpoints limit per minute per IP address.
    """
    session = session_service.require_live_session(db, require_uuid(session_id, "session"))
    response.headers["Cache-Control"] = cache_control_header()
    return SessionInfo.model_validate(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.rate_limit_write_endpoints)
async def delete_session(
    request: Request,
    session_id: str,
    admin_token: Optional[str] = Query(None, description="Admin token issued at creation"),
    db: Session = Depends(get_db),
) -> Response:
    """
    Delete a session together with its cards and votes.

    The admin token may be sent as a query parameter or as a bearer token.
    """
    session_id = require_uuid(session_id, "session")
    params = validate_model(
        DeleteSessionParams, {"admin_token": admin_token or bearer_token(request)}
    )
    session_service.delete_session(
        db, session_id, str(params.admin_token), ip_address=client_ip(request)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
