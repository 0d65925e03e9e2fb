from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from retroboard.core.config import settings
from retroboard.core.errors import validate_model
from retroboard.core.limiter import limiter
from retroboard.core.schemas.card import Card, CardCreate, CardUpdate, DeleteCardParams
from retroboard.core.security import client_ip, require_uuid
from retroboard.core.types.api import LimitParams, cache_control_header, error_responses
from retroboard.db.session import get_db
from retroboard.services import cards as card_service

# Create router
router = APIRouter(responses=error_responses(400, 403, 404, 410, 413, 429))


@router.get("/sessions/{session_id}/cards", response_model=List[Card])
@limiter.limit(settings.rate_limit_read_endpoints)
async def list_cards(
    request: Request,
    response: Response,
    session_id: str,
    page: LimitParams = Depends(),
    db: Session = Depends(get_db),
) -> List[Card]:
    """
    List the cards of a session, oldest first.

    Rate limit: Read endpoints limit per minute per IP address.
    """
    cards = card_service.list_cards(db, require_uuid(session_id, "session"), page.limit)
    response.headers["Cache-Control"] = cache_control_header()
    return [Card.model_validate(card) for card in cards]


@router.post(
    "/sessions/{session_id}/cards", response_model=Card, status_code=status.HTTP_201_CREATED
)
@limiter.limit(settings.rate_limit_write_endpoints)
async def add_card(
    request: Request,
    session_id: str,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
) -> Card:
    """Add a card to a session. New cards start with zero votes."""
    session_id = require_uuid(session_id, "session")
    data = validate_model(CardCreate, payload)
    card = card_service.add_card(db, session_id, data)
    return Card.model_validate(card)


@router.patch("/cards/{card_id}", response_model=Card)
@limiter.limit(settings.rate_limit_write_endpoints)
async def update_card(
    request: Request,
    card_id: str,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
) -> Card:
    """
    Edit a card's content or move it to another column.

    The body must carry the card's session id.
    """
    card_id = require_uuid(card_id, "card")
    data = validate_model(CardUpdate, payload)
    card = card_service.update_card(db, card_id, data, ip_address=client_ip(request))
    return Card.model_validate(card)


@router.delete("/cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.rate_limit_write_endpoints)
async def delete_card(
    request: Request,
    card_id: str,
    session_id: Optional[str] = Query(None, description="Session the card belongs to"),
    db: Session = Depends(get_db),
) -> Response:
    card_id = require_uuid(card_id, "card")
    params = validate_model(DeleteCardParams, {"session_id": session_id})
    card_service.delete_card(db, card_id, str(params.session_id), ip_address=client_ip(request))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
