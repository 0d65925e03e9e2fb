from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from retroboard.core.config import settings
from retroboard.core.errors import validate_model
from retroboard.core.limiter import limiter
from retroboard.core.schemas.card import Card, VoteRequest, VoteResult, VoterParams
from retroboard.core.security import require_uuid
from retroboard.core.types.api import LimitParams, cache_control_header, error_responses
from retroboard.db.session import get_db
from retroboard.services import votes as vote_service

# Create router
router = APIRouter(responses=error_responses(400, 404, 409, 410, 429))


@router.patch(
    "/cards/{card_id}/vote",
    response_model=VoteResult,
    responses={201: {"model": VoteResult, "description": "Vote added"}},
)
@limiter.limit(settings.rate_limit_write_endpoints)
async def toggle_vote(
    request: Request,
    card_id: str,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """
    Toggle the caller's vote on a card.

    Answers 201 when a vote was added and 200 when it was removed. Sending the
    same request twice toggles twice.
    """
    card_id = require_uuid(card_id, "card")
    data = validate_model(VoteRequest, payload)
    card, voted = vote_service.toggle_vote(db, card_id, str(data.voter_id), str(data.session_id))

    result = VoteResult(**Card.model_validate(card).model_dump(), voted=voted)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED if voted else status.HTTP_200_OK,
        content=result.model_dump(mode="json"),
    )


@router.get("/sessions/{session_id}/votes", response_model=List[str])
@limiter.limit(settings.rate_limit_read_endpoints)
async def list_voted_cards(
    request: Request,
    response: Response,
    session_id: str,
    voter_id: Optional[str] = Query(None, description="Voter whose votes to list"),
    page: LimitParams = Depends(),
    db: Session = Depends(get_db),
) -> List[str]:
    """
    List the ids of cards in a session the voter has voted for.

    Rate limit: Read endpoints limit per minute per IP address.
    """
    session_id = require_uuid(session_id, "session")
    params = validate_model(VoterParams, {"voter_id": voter_id})
    card_ids = vote_service.voted_card_ids(db, session_id, str(params.voter_id), page.limit)
    response.headers["Cache-Control"] = cache_control_header()
    return card_ids
