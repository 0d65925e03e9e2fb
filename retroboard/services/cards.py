"""
Card CRUD scoped to a session.

Every mutation touches the owning session in the same transaction.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from retroboard.core.errors import ApiError
from retroboard.core.schemas.card import CardCreate, CardUpdate
from retroboard.core.security import new_id
from retroboard.core.utils.logging_config import log_security_event
from retroboard.core.utils.time_helpers import utcnow
from retroboard.db.models import Card
from retroboard.services.sessions import require_live_session, touch_session

logger = logging.getLogger(__name__)


def list_cards(db: Session, session_id: str, limit: int) -> List[Card]:
    require_live_session(db, session_id)
    stmt = (
        select(Card)
        .where(Card.session_id == session_id)
        .order_by(Card.created_at.asc(), Card.id.asc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def add_card(db: Session, session_id: str, payload: CardCreate) -> Card:
    session = require_live_session(db, session_id)
    now = utcnow()
    card = Card(
        id=new_id(),
        session_id=session_id,
        column_type=payload.column_type.value,
        content=payload.content,
        votes=0,
        created_at=now,
    )
    db.add(card)
    touch_session(session, now)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(card)
    logger.info("Added card", extra={"session_id": session_id, "card_id": card.id})
    return card


def authorize_card(
    db: Session, card_id: str, session_id: str, ip_address: Optional[str] = None
) -> Card:
    """
    Load a card the caller may mutate.

    Knowing the card's session id is the capability. Unknown cards are
    NOT_FOUND, a different session id is FORBIDDEN and expired boards are GONE.
    """
    card = db.get(Card, card_id)
    if card is None:
        raise ApiError.not_found("Card not found")
    if card.session_id != session_id:
        log_security_event(
            "forbidden",
            "Card mutation with mismatched session id",
            ip_address=ip_address,
            extra_data={"card_id": card_id},
        )
        raise ApiError.forbidden()
    require_live_session(db, session_id)
    return card


def update_card(
    db: Session, card_id: str, payload: CardUpdate, ip_address: Optional[str] = None
) -> Card:
    card = authorize_card(db, card_id, str(payload.session_id), ip_address)
    if payload.content is None and payload.column_type is None:
        raise ApiError.bad_request("No fields to update")

    if payload.content is not None:
        card.content = payload.content
    if payload.column_type is not None:
        card.column_type = payload.column_type.value
    touch_session(card.session)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(card)
    return card


def delete_card(
    db: Session, card_id: str, session_id: str, ip_address: Optional[str] = None
) -> None:
    card = authorize_card(db, card_id, session_id, ip_address)
    session = card.session
    db.delete(card)
    touch_session(session)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted card", extra={"session_id": session_id, "card_id": card_id})


def get_card(db: Session, card_id: str, session_id: Optional[str] = None) -> Optional[Card]:
    stmt = select(Card).where(Card.id == card_id)
    if session_id is not None:
        stmt = stmt.where(Card.session_id == session_id)
    return db.execute(stmt).scalar_one_or_none()
