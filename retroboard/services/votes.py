"""
Vote toggling and per-voter vote lookup.

The vote row change and the cached counter on the card must move together:
both statements run in one transaction with a single commit.
"""

import logging
from typing import List, Tuple

from sqlalchemy import case, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from retroboard.core.errors import ApiError
from retroboard.core.security import new_id
from retroboard.db.models import Card, Vote
from retroboard.services.cards import get_card
from retroboard.services.sessions import require_live_session, touch_session

logger = logging.getLogger(__name__)


def _lost_race(card_id: str) -> ApiError:
    logger.info("Concurrent vote toggle lost the race", extra={"card_id": card_id})
    return ApiError.conflict("Vote changed concurrently, please retry")


def toggle_vote(db: Session, card_id: str, voter_id: str, session_id: str) -> Tuple[Card, bool]:
    """
    Add the voter's vote if absent, remove it if present.

    Returns the refreshed card and whether the voter now endorses it.
    A retried request toggles again; there is no idempotency key.
    """
    card = get_card(db, card_id, session_id=session_id)
    if card is None:
        raise ApiError.not_found("Card not found")
    session = require_live_session(db, session_id)

    existing = db.execute(
        select(Vote.id).where(Vote.card_id == card_id, Vote.voter_id == voter_id)
    ).scalar_one_or_none()

    try:
        if existing is not None:
            removed = db.execute(
                delete(Vote).where(Vote.card_id == card_id, Vote.voter_id == voter_id)
            )
            if removed.rowcount != 1:
                # Another toggle removed the row after our lookup
                raise _lost_race(card_id)
            db.execute(
                update(Card)
                .where(Card.id == card_id)
                .values(votes=case((Card.votes > 0, Card.votes - 1), else_=0))
                .execution_options(synchronize_session=False)
            )
            voted = False
        else:
            db.add(Vote(id=new_id(), card_id=card_id, voter_id=voter_id))
            db.flush()
            db.execute(
                update(Card)
                .where(Card.id == card_id)
                .values(votes=Card.votes + 1)
                .execution_options(synchronize_session=False)
            )
            voted = True
        touch_session(session)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise _lost_race(card_id) from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(card)
    return card, voted


def voted_card_ids(db: Session, session_id: str, voter_id: str, limit: int) -> List[str]:
    require_live_session(db, session_id)
    stmt = (
        select(Vote.card_id)
        .join(Card, Card.id == Vote.card_id)
        .where(Card.session_id == session_id, Vote.voter_id == voter_id)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())
