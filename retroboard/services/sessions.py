"""
Session lifecycle: creation, the expiry gate and admin-token deletion.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from retroboard.core.config import settings
from retroboard.core.errors import ApiError
from retroboard.core.security import new_id, tokens_match
from retroboard.core.utils.logging_config import log_security_event
from retroboard.core.utils.time_helpers import expiry_from, is_expired, utcnow
from retroboard.db.models import RetroSession

logger = logging.getLogger(__name__)


def create_session(db: Session, name: str) -> RetroSession:
    now = utcnow()
    session = RetroSession(
        id=new_id(),
        name=name,
        created_at=now,
        expires_at=expiry_from(now, settings.session_expiry_days),
        admin_token=new_id(),
    )
    db.add(session)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(session)
    logger.info("Created session", extra={"session_id": session.id})
    return session


def find_session(db: Session, session_id: str) -> RetroSession:
    """Load a session or raise NOT_FOUND. Does not look at expiry."""
    session = db.get(RetroSession, session_id)
    if session is None:
        raise ApiError.not_found("Session not found")
    return session


def require_live_session(db: Session, session_id: str, now: Optional[datetime] = None) -> RetroSession:
    """
    Load a session that is still usable.

    Raises NOT_FOUND for unknown ids and GONE once ``expires_at`` has passed,
    so callers can tell an expired board from a missing one.
    """
    session = find_session(db, session_id)
    if is_expired(session.expires_at, now):
        logger.info("Rejected access to expired session", extra={"session_id": session_id})
        raise ApiError.gone()
    return session


def touch_session(session: RetroSession, now: Optional[datetime] = None) -> None:
    """
    Roll the expiry forward after a mutation.

    Runs inside the caller's transaction; boards without an expiry stay that way.
    """
    if session.expires_at is None:
        return
    session.expires_at = expiry_from(now or utcnow(), settings.session_expiry_days)


def delete_session(
    db: Session, session_id: str, admin_token: str, ip_address: Optional[str] = None
) -> None:
    """Delete a session and, by cascade, its cards and votes."""
    session = find_session(db, session_id)
    if not tokens_match(admin_token, session.admin_token):
        log_security_event(
            "forbidden",
            "Session delete with wrong admin token",
            ip_address=ip_address,
            extra_data={"session_id": session_id},
        )
        raise ApiError.forbidden()
    db.delete(session)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted session", extra={"session_id": session_id})
