#!/usr/bin/env python3
"""
Seed file for the demo board
"""

import logging
import uuid
from datetime import timedelta

from sqlalchemy.orm import Session

from retroboard.core.utils.time_helpers import utcnow
from retroboard.db.models import Card, RetroSession

logger = logging.getLogger("retroboard.seeds")

DEMO_SESSION_ID = "00000000-0000-0000-0000-000000000000"

DEMO_CARDS = [
    ("glad", "Paper accepted at CHI 2026! Great teamwork on the revisions.", 5),
    ("glad", "New PhD student onboarding went smoothly", 2),
    ("glad", "Weekly reading group discussions have been really insightful", 3),
    ("wondering", "Should we move lab meetings to a different time slot?", 2),
    ("wondering", "How can we better support undergrads doing research?", 1),
    ("sad", "Paper submission deadline crunch affected everyone's well-being", 4),
    ("sad", "Hard to book meeting rooms for user studies", 2),
    ("action", "Set up shared calendar for equipment bookings", 3),
    ("action", "Create a mentorship pairing for new lab members", 4),
]


def create_demo_board(db: Session) -> RetroSession:
    """
    Create the demo session and its cards if they don't exist.

    The demo board never expires and its admin token is random, so it cannot
    be deleted through the API by anyone who did not seed it.
    """
    existing = db.get(RetroSession, DEMO_SESSION_ID)
    if existing:
        logger.info("Demo board already exists", extra={"session_id": existing.id})
        return existing

    session = RetroSession(
        id=DEMO_SESSION_ID,
        name="Demo Retro",
        created_at=utcnow(),
        expires_at=None,
        admin_token=str(uuid.uuid4()),
    )
    db.add(session)
    start = session.created_at
    for offset, (column_type, content, votes) in enumerate(DEMO_CARDS):
        db.add(Card(
            id=str(uuid.uuid4()),
            session_id=DEMO_SESSION_ID,
            column_type=column_type,
            content=content,
            votes=votes,
            created_at=start + timedelta(milliseconds=offset),
        ))
    db.commit()
    db.refresh(session)

    logger.info("Created demo board", extra={
        "session_id": session.id,
        "card_count": len(DEMO_CARDS),
    })
    return session


if __name__ == "__main__":
    from retroboard.db.session import get_db_sync

    with get_db_sync() as db:
        create_demo_board(db)
