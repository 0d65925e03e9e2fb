"""Database models"""

from retroboard.db.models.card import Card, Vote
from retroboard.db.models.session import RetroSession

__all__ = [
    "RetroSession",
    "Card",
    "Vote",
]
