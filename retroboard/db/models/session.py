from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from retroboard.core.types.sqlalchemy import UTCDateTime
from retroboard.db.base import Base, CreatedAtMixin

if TYPE_CHECKING:
    from retroboard.db.models.card import Card


class RetroSession(CreatedAtMixin, Base):
    """One retrospective board"""

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # NULL means the board never expires
    expires_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, index=True)
    admin_token: Mapped[str] = mapped_column(String(36), nullable=False)

    cards: Mapped[List["Card"]] = relationship(
        "Card",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Card.created_at",
    )

    def __repr__(self) -> str:
        return f"<RetroSession(id={self.id!r}, name={self.name!r})>"
