from typing import TYPE_CHECKING, List

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from retroboard.db.base import Base, CreatedAtMixin

if TYPE_CHECKING:
    from retroboard.db.models.session import RetroSession


class Card(CreatedAtMixin, Base):
    """A sticky note in one of the four board columns"""

    __tablename__ = "cards"
    __table_args__ = (CheckConstraint("votes >= 0", name="votes_non_negative"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    column_type: Mapped[str] = mapped_column(String(16), nullable=False)  # glad, wondering, sad, action
    content: Mapped[str] = mapped_column(Text, nullable=False)
    votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    session: Mapped["RetroSession"] = relationship("RetroSession", back_populates="cards")
    vote_rows: Mapped[List["Vote"]] = relationship(
        "Vote", back_populates="card", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Card(id={self.id!r}, column_type={self.column_type!r}, votes={self.votes})>"


class Vote(Base):
    """One voter's endorsement of one card"""

    __tablename__ = "votes"
    __table_args__ = (UniqueConstraint("card_id", "voter_id", name="uq_votes_card_voter"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    card_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    voter_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    card: Mapped["Card"] = relationship("Card", back_populates="vote_rows")

    def __repr__(self) -> str:
        return f"<Vote(card_id={self.card_id!r}, voter_id={self.voter_id!r})>"
