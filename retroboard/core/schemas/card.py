"""Card and vote schema definitions."""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from retroboard.core.config import settings
from retroboard.core.security import strip_markup


class ColumnType(str, Enum):
    GLAD = "glad"
    WONDERING = "wondering"
    SAD = "sad"
    ACTION = "action"


# Board column order, left to right
COLUMN_ORDER = (ColumnType.GLAD, ColumnType.WONDERING, ColumnType.SAD, ColumnType.ACTION)


def clean_content(value: str) -> str:
    if len(value) > settings.max_card_content_length:
        raise ValueError(
            f"Content must be at most {settings.max_card_content_length} characters"
        )
    cleaned = strip_markup(value)
    if not cleaned:
        raise ValueError("Content must not be empty")
    return cleaned


class CardCreate(BaseModel):
    """Schema for adding a Card"""

    column_type: ColumnType
    content: str = Field(..., min_length=1)

    @field_validator("content")
    @classmethod
    def sanitize_content(cls, value: str) -> str:
        return clean_content(value)


class CardUpdate(BaseModel):
    """Schema for editing a Card; session_id proves access"""

    session_id: UUID
    content: Optional[str] = Field(None, min_length=1)
    column_type: Optional[ColumnType] = None

    @field_validator("content")
    @classmethod
    def sanitize_content(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else clean_content(value)


class DeleteCardParams(BaseModel):
    session_id: UUID


class Card(BaseModel):
    """Schema for Card response"""

    id: str
    session_id: str
    column_type: ColumnType
    content: str
    votes: int = Field(..., ge=0)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VoteRequest(BaseModel):
    """Schema for toggling a vote"""

    voter_id: UUID
    session_id: UUID


class VoterParams(BaseModel):
    voter_id: UUID


class VoteResult(Card):
    """Card after a vote toggle plus the voter's new state"""

    voted: bool
