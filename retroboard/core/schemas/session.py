"""Session schema definitions."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from retroboard.core.config import settings
from retroboard.core.security import strip_markup


class SessionCreate(BaseModel):
    """Schema for creating a Session"""

    name: str = Field(..., min_length=1, description="Board name, markup is stripped")

    @field_validator("name")
    @classmethod
    def sanitize_name(cls, value: str) -> str:
        if len(value) > settings.max_session_name_length:
            raise ValueError(
                f"Name must be at most {settings.max_session_name_length} characters"
            )
        cleaned = strip_markup(value)
        if not cleaned:
            raise ValueError("Name must not be empty after sanitization")
        return cleaned


class SessionInfo(BaseModel):
    """Schema for Session response (never carries the admin token)"""

    id: str
    name: str
    created_at: datetime
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SessionCreated(SessionInfo):
    """Schema returned once, on creation"""

    admin_token: str


class DeleteSessionParams(BaseModel):
    """Capability required to delete a session"""

    admin_token: UUID = Field(..., description="Admin token issued at creation")
