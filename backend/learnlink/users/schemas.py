from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserSummary(BaseModel):
    """Compact author/creator block embedded in plan and post responses."""

    id: UUID
    name: str | None = None
    profile_picture: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserProfileUpdate(BaseModel):
    """Schema for updating the current user's profile."""

    name: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=255)
    profile_picture: str | None = Field(None, max_length=500)
    bio: str | None = Field(None, max_length=1000)


class UserResponse(BaseModel):
    """Schema for user response."""

    id: UUID
    name: str | None = None
    email: str | None = None
    profile_picture: str | None = None
    bio: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
