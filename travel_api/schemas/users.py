"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserInfo(BaseModel):
    """Public view of a user (never includes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str
    avatar: str | None = None
    role_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UpdateProfileRequest(BaseModel):
    """Partial update of the caller's own profile."""

    full_name: str | None = None
    avatar: str | None = None
