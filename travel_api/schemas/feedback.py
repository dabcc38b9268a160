"""Feedback request schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator


class FeedbackRequest(BaseModel):
    """Public "call me back" form."""

    user_name: str
    user_phone: str

    @field_validator("user_name", "user_phone")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field must not be empty")
        return v


class FeedbackInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_name: str
    user_phone: str
    is_read: bool
    created_at: datetime | None = None


class ListFeedbacksResponse(BaseModel):
    """Paginated feedback list."""

    items: list[FeedbackInfo]
    total: int
