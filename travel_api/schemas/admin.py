"""Admin-related Pydantic schemas."""

from pydantic import BaseModel, EmailStr, field_validator

from travel_api.auth.password import check_password_length
from travel_api.schemas.users import UserInfo


class ListUsersResponse(BaseModel):
    """Response for GET /admin/users endpoint."""

    items: list[UserInfo]


class CreateUserRequest(BaseModel):
    """Admin request to create a user with an explicit role."""

    email: EmailStr
    password: str
    full_name: str = ""
    role_id: int = 1

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_length(v)


class UpdateUserRequest(BaseModel):
    """Admin request to change a user's name or role."""

    full_name: str | None = None
    role_id: int | None = None


class UploadResponse(BaseModel):
    """Stored file location."""

    url: str
    size: int
