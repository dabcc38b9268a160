"""Authentication schemas for request/response validation."""

from pydantic import BaseModel, EmailStr, field_validator

from travel_api.auth.password import check_password_length


class RegisterRequest(BaseModel):
    """User registration request schema."""

    email: EmailStr
    password: str
    full_name: str = ""

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Passwords must be 6 characters to 72 bytes."""
        return check_password_length(v)


class LoginRequest(BaseModel):
    """User login request schema."""

    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    """Login response carrying the bearer token."""

    token: str
