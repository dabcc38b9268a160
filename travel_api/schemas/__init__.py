"""Pydantic schemas for request/response validation."""

from travel_api.schemas.admin import CreateUserRequest, ListUsersResponse, UpdateUserRequest, UploadResponse
from travel_api.schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from travel_api.schemas.feedback import FeedbackInfo, FeedbackRequest, ListFeedbacksResponse
from travel_api.schemas.users import UpdateProfileRequest, UserInfo

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "AuthResponse",
    "UserInfo",
    "UpdateProfileRequest",
    "ListUsersResponse",
    "CreateUserRequest",
    "UpdateUserRequest",
    "UploadResponse",
    "FeedbackRequest",
    "FeedbackInfo",
    "ListFeedbacksResponse",
]
