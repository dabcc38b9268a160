"""Database models for the Travel API."""

from travel_api.models.feedback import Feedback
from travel_api.models.user import User

__all__ = [
    "User",
    "Feedback",
]
