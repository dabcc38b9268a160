"""Authentication and authorization for the Travel API."""

from travel_api.auth.dependencies import get_principal, get_token_service
from travel_api.auth.password import hash_password, verify_password
from travel_api.auth.roles import Role, authorize, require_admin, require_roles
from travel_api.auth.tokens import Principal, TokenService

__all__ = [
    "hash_password",
    "verify_password",
    "Principal",
    "TokenService",
    "get_principal",
    "get_token_service",
    "Role",
    "authorize",
    "require_roles",
    "require_admin",
]
