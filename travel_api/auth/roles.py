"""Role definitions and the role gate used by route groups."""

from collections.abc import Iterable
from enum import IntEnum

from fastapi import Depends

from travel_api.auth.dependencies import get_principal
from travel_api.auth.tokens import Principal
from travel_api.errors import ForbiddenError


class Role(IntEnum):
    """Role IDs stored on users and embedded in tokens."""

    USER = 1
    ADMIN = 2


def authorize(role: int, accepted: Iterable[int]) -> bool:
    """Return True iff ``role`` is one of the ``accepted`` roles."""
    return any(role == candidate for candidate in accepted)


def require_roles(*accepted: int):
    """
    Build a dependency that admits only principals holding one of ``accepted``.

    The accepted set is fixed when the route is registered.
    """
    accepted_roles = frozenset(int(role) for role in accepted)

    async def _require_roles(principal: Principal = Depends(get_principal)) -> Principal:
        if not authorize(principal.role, accepted_roles):
            raise ForbiddenError(f"forbidden: need role {sorted(accepted_roles)}")
        return principal

    return _require_roles


require_admin = require_roles(Role.ADMIN)
