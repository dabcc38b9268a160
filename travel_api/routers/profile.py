"""Profile router: the caller's own account."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from travel_api.auth.dependencies import get_principal
from travel_api.auth.tokens import Principal
from travel_api.database import get_db
from travel_api.errors import NotFoundError
from travel_api.models.user import User
from travel_api.schemas.users import UpdateProfileRequest, UserInfo

router = APIRouter(prefix="/api/v1/profile", tags=["Profile"])


async def _load_user(db: AsyncSession, principal: Principal) -> User:
    user = await db.get(User, principal.subject_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.get("", response_model=UserInfo)
async def get_profile(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> UserInfo:
    """Return the authenticated user's profile."""
    return UserInfo.model_validate(await _load_user(db, principal))


@router.put("", response_model=UserInfo)
async def update_profile(
    data: UpdateProfileRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> UserInfo:
    """Update name and avatar. Role changes go through the admin API."""
    user = await _load_user(db, principal)
    if data.full_name is not None:
        user.full_name = data.full_name
    if data.avatar is not None:
        user.avatar = data.avatar

    await db.commit()
    await db.refresh(user)
    return UserInfo.model_validate(user)
