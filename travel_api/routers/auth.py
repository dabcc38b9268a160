"""Authentication router for user registration and login."""

from datetime import timedelta

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from travel_api.auth.dependencies import get_token_service
from travel_api.auth.password import hash_password, verify_password
from travel_api.auth.roles import Role
from travel_api.database import get_db
from travel_api.errors import ConflictError, InvalidCredentialsError
from travel_api.logging import get_logger
from travel_api.middleware.rate_limit import AUTH, rate_limit
from travel_api.models.user import User
from travel_api.schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from travel_api.schemas.users import UserInfo

logger = get_logger("travel_api.auth")

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["Auth"],
    dependencies=[Depends(rate_limit(AUTH))],
)


async def _get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


@router.post(
    "/register",
    response_model=UserInfo,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> UserInfo:
    """Create a new account with the regular user role."""
    if await _get_user_by_email(db, data.email):
        raise ConflictError("User with this email already exists")

    user = User(
        email=data.email.lower(),
        password_hash=hash_password(data.password),
        full_name=data.full_name,
        role_id=int(Role.USER),
    )
    db.add(user)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User with this email already exists")

    await db.refresh(user)
    logger.info("user registered", user_id=user.id)
    return UserInfo.model_validate(user)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: Request,
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """
    Exchange email and password for a bearer token.

    Unknown email and wrong password produce the same response.
    """
    user = await _get_user_by_email(db, data.email)
    if user is None or not verify_password(data.password, user.password_hash):
        logger.info("login failed")
        raise InvalidCredentialsError()

    ttl = timedelta(hours=request.app.state.settings.jwt_ttl_hours)
    token = get_token_service(request).issue(user.id, user.role_id, ttl)
    logger.info("user logged in", user_id=user.id)
    return AuthResponse(token=token)
