"""Admin router for user and feedback management. Requires role 2."""

import asyncio
import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from travel_api.auth.password import hash_password
from travel_api.auth.roles import require_admin
from travel_api.auth.tokens import Principal
from travel_api.database import get_db
from travel_api.errors import ConflictError, NotFoundError, PayloadTooLargeError
from travel_api.logging import get_logger
from travel_api.middleware.rate_limit import ADMIN_UPLOAD, rate_limit
from travel_api.models.feedback import Feedback
from travel_api.models.user import User
from travel_api.schemas.admin import CreateUserRequest, ListUsersResponse, UpdateUserRequest, UploadResponse
from travel_api.schemas.feedback import FeedbackInfo, ListFeedbacksResponse
from travel_api.schemas.users import UserInfo

logger = get_logger("travel_api.admin")

router = APIRouter(
    prefix="/api/v1/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)

# Uploads are charged against their own limiter before the token is checked
upload_router = APIRouter(
    prefix="/api/v1/admin",
    tags=["Admin"],
    dependencies=[Depends(rate_limit(ADMIN_UPLOAD)), Depends(require_admin)],
)

UPLOAD_CHUNK_SIZE = 1024 * 1024


async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _get_feedback(db: AsyncSession, feedback_id: int) -> Feedback:
    feedback = await db.get(Feedback, feedback_id)
    if feedback is None:
        raise NotFoundError("Feedback not found")
    return feedback


# --- Users ---


@router.get("/users", response_model=ListUsersResponse)
async def list_users(db: AsyncSession = Depends(get_db)) -> ListUsersResponse:
    """List all users, newest first."""
    result = await db.execute(select(User).order_by(User.id.desc()))
    return ListUsersResponse(items=[UserInfo.model_validate(u) for u in result.scalars().all()])


@router.get("/users/{user_id}", response_model=UserInfo)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)) -> UserInfo:
    return UserInfo.model_validate(await _get_user(db, user_id))


@router.post("/users", response_model=UserInfo, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: CreateUserRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
) -> UserInfo:
    """Create a user with an explicit role."""
    existing = await db.execute(select(User).where(func.lower(User.email) == data.email.lower()))
    if existing.scalar_one_or_none():
        raise ConflictError("User with this email already exists")

    user = User(
        email=data.email.lower(),
        password_hash=hash_password(data.password),
        full_name=data.full_name,
        role_id=data.role_id,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User with this email already exists")

    await db.refresh(user)
    logger.info("user created", user_id=user.id, role_id=user.role_id, by=principal.subject_id)
    return UserInfo.model_validate(user)


@router.put("/users/{user_id}", response_model=UserInfo)
async def update_user(
    user_id: int,
    data: UpdateUserRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
) -> UserInfo:
    """
    Change a user's name or role.

    Already-issued tokens keep the old role until they expire.
    """
    user = await _get_user(db, user_id)
    if data.full_name is not None:
        user.full_name = data.full_name
    if data.role_id is not None:
        user.role_id = data.role_id

    await db.commit()
    await db.refresh(user)
    logger.info("user updated", user_id=user.id, role_id=user.role_id, by=principal.subject_id)
    return UserInfo.model_validate(user)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
) -> None:
    user = await _get_user(db, user_id)
    await db.delete(user)
    await db.commit()
    logger.info("user deleted", user_id=user_id, by=principal.subject_id)


# --- Feedback ---


@router.get("/feedbacks", response_model=ListFeedbacksResponse)
async def list_feedbacks(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    is_read: bool | None = None,
    db: AsyncSession = Depends(get_db),
) -> ListFeedbacksResponse:
    """List feedback requests, newest first, optionally filtered by read state."""
    query = select(Feedback)
    count_query = select(func.count()).select_from(Feedback)
    if is_read is not None:
        query = query.where(Feedback.is_read == is_read)
        count_query = count_query.where(Feedback.is_read == is_read)

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(query.order_by(Feedback.id.desc()).limit(limit).offset(offset))
    return ListFeedbacksResponse(
        items=[FeedbackInfo.model_validate(f) for f in result.scalars().all()],
        total=total,
    )


@router.post("/feedbacks/{feedback_id}/read", response_model=FeedbackInfo)
async def mark_feedback_read(feedback_id: int, db: AsyncSession = Depends(get_db)) -> FeedbackInfo:
    feedback = await _get_feedback(db, feedback_id)
    feedback.is_read = True
    await db.commit()
    await db.refresh(feedback)
    return FeedbackInfo.model_validate(feedback)


@router.delete("/feedbacks/{feedback_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_feedback(feedback_id: int, db: AsyncSession = Depends(get_db)) -> None:
    feedback = await _get_feedback(db, feedback_id)
    await db.delete(feedback)
    await db.commit()


# --- Uploads ---


@upload_router.post("/uploads", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    principal: Principal = Depends(require_admin),
) -> UploadResponse:
    """Store one file under the upload directory and return its public path."""
    config = request.app.state.settings
    max_bytes = config.max_upload_mb * 1024 * 1024

    content = bytearray()
    while chunk := await file.read(UPLOAD_CHUNK_SIZE):
        content.extend(chunk)
        if len(content) > max_bytes:
            raise PayloadTooLargeError(f"File exceeds {config.max_upload_mb} MB")

    suffix = Path(file.filename or "").suffix.lower()
    name = f"{uuid.uuid4().hex}{suffix}"
    upload_dir = Path(config.upload_dir)
    await asyncio.to_thread(upload_dir.mkdir, parents=True, exist_ok=True)
    await asyncio.to_thread((upload_dir / name).write_bytes, bytes(content))

    logger.info("file uploaded", name=name, size=len(content), by=principal.subject_id)
    return UploadResponse(url=f"/uploads/{name}", size=len(content))
