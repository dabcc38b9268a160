"""Public feedback form."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from travel_api.database import get_db
from travel_api.logging import get_logger
from travel_api.middleware.rate_limit import BUY, rate_limit
from travel_api.models.feedback import Feedback
from travel_api.schemas.feedback import FeedbackRequest

logger = get_logger("travel_api.feedback")

router = APIRouter(prefix="/api/v1", tags=["Public"])


@router.post(
    "/feedback",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(rate_limit(BUY))],
)
async def create_feedback(
    data: FeedbackRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    """Leave a "call me back" request."""
    db.add(Feedback(user_name=data.user_name, user_phone=data.user_phone))
    await db.commit()
    logger.info("feedback received")
    return {"status": "success"}
