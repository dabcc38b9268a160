"""Feedback ("call me back") request model."""

from sqlalchemy import TIMESTAMP, Boolean, Column, Integer, Text, false, func

from travel_api.database import Base


class Feedback(Base):
    __tablename__ = "feedbacks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_name = Column(Text, nullable=False)
    user_phone = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
