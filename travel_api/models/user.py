"""User model."""

from sqlalchemy import TIMESTAMP, Column, Integer, String, Text, func

from travel_api.database import Base


class User(Base):
    """User account model. ``role_id`` is embedded in issued tokens."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    full_name = Column(Text, nullable=False, default="", server_default="")
    avatar = Column(Text)
    role_id = Column(Integer, nullable=False, default=1, server_default="1")
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())
