"""User model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from app.database import Base

NAME_MAX_LENGTH = 50
COUNTRY_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_user_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    """Registered account."""

    __tablename__ = "user"

    id = Column(String(32), primary_key=True, default=new_user_id)
    name = Column(String(NAME_MAX_LENGTH), nullable=False, index=True)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    country = Column(String(COUNTRY_MAX_LENGTH), nullable=True)
    reset_password_token = Column(String(256), nullable=True, index=True)
    reset_password_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"
