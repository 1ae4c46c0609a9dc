"""User profile model."""

import uuid

from sqlalchemy import TIMESTAMP, Column, String

from gather.db.time import utcnow

from . import Base


class UserProfile(Base):
    """Display data for a user; owned by the auth backend."""

    __tablename__ = "user_profile"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<UserProfile(user_id={self.user_id}, name='{self.name}')>"
