"""SQLAlchemy models for Gather."""

from typing import Any

from sqlalchemy.orm import declarative_base

# Create the declarative base
Base: Any = declarative_base()

# Import all models so they're registered with Base.metadata
from .community import Community  # noqa: E402
from .join_request import JoinRequest  # noqa: E402
from .membership import CommunityMember  # noqa: E402
from .notification import Notification  # noqa: E402
from .user_profile import UserProfile  # noqa: E402

__all__ = [
    "Base",
    "Community",
    "CommunityMember",
    "JoinRequest",
    "Notification",
    "UserProfile",
]
