"""Shared enums used across the application."""

from enum import Enum


class MemberRole(str, Enum):
    """Member role enumeration."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class MembershipStatus(str, Enum):
    """Membership record status.

    Only ACTIVE is ever written; pending and rejected states live on the
    join request.
    """

    ACTIVE = "active"
    PENDING = "pending"
    REJECTED = "rejected"


class CommunityType(str, Enum):
    """Community visibility."""

    PUBLIC = "public"
    PRIVATE = "private"


class JoinRequestStatus(str, Enum):
    """Join request lifecycle status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class JoinRequestAction(str, Enum):
    """Admin decision on a join request."""

    APPROVED = "approved"
    REJECTED = "rejected"


class NotificationType(str, Enum):
    """Notification types written by the membership subsystem."""

    JOIN_REQUEST = "community_join_request"
    JOIN_APPROVED = "community_join_approved"
    JOIN_REJECTED = "community_join_rejected"
