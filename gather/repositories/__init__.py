"""Repository layer for data access."""

from .community_repo import CommunityRepo
from .join_request_repo import JoinRequestRepo
from .membership_repo import MembershipRepo
from .notification_repo import NotificationRepo
from .transaction import transaction_scope, unit_of_work
from .user_profile_repo import UserProfileRepo

__all__ = [
    "CommunityRepo",
    "JoinRequestRepo",
    "MembershipRepo",
    "NotificationRepo",
    "UserProfileRepo",
    "transaction_scope",
    "unit_of_work",
]
