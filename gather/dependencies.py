"""FastAPI dependencies for dependency injection."""

from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from gather.core.cache import membership_cache
from gather.db.db import get_session_local
from gather.repositories.community_repo import CommunityRepo
from gather.repositories.join_request_repo import JoinRequestRepo
from gather.repositories.membership_repo import MembershipRepo
from gather.repositories.notification_repo import NotificationRepo
from gather.repositories.user_profile_repo import UserProfileRepo
from gather.services.community_service import CommunityService
from gather.services.join_request_service import JoinRequestService
from gather.services.membership_service import MembershipService


def get_session_factory() -> sessionmaker:
    """Get the session factory repositories are built on."""
    return get_session_local()


def get_community_repo(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> CommunityRepo:
    """Get CommunityRepo instance with session factory."""
    return CommunityRepo(session_factory)


def get_membership_repo(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> MembershipRepo:
    """Get MembershipRepo instance with session factory."""
    return MembershipRepo(session_factory)


def get_join_request_repo(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> JoinRequestRepo:
    """Get JoinRequestRepo instance with session factory."""
    return JoinRequestRepo(session_factory)


def get_notification_repo(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> NotificationRepo:
    """Get NotificationRepo instance with session factory."""
    return NotificationRepo(session_factory)


def get_user_profile_repo(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> UserProfileRepo:
    """Get UserProfileRepo instance with session factory."""
    return UserProfileRepo(session_factory)


def get_join_request_service(
    join_request_repo: JoinRequestRepo = Depends(get_join_request_repo),
    community_repo: CommunityRepo = Depends(get_community_repo),
    membership_repo: MembershipRepo = Depends(get_membership_repo),
    notification_repo: NotificationRepo = Depends(get_notification_repo),
    user_profile_repo: UserProfileRepo = Depends(get_user_profile_repo),
) -> JoinRequestService:
    """Get JoinRequestService instance with dependencies."""
    return JoinRequestService(
        join_request_repo,
        community_repo,
        membership_repo,
        notification_repo,
        user_profile_repo,
        cache=membership_cache,
    )


def get_community_service(
    community_repo: CommunityRepo = Depends(get_community_repo),
    membership_repo: MembershipRepo = Depends(get_membership_repo),
    join_request_service: JoinRequestService = Depends(get_join_request_service),
) -> CommunityService:
    """Get CommunityService instance with dependencies."""
    return CommunityService(community_repo, membership_repo, join_request_service)


def get_membership_service(
    community_repo: CommunityRepo = Depends(get_community_repo),
    membership_repo: MembershipRepo = Depends(get_membership_repo),
    join_request_repo: JoinRequestRepo = Depends(get_join_request_repo),
    community_service: CommunityService = Depends(get_community_service),
) -> MembershipService:
    """Get MembershipService instance with dependencies."""
    return MembershipService(
        community_repo,
        membership_repo,
        community_service,
        join_request_repo=join_request_repo,
        cache=membership_cache,
    )
