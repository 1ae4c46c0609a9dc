"""Community service for community-level membership operations."""

import dataclasses
from typing import TYPE_CHECKING, List, Optional, Union

from sqlalchemy.orm import Session

from gather.core.enums import CommunityType, MemberRole
from gather.core.exceptions import (
    AdminLimitReachedError,
    CommunityNotFoundError,
    MembershipError,
    PermissionDeniedError,
)
from gather.core.logging import get_logger
from gather.core.observability.metrics import log_membership_event
from gather.models.community import Community
from gather.repositories.community_repo import CommunityRepo
from gather.repositories.membership_repo import MembershipRepo
from gather.repositories.transaction import unit_of_work

if TYPE_CHECKING:
    from gather.services.join_request_service import JoinRequestService

logger = get_logger(__name__)

# Join outcomes
JOINED = "joined"
ALREADY_MEMBER = "already_member"
APPROVAL_REQUIRED = "approval_required"

MAX_COMMUNITY_ADMINS = 10


@dataclasses.dataclass(frozen=True)
class JoinResult:
    success: bool
    status: str


class CommunityService:
    """Community service for business logic."""

    def __init__(
        self,
        community_repo: CommunityRepo,
        membership_repo: MembershipRepo,
        join_request_service: Optional["JoinRequestService"] = None,
    ):
        """Initialize the community service."""
        self.community_repo = community_repo
        self.membership_repo = membership_repo
        self.join_request_service = join_request_service
        self.session_factory = community_repo.session_factory

    def create_community(
        self,
        creator_id: str,
        name: str,
        community_type: CommunityType = CommunityType.PUBLIC,
        description: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> Community:
        """Create a community owned by its creator.

        The creator is written to both membership representations with the
        owner role.
        """
        logger.info(f"Creating community '{name}' by user {creator_id}")
        with unit_of_work(self.session_factory, session) as s:
            community = self.community_repo.create_community(
                name,
                creator_id,
                community_type=community_type,
                admin_ids=[creator_id],
                member_ids=[creator_id],
                description=description,
                session=s,
            )
            self.membership_repo.create_membership(
                community.id, creator_id, role=MemberRole.OWNER, session=s
            )
        return community

    def get_community(
        self, community_id: str, session: Optional[Session] = None
    ) -> Optional[Community]:
        """Get a community by ID."""
        return self.community_repo.get_community_by_id(community_id, session=session)

    def join_community(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> JoinResult:
        """Join a public community.

        Idempotent: an existing member gets ``already_member`` and nothing is
        written except a missing membership record for a legacy-only member.
        Private communities are never joined here; they require a join
        request.
        """
        logger.info(f"User {user_id} joining community {community_id}")

        with unit_of_work(self.session_factory, session) as s:
            community = self.community_repo.get_community_by_id(community_id, session=s)
            if community is None:
                raise CommunityNotFoundError()

            member_ids = community.member_ids
            existing = self.membership_repo.get_active_membership(
                community_id, user_id, session=s
            )
            if existing is not None or user_id in member_ids:
                if existing is None:
                    self.membership_repo.ensure_active_membership(
                        community_id, user_id, session=s
                    )
                logger.debug(f"User {user_id} already member of {community_id}")
                return JoinResult(success=False, status=ALREADY_MEMBER)

            if community.is_private:
                return JoinResult(success=False, status=APPROVAL_REQUIRED)

            self.membership_repo.ensure_active_membership(
                community_id, user_id, session=s
            )
            self.community_repo.set_members(
                community_id,
                member_ids + [user_id],
                community.member_count + 1,
                session=s,
            )

        log_membership_event("joined", community_id, user_id)
        logger.info(f"User {user_id} joined community {community_id}")
        return JoinResult(success=True, status=JOINED)

    def leave_community(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> None:
        """Remove a user from both membership representations.

        Leaving a community the user is not a member of is a no-op.
        """
        logger.info(f"User {user_id} leaving community {community_id}")

        with unit_of_work(self.session_factory, session) as s:
            community = self.community_repo.get_community_by_id(community_id, session=s)
            if community is None:
                raise CommunityNotFoundError()

            member_ids = community.member_ids
            had_record = self.membership_repo.delete_membership(
                community_id, user_id, session=s
            )
            if user_id not in member_ids and not had_record:
                logger.debug(f"User {user_id} is not a member of {community_id}")
                return

            self.community_repo.set_members(
                community_id,
                [member_id for member_id in member_ids if member_id != user_id],
                community.member_count - 1,
                session=s,
            )

        log_membership_event("left", community_id, user_id)

    def is_user_community_admin(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> bool:
        """Check if a user is the community creator or a listed admin."""
        community = self.community_repo.get_community_by_id(community_id, session=session)
        if community is None:
            return False
        return community.is_admin(user_id)

    def update_community_type(
        self,
        community_id: str,
        new_type: Union[CommunityType, str],
        user_id: str,
        session: Optional[Session] = None,
    ) -> bool:
        """Change community visibility.

        Making a private community public approves every pending join
        request.
        """
        new_type = CommunityType(new_type)
        community = self.community_repo.get_community_by_id(community_id, session=session)
        if community is None:
            raise CommunityNotFoundError()

        if community.creator_id != user_id:
            raise PermissionDeniedError("Only community owner can change community type")

        previous_type = community.type
        self.community_repo.update_community(community_id, session=session, type=new_type)
        logger.info(
            f"Community {community_id} type changed from {previous_type.value} "
            f"to {new_type.value}"
        )

        if (
            previous_type == CommunityType.PRIVATE
            and new_type == CommunityType.PUBLIC
            and self.join_request_service is not None
        ):
            approved = self.join_request_service.auto_approve_all_pending_requests(
                community_id, session=session
            )
            logger.info(f"Auto-approved {approved} pending join requests")

        return True

    def get_user_communities(
        self, user_id: str, session: Optional[Session] = None
    ) -> List[Community]:
        """Get every community the user is an active member of."""
        community_ids = self.membership_repo.list_active_community_ids(
            user_id, session=session
        )
        return self.community_repo.get_communities_by_ids(community_ids, session=session)

    def _load_owned_community(
        self, community_id: str, owner_id: str, session: Session
    ) -> Community:
        community = self.community_repo.get_community_by_id(community_id, session=session)
        if community is None:
            raise CommunityNotFoundError()
        if community.creator_id != owner_id:
            raise PermissionDeniedError("Only community owners can manage admins")
        return community

    def add_admin(
        self,
        community_id: str,
        user_id: str,
        owner_id: str,
        session: Optional[Session] = None,
    ) -> Community:
        """Make a user an admin of a community (owner only).

        A member's record is promoted to the admin role in the same
        transaction; non-members only gain the admin listing.
        """
        logger.info(f"Owner {owner_id} adding admin {user_id} to {community_id}")

        with unit_of_work(self.session_factory, session) as s:
            community = self._load_owned_community(community_id, owner_id, s)
            admin_ids = community.admin_ids
            if community.is_admin(user_id):
                raise MembershipError("User is already an admin of this community")
            if len(admin_ids) >= MAX_COMMUNITY_ADMINS:
                raise AdminLimitReachedError(MAX_COMMUNITY_ADMINS)

            community = self.community_repo.set_admins(
                community_id, admin_ids + [user_id], session=s
            )
            record = self.membership_repo.get_membership(community_id, user_id, session=s)
            if record is not None and record.role == MemberRole.MEMBER:
                self.membership_repo.set_role(
                    community_id, user_id, MemberRole.ADMIN, session=s
                )

        log_membership_event("admin_added", community_id, user_id, added_by=owner_id)
        return community

    def remove_admin(
        self,
        community_id: str,
        user_id: str,
        owner_id: str,
        session: Optional[Session] = None,
    ) -> Community:
        """Remove a user from a community's admins (owner only).

        The owner cannot be removed. Membership itself is unaffected; an
        admin record is demoted to the member role.
        """
        logger.info(f"Owner {owner_id} removing admin {user_id} from {community_id}")

        with unit_of_work(self.session_factory, session) as s:
            community = self._load_owned_community(community_id, owner_id, s)
            if user_id == community.creator_id:
                raise MembershipError("The community owner cannot be removed as admin")
            admin_ids = community.admin_ids
            if user_id not in admin_ids:
                raise MembershipError("User is not an admin of this community")

            community = self.community_repo.set_admins(
                community_id,
                [admin_id for admin_id in admin_ids if admin_id != user_id],
                session=s,
            )
            record = self.membership_repo.get_membership(community_id, user_id, session=s)
            if record is not None and record.role == MemberRole.ADMIN:
                self.membership_repo.set_role(
                    community_id, user_id, MemberRole.MEMBER, session=s
                )

        log_membership_event("admin_removed", community_id, user_id, removed_by=owner_id)
        return community

    def get_user_admin_communities(
        self, user_id: str, session: Optional[Session] = None
    ) -> List[Community]:
        """Communities the user created or administers, newest first."""
        return self.community_repo.list_admin_communities(user_id, session=session)
