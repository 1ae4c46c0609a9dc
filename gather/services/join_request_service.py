"""Join request service for private-community membership requests."""

import dataclasses
from datetime import timedelta
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gather.core.cache import MembershipCache, membership_cache
from gather.core.config import settings
from gather.core.enums import (
    JoinRequestAction,
    JoinRequestStatus,
    MemberRole,
    NotificationType,
)
from gather.core.exceptions import (
    CommunityNotFoundError,
    JoinRequestAlreadyPendingError,
    JoinRequestAlreadyResolvedError,
    JoinRequestCooldownError,
    JoinRequestNotFoundError,
    NoPendingJoinRequestError,
)
from gather.core.logging import get_logger
from gather.core.observability.metrics import log_membership_event
from gather.db.time import as_utc, utcnow
from gather.models.community import Community
from gather.models.join_request import JoinRequest
from gather.models.user_profile import UserProfile
from gather.repositories.community_repo import CommunityRepo
from gather.repositories.join_request_repo import JoinRequestRepo
from gather.repositories.membership_repo import MembershipRepo
from gather.repositories.notification_repo import NotificationRepo
from gather.repositories.transaction import unit_of_work
from gather.repositories.user_profile_repo import UserProfileRepo
from gather.services.notifications import (
    NotificationOutcome,
    notify_recipients,
    unique_admin_ids,
)

logger = get_logger(__name__)

AUTO_APPROVAL_ACTOR = "system_auto_approval"
UNKNOWN_USER_NAME = "Unknown User"
ADMIN_SENDER_NAME = "Community Admin"
COMMUNITY_MADE_PUBLIC = "community_made_public"


@dataclasses.dataclass(frozen=True)
class JoinDecisionSummary:
    """Outcome of an admin decision, for rendering a confirmation."""

    success: bool
    action: str
    community_name: str
    user_name: str


@dataclasses.dataclass(frozen=True)
class PendingJoinRequest:
    """A pending request paired with the requester's profile, if loadable."""

    request: JoinRequest
    user_profile: Optional[UserProfile]


class JoinRequestService:
    """Lifecycle of requests to join private communities.

    Per (community, user) the request moves ``pending`` to one of
    ``approved``, ``rejected`` or ``cancelled`` and never changes again. A
    new attempt creates a new request, refused while another is pending or
    within the cooldown after a rejection.
    """

    def __init__(
        self,
        join_request_repo: JoinRequestRepo,
        community_repo: CommunityRepo,
        membership_repo: MembershipRepo,
        notification_repo: NotificationRepo,
        user_profile_repo: UserProfileRepo,
        cache: MembershipCache = membership_cache,
        cooldown: timedelta = timedelta(hours=settings.JOIN_REQUEST_COOLDOWN_HOURS),
    ):
        """Initialize the join request service."""
        self.join_request_repo = join_request_repo
        self.community_repo = community_repo
        self.membership_repo = membership_repo
        self.notification_repo = notification_repo
        self.user_profile_repo = user_profile_repo
        self.cache = cache
        self.cooldown = cooldown
        self.session_factory = join_request_repo.session_factory

    def submit_join_request(
        self,
        community_id: str,
        user_id: str,
        message: str = "",
        session: Optional[Session] = None,
    ) -> JoinRequest:
        """Submit a request to join a community and notify its admins."""
        logger.info(f"User {user_id} requesting to join community {community_id}")

        try:
            community = self.community_repo.get_community_by_id(
                community_id, session=session
            )
            if community is None:
                raise CommunityNotFoundError()

            if self.join_request_repo.get_pending_request(
                community_id, user_id, session=session
            ):
                raise JoinRequestAlreadyPendingError()

            self._check_rejection_cooldown(community_id, user_id, session=session)

            try:
                join_request = self.join_request_repo.create_join_request(
                    community_id, user_id, message=message, session=session
                )
            except IntegrityError as e:
                # A concurrent submission won the race
                raise JoinRequestAlreadyPendingError() from e
        except Exception as e:
            logger.error(f"Error submitting join request: {e}")
            raise

        log_membership_event(
            "join_request_submitted", community_id, user_id, request_id=join_request.id
        )
        self._notify_admins_of_request(community, join_request)
        return join_request

    def _check_rejection_cooldown(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> None:
        last_rejection = self.join_request_repo.get_latest_rejection(
            community_id, user_id, session=session
        )
        if last_rejection is None or last_rejection.responded_at is None:
            return
        elapsed = utcnow() - as_utc(last_rejection.responded_at)
        if elapsed < self.cooldown:
            raise JoinRequestCooldownError(int(self.cooldown.total_seconds() // 3600))

    def _load_profile(self, user_id: str) -> Optional[UserProfile]:
        try:
            return self.user_profile_repo.get_by_user_id(user_id)
        except Exception as e:
            logger.warning(f"Could not load profile for user {user_id}: {e}")
            return None

    def _notify_admins_of_request(
        self, community: Community, join_request: JoinRequest
    ) -> List[NotificationOutcome]:
        profile = self._load_profile(join_request.user_id)
        requester_name = profile.name if profile and profile.name else None

        def build(admin_id: str) -> dict:
            return {
                "sender_id": join_request.user_id,
                "sender_name": requester_name or UNKNOWN_USER_NAME,
                "type": NotificationType.JOIN_REQUEST.value,
                "title": f"Join Request - {community.name}",
                "message": (
                    f"{requester_name or 'A user'} has requested to join your "
                    f'community "{community.name}"'
                ),
                "data": {
                    "communityId": community.id,
                    "requesterId": join_request.user_id,
                    "requesterName": requester_name,
                    "requesterEmail": profile.email if profile else None,
                    "joinRequestId": join_request.id,
                },
            }

        outcomes = notify_recipients(
            self.notification_repo, unique_admin_ids(community), build
        )
        failed = [o.recipient_id for o in outcomes if not o.delivered]
        if failed:
            logger.warning(
                f"Join request {join_request.id}: failed to notify admins {failed}"
            )
        return outcomes

    def cancel_join_request(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> bool:
        """Cancel the user's pending request."""
        try:
            pending = self.join_request_repo.get_pending_request(
                community_id, user_id, session=session
            )
            if pending is None:
                raise NoPendingJoinRequestError()

            self.join_request_repo.resolve_join_request(
                pending.id, JoinRequestStatus.CANCELLED, session=session
            )
        except Exception as e:
            logger.error(f"Error cancelling join request: {e}")
            raise

        log_membership_event(
            "join_request_cancelled", community_id, user_id, request_id=pending.id
        )
        return True

    def _grant_membership(
        self, community_id: str, user_id: str, session: Session
    ) -> None:
        """Add the user to both membership representations.

        Skips the legacy append when the user is already listed rather than
        failing.
        """
        community = self.community_repo.get_community_by_id(community_id, session=session)
        if community is None:
            raise CommunityNotFoundError()

        member_ids = community.member_ids
        if user_id in member_ids:
            logger.info(f"User {user_id} already listed in community {community_id}")
        else:
            self.community_repo.set_members(
                community_id,
                member_ids + [user_id],
                community.member_count + 1,
                session=session,
            )
        self.membership_repo.ensure_active_membership(
            community_id, user_id, role=MemberRole.MEMBER, session=session
        )

    def respond_to_join_request(
        self,
        join_request_id: str,
        action: Union[JoinRequestAction, str],
        admin_id: str,
        session: Optional[Session] = None,
    ) -> JoinDecisionSummary:
        """Approve or reject a pending join request.

        Approval grants membership and closes the request in one
        transaction. The requester is notified after the commit.
        """
        try:
            action = JoinRequestAction(action)
        except ValueError:
            raise ValueError(
                f"Invalid action '{action}': expected 'approved' or 'rejected'"
            ) from None

        logger.info(
            f"Admin {admin_id} responding '{action.value}' to join request "
            f"{join_request_id}"
        )

        new_status = (
            JoinRequestStatus.APPROVED
            if action == JoinRequestAction.APPROVED
            else JoinRequestStatus.REJECTED
        )
        try:
            with unit_of_work(self.session_factory, session) as s:
                join_request = self.join_request_repo.get_join_request_by_id(
                    join_request_id, session=s
                )
                if join_request is None:
                    raise JoinRequestNotFoundError()
                if not join_request.is_pending:
                    raise JoinRequestAlreadyResolvedError()

                community = self.community_repo.get_community_by_id(
                    join_request.community_id, session=s
                )
                if community is None:
                    raise CommunityNotFoundError()
                community_name = community.name
                community_id = community.id
                requester_id = join_request.user_id

                if new_status == JoinRequestStatus.APPROVED:
                    self._grant_membership(community_id, requester_id, session=s)

                self.join_request_repo.resolve_join_request(
                    join_request_id, new_status, responded_by=admin_id, session=s
                )
        except Exception as e:
            logger.error(f"Error responding to join request {join_request_id}: {e}")
            raise

        self.cache.invalidate(community_id, requester_id)

        log_membership_event(
            f"join_request_{new_status.value}",
            community_id,
            requester_id,
            request_id=join_request_id,
            responded_by=admin_id,
        )

        approved = action == JoinRequestAction.APPROVED
        self._notify_requester(
            requester_id,
            sender_id=admin_id,
            sender_name=ADMIN_SENDER_NAME,
            approved=approved,
            message=(
                f'Your request to join "{community_name}" has been '
                f"{'approved' if approved else 'rejected'}."
            ),
            data={"communityId": community_id, "communityName": community_name},
        )

        profile = self._load_profile(requester_id)
        return JoinDecisionSummary(
            success=True,
            action=action.value,
            community_name=community_name,
            user_name=profile.name if profile and profile.name else UNKNOWN_USER_NAME,
        )

    def _notify_requester(
        self,
        requester_id: str,
        sender_id: str,
        sender_name: str,
        approved: bool,
        message: str,
        data: dict,
    ) -> Optional[NotificationOutcome]:
        notification_type = (
            NotificationType.JOIN_APPROVED if approved else NotificationType.JOIN_REJECTED
        )
        outcomes = notify_recipients(
            self.notification_repo,
            [requester_id],
            lambda _recipient: {
                "sender_id": sender_id,
                "sender_name": sender_name,
                "type": notification_type.value,
                "title": f"Join Request {'Approved' if approved else 'Rejected'}",
                "message": message,
                "data": data,
            },
        )
        return outcomes[0] if outcomes else None

    def get_pending_join_requests(
        self, community_id: str, session: Optional[Session] = None
    ) -> List[PendingJoinRequest]:
        """List pending requests, newest first, with requester profiles."""
        try:
            requests = self.join_request_repo.list_pending_requests(
                community_id, session=session
            )
        except Exception as e:
            logger.error(f"Error getting pending join requests: {e}")
            return []

        return [
            PendingJoinRequest(request=request, user_profile=self._load_profile(request.user_id))
            for request in requests
        ]

    def get_user_join_request_status(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> Optional[JoinRequest]:
        """Get the user's most recent request regardless of status."""
        try:
            return self.join_request_repo.get_latest_request(
                community_id, user_id, session=session
            )
        except Exception as e:
            logger.error(f"Error getting user join request status: {e}")
            return None

    def auto_approve_all_pending_requests(
        self, community_id: str, session: Optional[Session] = None
    ) -> int:
        """Approve every pending request, used when a community goes public.

        Each request is approved in its own transaction; a failure part-way
        leaves earlier requests approved.
        """
        try:
            pending = self.join_request_repo.list_pending_requests(
                community_id, session=session
            )
            community = self.community_repo.get_community_by_id(
                community_id, session=session
            )
            if community is None:
                raise CommunityNotFoundError()
            community_name = community.name

            processed = 0
            for request in pending:
                try:
                    with unit_of_work(self.session_factory, session) as s:
                        self.join_request_repo.resolve_join_request(
                            request.id,
                            JoinRequestStatus.APPROVED,
                            responded_by=AUTO_APPROVAL_ACTOR,
                            session=s,
                        )
                        self._grant_membership(
                            community_id, request.user_id, session=s
                        )
                except JoinRequestAlreadyResolvedError:
                    # Cancelled or answered after the listing
                    logger.info(
                        f"Join request {request.id} resolved concurrently, skipping"
                    )
                    continue
                self.cache.invalidate(community_id, request.user_id)
                processed += 1

                self._notify_requester(
                    request.user_id,
                    sender_id=AUTO_APPROVAL_ACTOR,
                    sender_name="System",
                    approved=True,
                    message=(
                        f'Your request to join "{community_name}" has been '
                        "automatically approved as the community is now public"
                    ),
                    data={
                        "communityId": community_id,
                        "communityName": community_name,
                        "action": JoinRequestAction.APPROVED.value,
                        "reason": COMMUNITY_MADE_PUBLIC,
                    },
                )
        except Exception as e:
            logger.error(f"Error auto-approving requests: {e}")
            raise

        log_membership_event("join_requests_auto_approved", community_id, count=processed)
        return processed
