"""Membership service: the authority for "is user X a member of community Y"."""

import dataclasses
from typing import List, Optional

from sqlalchemy.orm import Session

from gather.core.cache import MembershipCache, membership_cache
from gather.core.enums import JoinRequestStatus
from gather.core.exceptions import CommunityNotFoundError
from gather.core.logging import get_logger
from gather.core.observability.metrics import (
    log_counter_increment,
    log_membership_event,
)
from gather.models.community import Community
from gather.models.membership import CommunityMember
from gather.repositories.community_repo import CommunityRepo
from gather.repositories.join_request_repo import JoinRequestRepo
from gather.repositories.membership_repo import MembershipRepo
from gather.repositories.transaction import unit_of_work
from gather.services.community_service import CommunityService, JoinResult

logger = get_logger(__name__)

RECONCILIATION_ACTOR = "system_reconciliation"


@dataclasses.dataclass
class ReconciliationReport:
    """What a reconciliation pass changed for one community."""

    community_id: str
    records_created: List[str] = dataclasses.field(default_factory=list)
    legacy_members_added: List[str] = dataclasses.field(default_factory=list)
    requests_closed: List[str] = dataclasses.field(default_factory=list)
    member_count: int = 0

    @property
    def changed(self) -> bool:
        return bool(
            self.records_created or self.legacy_members_added or self.requests_closed
        )


class MembershipService:
    """Membership checks with a short-lived cache and legacy repair.

    Two representations of membership exist: ``community_member`` records
    (canonical) and the community's embedded ``members`` list (legacy).
    Reads consult the records first and lazily repair records for users only
    present in the legacy list.
    """

    def __init__(
        self,
        community_repo: CommunityRepo,
        membership_repo: MembershipRepo,
        community_service: CommunityService,
        join_request_repo: Optional[JoinRequestRepo] = None,
        cache: MembershipCache = membership_cache,
    ):
        """Initialize the membership service."""
        self.community_repo = community_repo
        self.membership_repo = membership_repo
        self.community_service = community_service
        self.join_request_repo = join_request_repo
        self.cache = cache
        self.session_factory = membership_repo.session_factory

    def check_membership(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> bool:
        """Check if a user is an active member of a community.

        Fails closed: any backend error yields False and nothing is cached.
        """
        cached = self.cache.get(community_id, user_id)
        if cached is not None:
            log_counter_increment("membership_cache", labels={"result": "hit"})
            return cached
        log_counter_increment("membership_cache", labels={"result": "miss"})

        try:
            record = self.membership_repo.get_active_membership(
                community_id, user_id, session=session
            )
            if record is not None:
                self.cache.set(community_id, user_id, True)
                return True

            community = self.community_repo.get_community_by_id(
                community_id, session=session
            )
            if community is not None and user_id in community.member_ids:
                logger.warning(
                    f"User {user_id} is in the legacy member list of community "
                    f"{community_id} without a membership record; repairing"
                )
                self._repair_membership_record(community_id, user_id, session=session)
                self.cache.set(community_id, user_id, True)
                return True

            self.cache.set(community_id, user_id, False)
            return False
        except Exception as e:
            logger.error(f"Error checking membership: {e}")
            return False

    def _repair_membership_record(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> None:
        """Create the missing record for a legacy-only member (best-effort)."""
        try:
            self.membership_repo.create_membership(
                community_id, user_id, session=session
            )
            log_membership_event("legacy_repair", community_id, user_id)
        except Exception as e:
            # Most likely a concurrent repair already created the record
            logger.warning(
                f"Could not repair membership record for user {user_id} "
                f"in community {community_id}: {e}"
            )

    def join_community(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> JoinResult:
        """Join a public community and invalidate the cached result."""
        try:
            result = self.community_service.join_community(
                community_id, user_id, session=session
            )
        except Exception as e:
            logger.error(f"Error joining community: {e}")
            raise
        finally:
            self.clear_cache(community_id, user_id)
        return result

    def leave_community(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> None:
        """Leave a community and invalidate the cached result."""
        try:
            self.community_service.leave_community(
                community_id, user_id, session=session
            )
        except Exception as e:
            logger.error(f"Error leaving community: {e}")
            raise
        finally:
            self.clear_cache(community_id, user_id)

    def is_user_community_admin(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> bool:
        """Check admin rights. Read directly every time, never cached."""
        try:
            return self.community_service.is_user_community_admin(
                community_id, user_id, session=session
            )
        except Exception as e:
            logger.error(f"Error checking admin status: {e}")
            return False

    def get_membership_record(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> Optional[CommunityMember]:
        """Get the membership record for a pair, if any."""
        try:
            return self.membership_repo.get_membership(
                community_id, user_id, session=session
            )
        except Exception as e:
            logger.error(f"Error getting membership record: {e}")
            return None

    def get_user_communities(
        self, user_id: str, session: Optional[Session] = None
    ) -> List[Community]:
        """Get the communities a user belongs to."""
        try:
            return self.community_service.get_user_communities(user_id, session=session)
        except Exception as e:
            logger.error(f"Error getting user communities: {e}")
            return []

    def refresh_membership(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> bool:
        """Bypass the cache and re-check membership."""
        self.clear_cache(community_id, user_id)
        return self.check_membership(community_id, user_id, session=session)

    def clear_cache(
        self, community_id: Optional[str] = None, user_id: Optional[str] = None
    ) -> None:
        """Clear one cached pair, or the whole cache when either id is missing."""
        self.cache.invalidate(community_id, user_id)

    def reconcile_community(
        self, community_id: str, session: Optional[Session] = None
    ) -> ReconciliationReport:
        """Bring both membership representations of a community into agreement.

        Legacy-only members get records, record-only members are appended to
        the legacy list, ``member_count`` is reset to the list length, and
        pending requests from users who are already members are closed as
        approved.
        """
        report = ReconciliationReport(community_id=community_id)

        with unit_of_work(self.session_factory, session) as s:
            community = self.community_repo.get_community_by_id(community_id, session=s)
            if community is None:
                raise CommunityNotFoundError()

            legacy_ids = community.member_ids
            record_ids = self.membership_repo.list_active_user_ids(
                community_id, session=s
            )

            for user_id in legacy_ids:
                if user_id not in record_ids:
                    self.membership_repo.ensure_active_membership(
                        community_id, user_id, session=s
                    )
                    report.records_created.append(user_id)

            report.legacy_members_added = [
                user_id for user_id in record_ids if user_id not in legacy_ids
            ]
            reconciled_ids = legacy_ids + report.legacy_members_added
            report.member_count = len(reconciled_ids)

            if report.legacy_members_added or community.member_count != len(
                reconciled_ids
            ):
                self.community_repo.set_members(
                    community_id, reconciled_ids, len(reconciled_ids), session=s
                )

            if self.join_request_repo is not None:
                for request in self.join_request_repo.list_pending_requests(
                    community_id, session=s
                ):
                    if request.user_id in reconciled_ids:
                        self.join_request_repo.resolve_join_request(
                            request.id,
                            JoinRequestStatus.APPROVED,
                            responded_by=RECONCILIATION_ACTOR,
                            session=s,
                        )
                        report.requests_closed.append(request.id)

        for user_id in set(report.records_created) | set(report.legacy_members_added):
            self.clear_cache(community_id, user_id)

        if report.changed:
            logger.info(
                f"Reconciled community {community_id}: "
                f"{len(report.records_created)} records created, "
                f"{len(report.legacy_members_added)} legacy entries added, "
                f"{len(report.requests_closed)} pending requests closed"
            )
        return report
