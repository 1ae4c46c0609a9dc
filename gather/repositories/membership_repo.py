"""Community membership repository."""

from typing import List, Optional, cast

from sqlalchemy.orm import Session

from gather.core.enums import MemberRole, MembershipStatus
from gather.core.logging import get_logger
from gather.models.membership import CommunityMember
from gather.repositories.base_repo import BaseRepo

logger = get_logger(__name__)


class MembershipRepo(BaseRepo):
    """Repository for normalized membership records."""

    def _get_membership_implementation(
        self, session: Session, community_id: str, user_id: str
    ) -> Optional[CommunityMember]:
        return cast(
            Optional[CommunityMember],
            session.query(CommunityMember)
            .filter(
                CommunityMember.community_id == community_id,
                CommunityMember.user_id == user_id,
            )
            .one_or_none(),
        )

    def get_membership(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> Optional[CommunityMember]:
        """Get the membership record for a pair regardless of status."""
        return cast(
            Optional[CommunityMember],
            self._execute_with_session(
                lambda s: self._get_membership_implementation(s, community_id, user_id),
                session=session,
                operation_name="get_membership",
            ),
        )

    def get_active_membership(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> Optional[CommunityMember]:
        """Get the membership record for a pair only if it is active."""
        return cast(
            Optional[CommunityMember],
            self._execute_with_session(
                lambda s: s.query(CommunityMember)
                .filter(
                    CommunityMember.community_id == community_id,
                    CommunityMember.user_id == user_id,
                    CommunityMember.status == MembershipStatus.ACTIVE,
                )
                .one_or_none(),
                session=session,
                operation_name="get_active_membership",
            ),
        )

    def _create_membership_implementation(
        self,
        session: Session,
        community_id: str,
        user_id: str,
        role: MemberRole,
        invited_by: Optional[str],
    ) -> CommunityMember:
        """Implementation of membership creation."""
        membership = CommunityMember(
            community_id=community_id,
            user_id=user_id,
            role=role,
            status=MembershipStatus.ACTIVE,
            invited_by=invited_by,
            notifications=True,
        )
        session.add(membership)
        session.flush()
        logger.info(
            f"Created membership record for user {user_id} in community {community_id}"
        )
        return membership

    def create_membership(
        self,
        community_id: str,
        user_id: str,
        role: MemberRole = MemberRole.MEMBER,
        invited_by: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> CommunityMember:
        """Create an active membership record.

        Raises IntegrityError when a record already exists for the pair.
        """
        return cast(
            CommunityMember,
            self._execute_with_session(
                lambda s: self._create_membership_implementation(
                    s, community_id, user_id, role, invited_by
                ),
                session=session,
                operation_name="create_membership",
            ),
        )

    def _ensure_active_membership_implementation(
        self, session: Session, community_id: str, user_id: str, role: MemberRole
    ) -> CommunityMember:
        """Implementation of idempotent membership materialization."""
        existing = self._get_membership_implementation(session, community_id, user_id)
        if existing is not None:
            if existing.status != MembershipStatus.ACTIVE:
                existing.status = MembershipStatus.ACTIVE  # type: ignore[assignment]
                session.flush()
            return existing
        return self._create_membership_implementation(
            session, community_id, user_id, role, None
        )

    def ensure_active_membership(
        self,
        community_id: str,
        user_id: str,
        role: MemberRole = MemberRole.MEMBER,
        session: Optional[Session] = None,
    ) -> CommunityMember:
        """Return the pair's active record, creating or activating it if needed."""
        return cast(
            CommunityMember,
            self._execute_with_session(
                lambda s: self._ensure_active_membership_implementation(
                    s, community_id, user_id, role
                ),
                session=session,
                operation_name="ensure_active_membership",
            ),
        )

    def delete_membership(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> bool:
        """Delete the record for a pair. Returns whether one existed."""
        return cast(
            bool,
            self._execute_with_session(
                lambda s: s.query(CommunityMember)
                .filter(
                    CommunityMember.community_id == community_id,
                    CommunityMember.user_id == user_id,
                )
                .delete(synchronize_session="fetch")
                > 0,
                session=session,
                operation_name="delete_membership",
            ),
        )

    def list_active_user_ids(
        self, community_id: str, session: Optional[Session] = None
    ) -> List[str]:
        """User ids with an active record in a community, oldest first."""
        return cast(
            List[str],
            self._execute_with_session(
                lambda s: [
                    row[0]
                    for row in s.query(CommunityMember.user_id)
                    .filter(
                        CommunityMember.community_id == community_id,
                        CommunityMember.status == MembershipStatus.ACTIVE,
                    )
                    .order_by(CommunityMember.joined_at.asc(), CommunityMember.id.asc())
                ],
                session=session,
                operation_name="list_active_user_ids",
            ),
        )

    def list_active_community_ids(
        self, user_id: str, session: Optional[Session] = None
    ) -> List[str]:
        """Community ids where the user has an active record."""
        return cast(
            List[str],
            self._execute_with_session(
                lambda s: [
                    row[0]
                    for row in s.query(CommunityMember.community_id).filter(
                        CommunityMember.user_id == user_id,
                        CommunityMember.status == MembershipStatus.ACTIVE,
                    )
                ],
                session=session,
                operation_name="list_active_community_ids",
            ),
        )

    def _set_role_implementation(
        self, session: Session, community_id: str, user_id: str, role: MemberRole
    ) -> Optional[CommunityMember]:
        membership = self._get_membership_implementation(session, community_id, user_id)
        if membership is None:
            return None
        membership.role = role  # type: ignore[assignment]
        session.flush()
        return membership

    def set_role(
        self,
        community_id: str,
        user_id: str,
        role: MemberRole,
        session: Optional[Session] = None,
    ) -> Optional[CommunityMember]:
        """Change the role on a pair's record. Returns None when there is none."""
        return cast(
            Optional[CommunityMember],
            self._execute_with_session(
                lambda s: self._set_role_implementation(s, community_id, user_id, role),
                session=session,
                operation_name="set_role",
            ),
        )
