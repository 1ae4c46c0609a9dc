"""Community repository."""

from typing import Any, List, Optional, cast

from sqlalchemy import or_
from sqlalchemy.orm import Session

from gather.core.enums import CommunityType
from gather.core.exceptions import CommunityNotFoundError
from gather.core.logging import get_logger
from gather.models.community import Community, dump_id_list
from gather.repositories.base_repo import BaseRepo

logger = get_logger(__name__)

MAX_COMMUNITY_NAME_LENGTH = 255


class CommunityRepo(BaseRepo):
    """Community repository."""

    def _create_community_implementation(
        self,
        session: Session,
        name: str,
        creator_id: str,
        community_type: CommunityType,
        admin_ids: List[str],
        member_ids: List[str],
        description: Optional[str],
    ) -> Community:
        """Implementation of community creation."""
        if not name or not name.strip():
            raise ValueError("Community name cannot be empty")
        if len(name.strip()) > MAX_COMMUNITY_NAME_LENGTH:
            raise ValueError(
                f"Community name cannot exceed {MAX_COMMUNITY_NAME_LENGTH} characters"
            )

        community = Community(
            name=name.strip(),
            description=description,
            type=community_type,
            creator_id=creator_id,
            admins=dump_id_list(admin_ids),
            members=dump_id_list(member_ids),
            member_count=len(member_ids),
        )
        session.add(community)
        session.flush()  # Generate ID

        logger.info(f"Created community: {community.id} ({community.name})")
        return community

    def create_community(
        self,
        name: str,
        creator_id: str,
        community_type: CommunityType = CommunityType.PUBLIC,
        admin_ids: Optional[List[str]] = None,
        member_ids: Optional[List[str]] = None,
        description: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> Community:
        """Create a new community."""
        return cast(
            Community,
            self._execute_with_session(
                lambda s: self._create_community_implementation(
                    s,
                    name,
                    creator_id,
                    community_type,
                    admin_ids or [],
                    member_ids or [],
                    description,
                ),
                session=session,
                operation_name="create_community",
            ),
        )

    def get_community_by_id(
        self, community_id: str, session: Optional[Session] = None
    ) -> Optional[Community]:
        """Get a community by ID."""
        return cast(
            Optional[Community],
            self._execute_with_session(
                lambda s: s.get(Community, community_id),
                session=session,
                operation_name="get_community_by_id",
            ),
        )

    def list_community_ids(self, session: Optional[Session] = None) -> List[str]:
        """List the ids of every community."""
        return cast(
            List[str],
            self._execute_with_session(
                lambda s: [
                    row[0]
                    for row in s.query(Community.id).order_by(Community.created_at)
                ],
                session=session,
                operation_name="list_community_ids",
            ),
        )

    def get_communities_by_ids(
        self, community_ids: List[str], session: Optional[Session] = None
    ) -> List[Community]:
        """Get communities for a list of ids, newest first."""
        if not community_ids:
            return []
        return cast(
            List[Community],
            self._execute_with_session(
                lambda s: (
                    s.query(Community)
                    .filter(Community.id.in_(community_ids))
                    .order_by(Community.created_at.desc())
                    .all()
                ),
                session=session,
                operation_name="get_communities_by_ids",
            ),
        )

    def _update_community_implementation(
        self, session: Session, community_id: str, fields: dict
    ) -> Community:
        """Implementation of a partial community update."""
        community = session.get(Community, community_id)
        if community is None:
            raise CommunityNotFoundError()
        for name, value in fields.items():
            if not hasattr(Community, name):
                raise ValueError(f"Unknown community field: {name}")
            setattr(community, name, value)
        session.flush()
        return community

    def update_community(
        self, community_id: str, session: Optional[Session] = None, **fields: Any
    ) -> Community:
        """Update community fields."""
        return cast(
            Community,
            self._execute_with_session(
                lambda s: self._update_community_implementation(s, community_id, fields),
                session=session,
                operation_name="update_community",
            ),
        )

    def set_members(
        self,
        community_id: str,
        member_ids: List[str],
        member_count: int,
        session: Optional[Session] = None,
    ) -> Community:
        """Persist the legacy member list and aggregate count together."""
        return self.update_community(
            community_id,
            session=session,
            members=dump_id_list(member_ids),
            member_count=max(0, member_count),
        )

    def set_admins(
        self, community_id: str, admin_ids: List[str], session: Optional[Session] = None
    ) -> Community:
        """Persist the admins list."""
        return self.update_community(
            community_id, session=session, admins=dump_id_list(admin_ids)
        )

    def list_admin_communities(
        self, user_id: str, session: Optional[Session] = None
    ) -> List[Community]:
        """Communities the user created or is listed as admin of, newest first."""

        def _query(s: Session) -> List[Community]:
            candidates = (
                s.query(Community)
                .filter(
                    or_(
                        Community.creator_id == user_id,
                        Community.admins.contains(f'"{user_id}"', autoescape=True),
                    )
                )
                .order_by(Community.created_at.desc())
                .all()
            )
            # The text match is a prefilter; the parsed list decides
            return [c for c in candidates if c.is_admin(user_id)]

        return cast(
            List[Community],
            self._execute_with_session(
                _query, session=session, operation_name="list_admin_communities"
            ),
        )
