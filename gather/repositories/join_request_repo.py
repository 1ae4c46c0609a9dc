"""Join request repository."""

from typing import List, Optional, cast

from sqlalchemy import update
from sqlalchemy.orm import Session

from gather.core.enums import JoinRequestStatus
from gather.core.exceptions import (
    JoinRequestAlreadyResolvedError,
    JoinRequestNotFoundError,
)
from gather.core.logging import get_logger
from gather.db.time import utcnow
from gather.models.join_request import JoinRequest
from gather.repositories.base_repo import BaseRepo

logger = get_logger(__name__)

MAX_JOIN_REQUEST_MESSAGE_LENGTH = 1000


class JoinRequestRepo(BaseRepo):
    """Join request repository."""

    def _create_join_request_implementation(
        self, session: Session, community_id: str, user_id: str, message: str
    ) -> JoinRequest:
        """Implementation of join request creation."""
        if len(message) > MAX_JOIN_REQUEST_MESSAGE_LENGTH:
            raise ValueError(
                f"Join request message cannot exceed "
                f"{MAX_JOIN_REQUEST_MESSAGE_LENGTH} characters"
            )
        join_request = JoinRequest(
            community_id=community_id,
            user_id=user_id,
            status=JoinRequestStatus.PENDING,
            message=message,
            requested_at=utcnow(),
        )
        session.add(join_request)
        session.flush()
        logger.info(
            f"Created join request {join_request.id} for user {user_id} "
            f"in community {community_id}"
        )
        return join_request

    def create_join_request(
        self,
        community_id: str,
        user_id: str,
        message: str = "",
        session: Optional[Session] = None,
    ) -> JoinRequest:
        """Create a pending join request.

        Raises IntegrityError when a pending request already exists for the
        pair.
        """
        return cast(
            JoinRequest,
            self._execute_with_session(
                lambda s: self._create_join_request_implementation(
                    s, community_id, user_id, message
                ),
                session=session,
                operation_name="create_join_request",
            ),
        )

    def get_join_request_by_id(
        self, join_request_id: str, session: Optional[Session] = None
    ) -> Optional[JoinRequest]:
        """Get a join request by ID."""
        return cast(
            Optional[JoinRequest],
            self._execute_with_session(
                lambda s: s.get(JoinRequest, join_request_id),
                session=session,
                operation_name="get_join_request_by_id",
            ),
        )

    def get_pending_request(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> Optional[JoinRequest]:
        """Get the pending request for a pair, if any."""
        return cast(
            Optional[JoinRequest],
            self._execute_with_session(
                lambda s: s.query(JoinRequest)
                .filter(
                    JoinRequest.community_id == community_id,
                    JoinRequest.user_id == user_id,
                    JoinRequest.status == JoinRequestStatus.PENDING,
                )
                .order_by(JoinRequest.requested_at.desc())
                .first(),
                session=session,
                operation_name="get_pending_request",
            ),
        )

    def get_latest_rejection(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> Optional[JoinRequest]:
        """Get the most recently answered rejected request for a pair."""
        return cast(
            Optional[JoinRequest],
            self._execute_with_session(
                lambda s: s.query(JoinRequest)
                .filter(
                    JoinRequest.community_id == community_id,
                    JoinRequest.user_id == user_id,
                    JoinRequest.status == JoinRequestStatus.REJECTED,
                )
                .order_by(JoinRequest.responded_at.desc())
                .first(),
                session=session,
                operation_name="get_latest_rejection",
            ),
        )

    def get_latest_request(
        self, community_id: str, user_id: str, session: Optional[Session] = None
    ) -> Optional[JoinRequest]:
        """Get the most recent request for a pair regardless of status."""
        return cast(
            Optional[JoinRequest],
            self._execute_with_session(
                lambda s: s.query(JoinRequest)
                .filter(
                    JoinRequest.community_id == community_id,
                    JoinRequest.user_id == user_id,
                )
                .order_by(JoinRequest.requested_at.desc())
                .first(),
                session=session,
                operation_name="get_latest_request",
            ),
        )

    def list_pending_requests(
        self, community_id: str, session: Optional[Session] = None
    ) -> List[JoinRequest]:
        """List pending requests for a community, newest first."""
        return cast(
            List[JoinRequest],
            self._execute_with_session(
                lambda s: s.query(JoinRequest)
                .filter(
                    JoinRequest.community_id == community_id,
                    JoinRequest.status == JoinRequestStatus.PENDING,
                )
                .order_by(JoinRequest.requested_at.desc())
                .all(),
                session=session,
                operation_name="list_pending_requests",
            ),
        )

    def _resolve_join_request_implementation(
        self,
        session: Session,
        join_request_id: str,
        new_status: JoinRequestStatus,
        responded_by: Optional[str],
    ) -> JoinRequest:
        """Implementation of the guarded pending -> resolved transition."""
        if new_status == JoinRequestStatus.PENDING:
            raise ValueError("A join request cannot be resolved to pending")

        result = session.execute(
            update(JoinRequest)
            .where(
                JoinRequest.id == join_request_id,
                JoinRequest.status == JoinRequestStatus.PENDING,
            )
            .values(
                status=new_status,
                responded_at=utcnow(),
                responded_by=responded_by,
            )
            .execution_options(synchronize_session=False)
        )
        join_request = session.get(JoinRequest, join_request_id)
        if join_request is None:
            raise JoinRequestNotFoundError()
        session.refresh(join_request)
        if result.rowcount == 0:
            logger.warning(
                f"Join request {join_request_id} already resolved "
                f"as {join_request.status}"
            )
            raise JoinRequestAlreadyResolvedError()

        logger.info(f"Join request {join_request_id} resolved as {new_status.value}")
        return join_request

    def resolve_join_request(
        self,
        join_request_id: str,
        new_status: JoinRequestStatus,
        responded_by: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> JoinRequest:
        """Move a pending request to a terminal status.

        Only succeeds while the request is still pending; a resolved request
        never changes status again.
        """
        return cast(
            JoinRequest,
            self._execute_with_session(
                lambda s: self._resolve_join_request_implementation(
                    s, join_request_id, new_status, responded_by
                ),
                session=session,
                operation_name="resolve_join_request",
            ),
        )
