"""Join request model."""

import uuid

from sqlalchemy import TIMESTAMP, Column, Enum, ForeignKey, Index, String, Text, text

from gather.core.enums import JoinRequestStatus
from gather.db.time import utcnow

from . import Base

_PENDING_ONLY = text("status = 'pending'")


class JoinRequest(Base):
    """One attempt by a user to join a private community."""

    __tablename__ = "join_request"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    community_id = Column(
        String(36), ForeignKey("community.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(String(64), nullable=False)
    status = Column(
        Enum(
            JoinRequestStatus,
            name="join_request_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=JoinRequestStatus.PENDING,
    )
    message = Column(Text, nullable=False, default="")
    requested_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    responded_at = Column(TIMESTAMP(timezone=True), nullable=True)
    responded_by = Column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_join_request_community_status", "community_id", "status"),
        Index("ix_join_request_user_requested", "user_id", "requested_at"),
        # At most one pending request per (community, user)
        Index(
            "uq_join_request_one_pending",
            "community_id",
            "user_id",
            unique=True,
            postgresql_where=_PENDING_ONLY,
            sqlite_where=_PENDING_ONLY,
        ),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == JoinRequestStatus.PENDING

    def __repr__(self):
        return (
            f"<JoinRequest(id={self.id}, community_id={self.community_id}, "
            f"user_id={self.user_id}, status={self.status})>"
        )
