"""Community membership model."""

from sqlalchemy import (
    TIMESTAMP,
    BigInteger,
    Boolean,
    Column,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from gather.core.enums import MemberRole, MembershipStatus
from gather.db.time import utcnow

from . import Base


class CommunityMember(Base):
    __tablename__ = "community_member"

    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    community_id = Column(
        String(36), ForeignKey("community.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(String(64), nullable=False)
    role = Column(
        Enum(
            MemberRole,
            name="member_role",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=MemberRole.MEMBER,
    )
    status = Column(
        Enum(
            MembershipStatus,
            name="membership_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=MembershipStatus.ACTIVE,
    )
    joined_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    invited_by = Column(String(64), nullable=True)
    last_active_at = Column(TIMESTAMP(timezone=True), nullable=True)
    notifications = Column(Boolean, nullable=False, default=True)

    # Relationships
    community = relationship("Community", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint(
            "community_id", "user_id", name="community_member_community_user_unique"
        ),
        Index("ix_community_member_user_id", "user_id"),  # For "my communities"
    )

    def __repr__(self):
        return (
            f"<CommunityMember(community_id={self.community_id}, "
            f"user_id={self.user_id}, role={self.role}, status={self.status})>"
        )
