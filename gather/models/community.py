"""Community model (legacy document view)."""

import json
import uuid
from typing import Any, List

from sqlalchemy import TIMESTAMP, Column, Enum, Integer, String, Text
from sqlalchemy.orm import relationship

from gather.core.enums import CommunityType
from gather.core.logging import get_logger
from gather.db.time import utcnow

from . import Base

logger = get_logger(__name__)


def _clean_id(value: Any) -> str:
    return str(value if value is not None else "").replace('"', "").replace(
        "[", ""
    ).replace("]", "").strip()


def parse_id_list(raw: Any) -> List[str]:
    """Parse an embedded id list defensively.

    Accepts a list or a JSON array string. Stray quote and bracket characters
    left by earlier double-encoding are stripped from each element. Anything
    else (non-JSON, non-array) reads as an empty list.
    """
    if not raw:
        return []
    items: Any = raw
    if isinstance(raw, str):
        try:
            items = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Unparseable id list, treating as empty")
            return []
    if not isinstance(items, list):
        return []
    cleaned = (_clean_id(item) for item in items)
    return [item for item in cleaned if item]


def dump_id_list(ids: List[str]) -> str:
    return json.dumps(list(ids))


class Community(Base):
    """Community document.

    ``members`` is the legacy embedded member list kept for backward
    compatibility; ``community_member`` rows are the canonical records.
    """

    __tablename__ = "community"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(
        Enum(
            CommunityType,
            name="community_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=CommunityType.PUBLIC,
    )
    creator_id = Column(String(64), nullable=False, index=True)
    admins = Column(Text, nullable=False, default="[]")
    members = Column(Text, nullable=False, default="[]")
    member_count = Column(Integer, nullable=False, default=0)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    memberships = relationship(
        "CommunityMember", back_populates="community", passive_deletes=True
    )

    @property
    def member_ids(self) -> List[str]:
        return parse_id_list(self.members)

    @property
    def admin_ids(self) -> List[str]:
        return parse_id_list(self.admins)

    @property
    def is_private(self) -> bool:
        return self.type == CommunityType.PRIVATE

    def is_admin(self, user_id: str) -> bool:
        """Creator or listed admin."""
        return self.creator_id == user_id or user_id in self.admin_ids

    def __repr__(self):
        return f"<Community(id={self.id}, name='{self.name}', type={self.type})>"
