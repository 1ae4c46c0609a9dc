"""Notification model."""

import uuid

from sqlalchemy import JSON, TIMESTAMP, Boolean, Column, Index, String, Text

from gather.db.time import utcnow

from . import Base


class Notification(Base):
    __tablename__ = "notification"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_id = Column(String(64), nullable=False)
    sender_id = Column(String(64), nullable=False)
    sender_name = Column(String(255), nullable=False)
    type = Column(String(64), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_notification_recipient_created", "recipient_id", "created_at"),
    )

    def __repr__(self):
        return (
            f"<Notification(id={self.id}, recipient_id={self.recipient_id}, "
            f"type='{self.type}')>"
        )
