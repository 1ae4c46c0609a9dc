"""Notification repository."""

from typing import Any, Dict, List, Optional, cast

from sqlalchemy.orm import Session

from gather.core.logging import get_logger
from gather.models.notification import Notification
from gather.repositories.base_repo import BaseRepo

logger = get_logger(__name__)


class NotificationRepo(BaseRepo):
    """Notification repository."""

    def _create_notification_implementation(
        self, session: Session, fields: Dict[str, Any]
    ) -> Notification:
        notification = Notification(**fields)
        session.add(notification)
        session.flush()
        logger.debug(
            f"Created notification {notification.id} for {notification.recipient_id}"
        )
        return notification

    def create_notification(
        self,
        recipient_id: str,
        sender_id: str,
        sender_name: str,
        type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        session: Optional[Session] = None,
    ) -> Notification:
        """Create an unread notification for a recipient."""
        fields = {
            "recipient_id": recipient_id,
            "sender_id": sender_id,
            "sender_name": sender_name,
            "type": type,
            "title": title,
            "message": message,
            "data": data or {},
            "read": False,
        }
        return cast(
            Notification,
            self._execute_with_session(
                lambda s: self._create_notification_implementation(s, fields),
                session=session,
                operation_name="create_notification",
            ),
        )

    def list_for_recipient(
        self, recipient_id: str, session: Optional[Session] = None
    ) -> List[Notification]:
        """List a recipient's notifications, newest first."""
        return cast(
            List[Notification],
            self._execute_with_session(
                lambda s: s.query(Notification)
                .filter(Notification.recipient_id == recipient_id)
                .order_by(Notification.created_at.desc())
                .all(),
                session=session,
                operation_name="list_for_recipient",
            ),
        )
