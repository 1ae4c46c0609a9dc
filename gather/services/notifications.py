"""Notification fan-out helpers."""

import dataclasses
from typing import Any, Callable, Dict, Iterable, List, Optional

from gather.core.logging import get_logger
from gather.models.community import Community
from gather.models.notification import Notification
from gather.repositories.notification_repo import NotificationRepo

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True)
class NotificationOutcome:
    """Result of writing one recipient's notification."""

    recipient_id: str
    notification: Optional[Notification] = None
    error: Optional[Exception] = None

    @property
    def delivered(self) -> bool:
        return self.error is None


def unique_admin_ids(community: Community) -> List[str]:
    """Creator plus listed admins, de-duplicated in order."""
    candidates = [community.creator_id, *community.admin_ids]
    return list(dict.fromkeys(admin_id for admin_id in candidates if admin_id))


def notify_recipients(
    notification_repo: NotificationRepo,
    recipient_ids: Iterable[str],
    build: Callable[[str], Dict[str, Any]],
) -> List[NotificationOutcome]:
    """Write one notification per recipient, settling every recipient.

    Each write commits on its own; a failure for one recipient is logged and
    captured in its outcome without affecting the others.
    """
    outcomes = []
    for recipient_id in recipient_ids:
        try:
            notification = notification_repo.create_notification(
                recipient_id=recipient_id, **build(recipient_id)
            )
            outcomes.append(NotificationOutcome(recipient_id, notification=notification))
        except Exception as e:
            logger.error(f"Failed to notify {recipient_id}: {e}")
            outcomes.append(NotificationOutcome(recipient_id, error=e))
    return outcomes
