"""Tests for notification fan-out helpers."""

from unittest.mock import Mock

from gather.models.community import Community
from gather.services.notifications import notify_recipients, unique_admin_ids


def _community(creator_id, admins):
    return Community(
        name="Quiet Library",
        creator_id=creator_id,
        admins=admins,
        members="[]",
        member_count=0,
    )


class TestUniqueAdminIds:
    """unique_admin_ids()"""

    def test_creator_first_and_deduplicated(self):
        """Test that the creator leads and repeats are dropped."""
        community = _community("owner-1", '["admin-2", "owner-1", "admin-2"]')

        assert unique_admin_ids(community) == ["owner-1", "admin-2"]

    def test_empty_ids_dropped(self):
        """Test that blank entries never become recipients."""
        community = _community("owner-1", '["", "admin-2"]')

        assert unique_admin_ids(community) == ["owner-1", "admin-2"]


class TestNotifyRecipients:
    """notify_recipients()"""

    def test_every_recipient_is_attempted(self):
        """Test that one failure does not stop the others."""
        repo = Mock()
        repo.create_notification.side_effect = [
            "first",
            RuntimeError("write failed"),
            "third",
        ]

        outcomes = notify_recipients(
            repo, ["a", "b", "c"], lambda recipient_id: {"title": f"hi {recipient_id}"}
        )

        assert [o.recipient_id for o in outcomes] == ["a", "b", "c"]
        assert [o.delivered for o in outcomes] == [True, False, True]
        assert str(outcomes[1].error) == "write failed"
        repo.create_notification.assert_any_call(recipient_id="c", title="hi c")

    def test_no_recipients(self):
        """Test that an empty recipient list writes nothing."""
        repo = Mock()

        assert notify_recipients(repo, [], lambda _: {}) == []
        repo.create_notification.assert_not_called()
