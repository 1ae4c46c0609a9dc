"""Tests for JoinRequestService."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from gather.core.enums import JoinRequestStatus, MemberRole, NotificationType
from gather.core.exceptions import (
    CommunityNotFoundError,
    JoinRequestAlreadyPendingError,
    JoinRequestAlreadyResolvedError,
    JoinRequestCooldownError,
    JoinRequestNotFoundError,
    NoPendingJoinRequestError,
)
from gather.db.time import as_utc, utcnow
from gather.models.join_request import JoinRequest
from gather.services.join_request_service import (
    AUTO_APPROVAL_ACTOR,
    JoinRequestService,
)

from helpers.ids import ADMIN_ID, OWNER_ID, REQUESTER_ID


def _set_responded_at(session_factory, join_request_id, hours_ago):
    with session_factory() as session:
        stored = session.get(JoinRequest, join_request_id)
        stored.responded_at = utcnow() - timedelta(hours=hours_ago)
        session.commit()


class TestSubmitJoinRequest:
    """Submitting requests and notifying admins."""

    def test_submit_creates_pending_request(
        self, join_request_service: JoinRequestService, private_community
    ):
        """Test that a pending request is created for the pair."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID, message="Let me in"
        )

        assert join_request.status == JoinRequestStatus.PENDING
        assert join_request.message == "Let me in"
        assert join_request.requested_at is not None

    def test_submit_notifies_each_admin(
        self,
        join_request_service: JoinRequestService,
        notification_repo,
        private_community,
        requester_profile,
    ):
        """Test that the creator and every admin get one notification."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID
        )

        for admin_id in (OWNER_ID, ADMIN_ID):
            notifications = notification_repo.list_for_recipient(admin_id)
            assert len(notifications) == 1
            notification = notifications[0]
            assert notification.type == NotificationType.JOIN_REQUEST.value
            assert notification.sender_id == REQUESTER_ID
            assert notification.sender_name == "Rosa Requester"
            assert notification.title == "Join Request - Quiet Library"
            assert notification.message == (
                'Rosa Requester has requested to join your community "Quiet Library"'
            )
            assert notification.data == {
                "communityId": private_community.id,
                "requesterId": REQUESTER_ID,
                "requesterName": "Rosa Requester",
                "requesterEmail": "rosa@example.com",
                "joinRequestId": join_request.id,
            }

    def test_admin_fan_out_is_deduplicated(
        self,
        join_request_service: JoinRequestService,
        community_repo,
        notification_repo,
        private_community,
    ):
        """Test that a creator also listed as admin is notified once."""
        community_repo.update_community(
            private_community.id, admins=f'["{OWNER_ID}", "{OWNER_ID}", "{ADMIN_ID}"]'
        )

        join_request_service.submit_join_request(private_community.id, REQUESTER_ID)

        assert len(notification_repo.list_for_recipient(OWNER_ID)) == 1
        assert len(notification_repo.list_for_recipient(ADMIN_ID)) == 1

    def test_unknown_requester_profile(
        self, join_request_service: JoinRequestService, notification_repo, private_community
    ):
        """Test the fallbacks used when the requester has no profile."""
        join_request_service.submit_join_request(private_community.id, REQUESTER_ID)

        notification = notification_repo.list_for_recipient(OWNER_ID)[0]
        assert notification.sender_name == "Unknown User"
        assert notification.message.startswith("A user has requested to join")
        assert notification.data["requesterName"] is None

    def test_notification_failure_is_isolated(
        self,
        join_request_service: JoinRequestService,
        notification_repo,
        private_community,
    ):
        """Test that one admin's failed notification does not affect others."""
        original = notification_repo.create_notification

        def flaky(recipient_id, **kwargs):
            if recipient_id == OWNER_ID:
                raise RuntimeError("mailbox full")
            return original(recipient_id=recipient_id, **kwargs)

        with patch.object(notification_repo, "create_notification", side_effect=flaky):
            join_request = join_request_service.submit_join_request(
                private_community.id, REQUESTER_ID
            )

        assert join_request.is_pending
        assert notification_repo.list_for_recipient(OWNER_ID) == []
        assert len(notification_repo.list_for_recipient(ADMIN_ID)) == 1

    def test_second_submit_is_already_pending(
        self, join_request_service: JoinRequestService, private_community
    ):
        """Test that only one pending request exists per pair."""
        join_request_service.submit_join_request(private_community.id, REQUESTER_ID)

        with pytest.raises(JoinRequestAlreadyPendingError, match="Join request already pending"):
            join_request_service.submit_join_request(private_community.id, REQUESTER_ID)

    def test_racing_insert_reports_already_pending(
        self, join_request_service: JoinRequestService, join_request_repo, private_community
    ):
        """Test that the storage-level uniqueness check maps to already pending."""
        join_request_service.submit_join_request(private_community.id, REQUESTER_ID)

        with patch.object(join_request_repo, "get_pending_request", return_value=None):
            with pytest.raises(JoinRequestAlreadyPendingError):
                join_request_service.submit_join_request(private_community.id, REQUESTER_ID)

    def test_submit_to_missing_community(self, join_request_service: JoinRequestService):
        """Test submitting to a community that does not exist."""
        with pytest.raises(CommunityNotFoundError):
            join_request_service.submit_join_request("missing", REQUESTER_ID)

    def test_cooldown_blocks_recent_rejection(
        self,
        join_request_service: JoinRequestService,
        test_session_factory,
        private_community,
    ):
        """Test that a rejection two hours ago blocks a new request."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID
        )
        join_request_service.respond_to_join_request(join_request.id, "rejected", OWNER_ID)
        _set_responded_at(test_session_factory, join_request.id, hours_ago=2)

        with pytest.raises(
            JoinRequestCooldownError,
            match="You must wait 24 hours before requesting to join again after rejection",
        ):
            join_request_service.submit_join_request(private_community.id, REQUESTER_ID)

    def test_cooldown_expires(
        self,
        join_request_service: JoinRequestService,
        test_session_factory,
        private_community,
    ):
        """Test that a rejection 25 hours ago no longer blocks."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID
        )
        join_request_service.respond_to_join_request(join_request.id, "rejected", OWNER_ID)
        _set_responded_at(test_session_factory, join_request.id, hours_ago=25)

        retry = join_request_service.submit_join_request(private_community.id, REQUESTER_ID)

        assert retry.id != join_request.id
        assert retry.is_pending


class TestCancelJoinRequest:
    """Cancelling pending requests."""

    def test_cancel(
        self, join_request_service: JoinRequestService, join_request_repo, private_community
    ):
        """Test that cancelling closes the pending request."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID
        )

        assert join_request_service.cancel_join_request(private_community.id, REQUESTER_ID)

        stored = join_request_repo.get_join_request_by_id(join_request.id)
        assert stored.status == JoinRequestStatus.CANCELLED
        assert stored.responded_at is not None

    def test_cancel_without_pending(
        self, join_request_service: JoinRequestService, private_community
    ):
        """Test cancelling when nothing is pending."""
        with pytest.raises(NoPendingJoinRequestError, match="No pending join request found"):
            join_request_service.cancel_join_request(private_community.id, REQUESTER_ID)


class TestRespondToJoinRequest:
    """Admin decisions."""

    def test_approve_materializes_membership(
        self,
        join_request_service: JoinRequestService,
        membership_service,
        join_request_repo,
        membership_repo,
        community_repo,
        notification_repo,
        private_community,
        requester_profile,
    ):
        """Test that approval grants membership and closes the request."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID
        )

        summary = join_request_service.respond_to_join_request(
            join_request.id, "approved", ADMIN_ID
        )

        assert summary.success is True
        assert summary.action == "approved"
        assert summary.community_name == "Quiet Library"
        assert summary.user_name == "Rosa Requester"

        stored = join_request_repo.get_join_request_by_id(join_request.id)
        assert stored.status == JoinRequestStatus.APPROVED
        assert stored.responded_by == ADMIN_ID
        assert as_utc(stored.responded_at) <= utcnow()

        assert membership_service.check_membership(private_community.id, REQUESTER_ID)
        record = membership_repo.get_active_membership(private_community.id, REQUESTER_ID)
        assert record.role == MemberRole.MEMBER
        community = community_repo.get_community_by_id(private_community.id)
        assert community.member_ids == [OWNER_ID, REQUESTER_ID]
        assert community.member_count == 2

        notifications = notification_repo.list_for_recipient(REQUESTER_ID)
        assert len(notifications) == 1
        assert notifications[0].type == NotificationType.JOIN_APPROVED.value
        assert notifications[0].sender_name == "Community Admin"
        assert notifications[0].title == "Join Request Approved"
        assert notifications[0].message == (
            'Your request to join "Quiet Library" has been approved.'
        )
        assert notifications[0].data == {
            "communityId": private_community.id,
            "communityName": "Quiet Library",
        }

    def test_approve_invalidates_cached_negative(
        self, join_request_service: JoinRequestService, membership_service, private_community
    ):
        """Test that a cached 'not a member' does not outlive approval."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID
        )
        assert membership_service.check_membership(private_community.id, REQUESTER_ID) is False

        join_request_service.respond_to_join_request(join_request.id, "approved", OWNER_ID)

        assert membership_service.check_membership(private_community.id, REQUESTER_ID) is True

    def test_reject_grants_nothing(
        self,
        join_request_service: JoinRequestService,
        membership_service,
        community_repo,
        notification_repo,
        private_community,
    ):
        """Test that rejection leaves the requester outside the community."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID
        )

        summary = join_request_service.respond_to_join_request(
            join_request.id, "rejected", OWNER_ID
        )

        assert summary.action == "rejected"
        assert summary.user_name == "Unknown User"
        assert membership_service.check_membership(private_community.id, REQUESTER_ID) is False
        assert community_repo.get_community_by_id(private_community.id).member_count == 1

        notification = notification_repo.list_for_recipient(REQUESTER_ID)[0]
        assert notification.type == NotificationType.JOIN_REJECTED.value
        assert notification.title == "Join Request Rejected"

    def test_approve_user_already_listed(
        self,
        join_request_service: JoinRequestService,
        community_repo,
        private_community,
    ):
        """Test that approval does not duplicate an existing legacy entry."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID
        )
        community_repo.set_members(private_community.id, [OWNER_ID, REQUESTER_ID], 2)

        join_request_service.respond_to_join_request(join_request.id, "approved", OWNER_ID)

        community = community_repo.get_community_by_id(private_community.id)
        assert community.member_ids == [OWNER_ID, REQUESTER_ID]
        assert community.member_count == 2

    def test_second_response_is_refused(
        self, join_request_service: JoinRequestService, community_repo, private_community
    ):
        """Test that a resolved request cannot be answered again."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID
        )
        join_request_service.respond_to_join_request(join_request.id, "approved", OWNER_ID)

        with pytest.raises(JoinRequestAlreadyResolvedError):
            join_request_service.respond_to_join_request(join_request.id, "approved", ADMIN_ID)

        assert community_repo.get_community_by_id(private_community.id).member_count == 2

    def test_invalid_action(self, join_request_service: JoinRequestService, private_community):
        """Test that only approved and rejected are accepted."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID
        )

        with pytest.raises(ValueError, match="Invalid action"):
            join_request_service.respond_to_join_request(join_request.id, "maybe", OWNER_ID)

    def test_missing_request(self, join_request_service: JoinRequestService):
        """Test responding to a request that does not exist."""
        with pytest.raises(JoinRequestNotFoundError):
            join_request_service.respond_to_join_request("missing", "approved", OWNER_ID)

    def test_failed_resolution_rolls_back_grant(
        self,
        join_request_service: JoinRequestService,
        join_request_repo,
        membership_repo,
        community_repo,
        private_community,
    ):
        """Test that approval is all-or-nothing."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID
        )

        with patch.object(
            join_request_repo, "resolve_join_request", side_effect=RuntimeError("db down")
        ):
            with pytest.raises(RuntimeError):
                join_request_service.respond_to_join_request(
                    join_request.id, "approved", OWNER_ID
                )

        assert membership_repo.get_membership(private_community.id, REQUESTER_ID) is None
        community = community_repo.get_community_by_id(private_community.id)
        assert community.member_ids == [OWNER_ID]
        assert join_request_repo.get_join_request_by_id(join_request.id).is_pending

    def test_notification_failure_after_commit_is_tolerated(
        self,
        join_request_service: JoinRequestService,
        notification_repo,
        membership_repo,
        private_community,
    ):
        """Test that a failed requester notification does not undo approval."""
        join_request = join_request_service.submit_join_request(
            private_community.id, REQUESTER_ID
        )

        with patch.object(
            notification_repo, "create_notification", side_effect=RuntimeError("down")
        ):
            summary = join_request_service.respond_to_join_request(
                join_request.id, "approved", OWNER_ID
            )

        assert summary.success
        assert membership_repo.get_active_membership(private_community.id, REQUESTER_ID)


class TestQueries:
    """Pending queue and status lookups."""

    def test_get_pending_join_requests(
        self,
        join_request_service: JoinRequestService,
        private_community,
        requester_profile,
    ):
        """Test that pending requests come with profiles where available."""
        join_request_service.submit_join_request(private_community.id, REQUESTER_ID)
        join_request_service.submit_join_request(private_community.id, "no-profile")

        pending = join_request_service.get_pending_join_requests(private_community.id)

        profiles = {p.request.user_id: p.user_profile for p in pending}
        assert set(profiles) == {REQUESTER_ID, "no-profile"}
        assert profiles[REQUESTER_ID].name == "Rosa Requester"
        assert profiles["no-profile"] is None

    def test_profile_failure_yields_none(
        self,
        join_request_service: JoinRequestService,
        user_profile_repo,
        private_community,
    ):
        """Test that a failing profile lookup does not drop the request."""
        join_request_service.submit_join_request(private_community.id, REQUESTER_ID)

        with patch.object(
            user_profile_repo, "get_by_user_id", side_effect=RuntimeError("down")
        ):
            pending = join_request_service.get_pending_join_requests(private_community.id)

        assert len(pending) == 1
        assert pending[0].user_profile is None

    def test_pending_list_failure_returns_empty(
        self, join_request_service: JoinRequestService, join_request_repo
    ):
        """Test that a failing pending query returns an empty list."""
        with patch.object(
            join_request_repo, "list_pending_requests", side_effect=RuntimeError("down")
        ):
            assert join_request_service.get_pending_join_requests("c1") == []

    def test_get_user_join_request_status(
        self, join_request_service: JoinRequestService, private_community
    ):
        """Test that the most recent request is returned regardless of status."""
        assert (
            join_request_service.get_user_join_request_status(
                private_community.id, REQUESTER_ID
            )
            is None
        )

        join_request_service.submit_join_request(private_community.id, REQUESTER_ID)
        join_request_service.cancel_join_request(private_community.id, REQUESTER_ID)

        latest = join_request_service.get_user_join_request_status(
            private_community.id, REQUESTER_ID
        )
        assert latest.status == JoinRequestStatus.CANCELLED

    def test_status_failure_returns_none(
        self, join_request_service: JoinRequestService, join_request_repo
    ):
        """Test that a failing status query returns None."""
        with patch.object(
            join_request_repo, "get_latest_request", side_effect=RuntimeError("down")
        ):
            assert join_request_service.get_user_join_request_status("c1", "u1") is None


class TestAutoApprove:
    """Bulk approval when a community goes public."""

    def test_auto_approve_three(
        self,
        join_request_service: JoinRequestService,
        membership_service,
        join_request_repo,
        community_repo,
        private_community,
    ):
        """Test that three pending requests are approved and materialized."""
        requesters = ["user-a", "user-b", "user-c"]
        for user_id in requesters:
            join_request_service.submit_join_request(private_community.id, user_id)

        assert join_request_service.auto_approve_all_pending_requests(private_community.id) == 3

        assert join_request_repo.list_pending_requests(private_community.id) == []
        for user_id in requesters:
            assert membership_service.check_membership(private_community.id, user_id)
            latest = join_request_repo.get_latest_request(private_community.id, user_id)
            assert latest.responded_by == AUTO_APPROVAL_ACTOR

        community = community_repo.get_community_by_id(private_community.id)
        assert community.member_count == 4
        assert sorted(community.member_ids) == sorted([OWNER_ID, *requesters])

    def test_auto_approve_notifies_with_reason(
        self,
        join_request_service: JoinRequestService,
        notification_repo,
        private_community,
    ):
        """Test the automatic approval notification."""
        join_request_service.submit_join_request(private_community.id, REQUESTER_ID)

        join_request_service.auto_approve_all_pending_requests(private_community.id)

        notification = notification_repo.list_for_recipient(REQUESTER_ID)[0]
        assert notification.type == NotificationType.JOIN_APPROVED.value
        assert notification.message.endswith(
            "automatically approved as the community is now public"
        )
        assert notification.data["action"] == "approved"
        assert notification.data["reason"] == "community_made_public"

    def test_auto_approve_nothing_pending(
        self, join_request_service: JoinRequestService, private_community
    ):
        """Test that an empty queue approves nothing."""
        assert join_request_service.auto_approve_all_pending_requests(private_community.id) == 0

    def test_auto_approve_missing_community(self, join_request_service: JoinRequestService):
        """Test auto-approval for a community that does not exist."""
        with pytest.raises(CommunityNotFoundError):
            join_request_service.auto_approve_all_pending_requests("missing")

    def test_auto_approve_skips_request_cancelled_after_listing(
        self,
        join_request_service: JoinRequestService,
        join_request_repo,
        membership_repo,
        private_community,
    ):
        """Test that a request resolved mid-batch is skipped, not fatal."""
        for user_id in ["user-a", "user-b", "user-c"]:
            join_request_service.submit_join_request(private_community.id, user_id)

        list_pending = join_request_repo.list_pending_requests
        cancelled = []

        def list_then_cancel(*args, **kwargs):
            listed = list_pending(*args, **kwargs)
            join_request_service.cancel_join_request(
                private_community.id, listed[0].user_id
            )
            cancelled.append(listed[0].user_id)
            return listed

        with patch.object(
            join_request_repo, "list_pending_requests", side_effect=list_then_cancel
        ):
            approved = join_request_service.auto_approve_all_pending_requests(
                private_community.id
            )

        assert approved == 2
        assert join_request_repo.list_pending_requests(private_community.id) == []

        cancelled_id = cancelled[0]
        latest = join_request_repo.get_latest_request(private_community.id, cancelled_id)
        assert latest.status == JoinRequestStatus.CANCELLED
        assert membership_repo.get_membership(private_community.id, cancelled_id) is None

        for user_id in {"user-a", "user-b", "user-c"} - {cancelled_id}:
            assert membership_repo.get_active_membership(private_community.id, user_id)

    def test_auto_approve_failure_keeps_earlier_approvals(
        self,
        join_request_service: JoinRequestService,
        join_request_repo,
        membership_repo,
        community_repo,
        private_community,
    ):
        """Test that a failure part-way re-raises and earlier approvals stay."""
        for user_id in ["user-a", "user-b", "user-c"]:
            join_request_service.submit_join_request(private_community.id, user_id)

        grant = join_request_service._grant_membership
        granted = []

        def grant_then_fail(community_id, user_id, session=None):
            granted.append(user_id)
            if len(granted) == 2:
                raise RuntimeError("write failed")
            return grant(community_id, user_id, session=session)

        with patch.object(
            join_request_service, "_grant_membership", side_effect=grant_then_fail
        ), pytest.raises(RuntimeError, match="write failed"):
            join_request_service.auto_approve_all_pending_requests(private_community.id)

        first, failed = granted
        first_request = join_request_repo.get_latest_request(private_community.id, first)
        assert first_request.status == JoinRequestStatus.APPROVED
        assert first_request.responded_by == AUTO_APPROVAL_ACTOR
        assert membership_repo.get_active_membership(private_community.id, first)

        failed_request = join_request_repo.get_latest_request(private_community.id, failed)
        assert failed_request.status == JoinRequestStatus.PENDING
        assert membership_repo.get_membership(private_community.id, failed) is None

        assert len(join_request_repo.list_pending_requests(private_community.id)) == 2
        assert community_repo.get_community_by_id(private_community.id).member_count == 2
