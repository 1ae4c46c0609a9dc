"""
Gather Membership Reconciliation Script

Brings each community's legacy member list and its membership records back
into agreement, and closes pending join requests from users who are already
members.

Usage:
    python scripts/reconcile_memberships.py [COMMUNITY_ID ...]
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from gather.core.logging import get_logger, setup_logging  # noqa: E402
from gather.core.observability.metrics import log_gauge_set  # noqa: E402
from gather.db.db import get_session_local  # noqa: E402
from gather.repositories.community_repo import CommunityRepo  # noqa: E402
from gather.repositories.join_request_repo import JoinRequestRepo  # noqa: E402
from gather.repositories.membership_repo import MembershipRepo  # noqa: E402
from gather.services.community_service import CommunityService  # noqa: E402
from gather.services.membership_service import (  # noqa: E402
    MembershipService,
    ReconciliationReport,
)

SEPARATOR_LINE = "=" * 50

logger = get_logger(__name__)


def build_membership_service(session_factory) -> MembershipService:
    """Wire a MembershipService against the given session factory."""
    community_repo = CommunityRepo(session_factory)
    membership_repo = MembershipRepo(session_factory)
    return MembershipService(
        community_repo,
        membership_repo,
        CommunityService(community_repo, membership_repo),
        join_request_repo=JoinRequestRepo(session_factory),
    )


def reconcile_communities(
    membership_service: MembershipService,
    community_ids: Optional[Sequence[str]] = None,
) -> List[ReconciliationReport]:
    """Reconcile the given communities, or every community when none given.

    A failure in one community is logged and does not stop the others.
    """
    if not community_ids:
        community_ids = membership_service.community_repo.list_community_ids()

    reports = []
    for community_id in community_ids:
        try:
            report = membership_service.reconcile_community(community_id)
        except Exception as e:
            logger.error(f"Failed to reconcile community {community_id}: {e}")
            continue
        log_gauge_set(
            "community_member_count",
            report.member_count,
            labels={"community_id": community_id},
        )
        reports.append(report)
    return reports


def print_summary(reports: List[ReconciliationReport]) -> None:
    """Print a per-community summary of the changes made."""
    print("Gather Membership Reconciliation")
    print(SEPARATOR_LINE)

    changed = [r for r in reports if r.changed]
    for report in changed:
        print(f"\nCommunity {report.community_id}:")
        print(f"   Records created:      {len(report.records_created)}")
        print(f"   Legacy entries added: {len(report.legacy_members_added)}")
        print(f"   Requests closed:      {len(report.requests_closed)}")
        print(f"   Member count:         {report.member_count}")

    print(f"\n{SEPARATOR_LINE}")
    print(f"Communities checked:  {len(reports)}")
    print(f"Communities repaired: {len(changed)}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main reconciliation function."""
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument(
        "community_ids", nargs="*", help="Communities to reconcile (default: all)"
    )
    args = parser.parse_args(argv)

    setup_logging()
    service = build_membership_service(get_session_local())
    reports = reconcile_communities(service, args.community_ids)
    print_summary(reports)
    return 0


if __name__ == "__main__":
    sys.exit(main())
