"""API schemas package."""

from .community import (
    AddAdminRequest,
    CommunityCreatedResponse,
    CommunityListResponse,
    CommunityResponse,
    CreateCommunityRequest,
    JoinCommunityResponse,
    MembershipStatusResponse,
    SuccessResponse,
    UpdateCommunityTypeRequest,
)
from .join_request import (
    JoinDecisionResponse,
    JoinRequestResponse,
    PendingJoinRequestListResponse,
    PendingJoinRequestResponse,
    RespondToJoinRequest,
    SubmitJoinRequest,
    UserProfileResponse,
)

__all__ = [
    "AddAdminRequest",
    "CommunityCreatedResponse",
    "CommunityListResponse",
    "CommunityResponse",
    "CreateCommunityRequest",
    "JoinCommunityResponse",
    "JoinDecisionResponse",
    "JoinRequestResponse",
    "MembershipStatusResponse",
    "PendingJoinRequestListResponse",
    "PendingJoinRequestResponse",
    "RespondToJoinRequest",
    "SubmitJoinRequest",
    "SuccessResponse",
    "UpdateCommunityTypeRequest",
    "UserProfileResponse",
]
