"""Community membership API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from gather.api.errors import to_http_exception
from gather.api.schemas.community import (
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
from gather.core.auth_utils import get_current_user_id
from gather.core.exceptions import CommunityNotFoundError
from gather.dependencies import get_community_service, get_membership_service
from gather.models.community import Community
from gather.services.community_service import CommunityService
from gather.services.membership_service import MembershipService

router = APIRouter(prefix="/communities", tags=["communities"])


def _community_to_response(community: Community) -> CommunityResponse:
    """Convert Community model to CommunityResponse."""
    return CommunityResponse(
        id=community.id,
        name=community.name,
        description=community.description,
        type=community.type,
        creator_id=community.creator_id,
        admins=community.admin_ids,
        member_count=community.member_count,
        created_at=community.created_at,
    )


@router.post(
    "/", response_model=CommunityCreatedResponse, status_code=status.HTTP_201_CREATED
)
async def create_community(
    request: CreateCommunityRequest,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    community_service: Annotated[CommunityService, Depends(get_community_service)],
):
    """Create a community owned by the current user."""
    try:
        community = community_service.create_community(
            current_user_id,
            request.name,
            community_type=request.type,
            description=request.description,
        )
        return CommunityCreatedResponse(
            message="Community created successfully",
            data=_community_to_response(community),
        )
    except Exception as e:
        raise to_http_exception(e, "create community") from e


@router.get("/", response_model=CommunityListResponse)
async def list_user_communities(
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    membership_service: Annotated[MembershipService, Depends(get_membership_service)],
):
    """List all communities the current user belongs to."""
    communities = membership_service.get_user_communities(current_user_id)
    responses = [_community_to_response(c) for c in communities]
    return CommunityListResponse(communities=responses, total=len(responses))


@router.get("/administered", response_model=CommunityListResponse)
async def list_admin_communities(
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    community_service: Annotated[CommunityService, Depends(get_community_service)],
):
    """List communities the current user created or administers."""
    try:
        communities = community_service.get_user_admin_communities(current_user_id)
    except Exception as e:
        raise to_http_exception(e, "list admin communities") from e
    responses = [_community_to_response(c) for c in communities]
    return CommunityListResponse(communities=responses, total=len(responses))


@router.get("/{community_id}", response_model=CommunityResponse)
async def get_community(
    community_id: str,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    community_service: Annotated[CommunityService, Depends(get_community_service)],
):
    """Get details of a specific community."""
    try:
        community = community_service.get_community(community_id)
        if community is None:
            raise CommunityNotFoundError()
        return _community_to_response(community)
    except Exception as e:
        raise to_http_exception(e, "retrieve community") from e


@router.get("/{community_id}/membership", response_model=MembershipStatusResponse)
async def get_membership(
    community_id: str,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    membership_service: Annotated[MembershipService, Depends(get_membership_service)],
    community_service: Annotated[CommunityService, Depends(get_community_service)],
):
    """Check the current user's membership and admin rights."""
    if community_service.get_community(community_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Community not found"
        )

    is_member = membership_service.check_membership(community_id, current_user_id)
    record = membership_service.get_membership_record(community_id, current_user_id)
    return MembershipStatusResponse(
        community_id=community_id,
        user_id=current_user_id,
        is_member=is_member,
        is_admin=membership_service.is_user_community_admin(
            community_id, current_user_id
        ),
        role=record.role.value if record is not None else None,
        joined_at=record.joined_at if record is not None else None,
    )


@router.post("/{community_id}/join", response_model=JoinCommunityResponse)
async def join_community(
    community_id: str,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    membership_service: Annotated[MembershipService, Depends(get_membership_service)],
):
    """Join a public community.

    Private communities answer with ``approval_required``; the caller must
    submit a join request instead.
    """
    try:
        result = membership_service.join_community(community_id, current_user_id)
        return JoinCommunityResponse(success=result.success, status=result.status)
    except Exception as e:
        raise to_http_exception(e, "join community") from e


@router.post("/{community_id}/leave", response_model=SuccessResponse)
async def leave_community(
    community_id: str,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    membership_service: Annotated[MembershipService, Depends(get_membership_service)],
):
    """Leave a community."""
    try:
        membership_service.leave_community(community_id, current_user_id)
        return SuccessResponse(message="Left community successfully", data=None)
    except Exception as e:
        raise to_http_exception(e, "leave community") from e


@router.patch("/{community_id}/type", response_model=SuccessResponse)
async def update_community_type(
    community_id: str,
    request: UpdateCommunityTypeRequest,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    community_service: Annotated[CommunityService, Depends(get_community_service)],
):
    """Change community visibility (owner only)."""
    try:
        community_service.update_community_type(
            community_id, request.type, current_user_id
        )
        return SuccessResponse(
            message="Community type updated successfully",
            data={"type": request.type.value},
        )
    except Exception as e:
        raise to_http_exception(e, "update community type") from e


@router.post("/{community_id}/admins", response_model=SuccessResponse)
async def add_admin(
    community_id: str,
    request: AddAdminRequest,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    community_service: Annotated[CommunityService, Depends(get_community_service)],
):
    """Grant admin rights to a user (owner only)."""
    try:
        community = community_service.add_admin(
            community_id, request.user_id, current_user_id
        )
        return SuccessResponse(
            message="Admin added successfully", data={"admins": community.admin_ids}
        )
    except Exception as e:
        raise to_http_exception(e, "add admin") from e


@router.delete("/{community_id}/admins/{user_id}", response_model=SuccessResponse)
async def remove_admin(
    community_id: str,
    user_id: str,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    community_service: Annotated[CommunityService, Depends(get_community_service)],
):
    """Revoke a user's admin rights (owner only)."""
    try:
        community = community_service.remove_admin(
            community_id, user_id, current_user_id
        )
        return SuccessResponse(
            message="Admin removed successfully", data={"admins": community.admin_ids}
        )
    except Exception as e:
        raise to_http_exception(e, "remove admin") from e
