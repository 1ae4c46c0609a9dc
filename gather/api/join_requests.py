"""Join request API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from gather.api.errors import to_http_exception
from gather.api.schemas.community import SuccessResponse
from gather.api.schemas.join_request import (
    JoinDecisionResponse,
    JoinRequestResponse,
    PendingJoinRequestListResponse,
    PendingJoinRequestResponse,
    RespondToJoinRequest,
    SubmitJoinRequest,
    UserProfileResponse,
)
from gather.core.auth_utils import get_current_user_id
from gather.core.config import settings
from gather.core.exceptions import (
    CommunityNotFoundError,
    JoinRequestNotFoundError,
    PermissionDeniedError,
)
from gather.core.rate_limiter import RateLimiter, get_rate_limiter
from gather.dependencies import get_community_service, get_join_request_service
from gather.models.join_request import JoinRequest
from gather.services.community_service import CommunityService
from gather.services.join_request_service import JoinRequestService, PendingJoinRequest

router = APIRouter(tags=["join-requests"])


def _join_request_to_response(join_request: JoinRequest) -> JoinRequestResponse:
    """Convert JoinRequest model to JoinRequestResponse."""
    return JoinRequestResponse(
        id=join_request.id,
        community_id=join_request.community_id,
        user_id=join_request.user_id,
        status=join_request.status,
        message=join_request.message,
        requested_at=join_request.requested_at,
        responded_at=join_request.responded_at,
        responded_by=join_request.responded_by,
    )


def _pending_to_response(pending: PendingJoinRequest) -> PendingJoinRequestResponse:
    profile = pending.user_profile
    return PendingJoinRequestResponse(
        **_join_request_to_response(pending.request).model_dump(),
        user_profile=(
            UserProfileResponse(
                user_id=profile.user_id, name=profile.name, email=profile.email
            )
            if profile is not None
            else None
        ),
    )


def _require_admin(
    community_service: CommunityService, community_id: str, user_id: str
) -> None:
    if community_service.get_community(community_id) is None:
        raise CommunityNotFoundError()
    if not community_service.is_user_community_admin(community_id, user_id):
        raise PermissionDeniedError("Only community admins can manage join requests")


@router.post(
    "/communities/{community_id}/join-requests",
    response_model=JoinRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_join_request(
    community_id: str,
    request: SubmitJoinRequest,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    join_request_service: Annotated[
        JoinRequestService, Depends(get_join_request_service)
    ],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
):
    """Ask to join a private community."""
    limit = settings.JOIN_REQUEST_RATE_LIMIT_PER_MINUTE
    if not await limiter.check_user_rate_limit(current_user_id, "join_request", limit):
        info = await limiter.get_user_rate_limit_info(
            current_user_id, "join_request", limit
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many join requests. Please try again later.",
            headers={"Retry-After": str(info["reset"])},
        )

    try:
        join_request = join_request_service.submit_join_request(
            community_id, current_user_id, message=request.message
        )
        return _join_request_to_response(join_request)
    except Exception as e:
        raise to_http_exception(e, "submit join request") from e


@router.delete(
    "/communities/{community_id}/join-requests", response_model=SuccessResponse
)
async def cancel_join_request(
    community_id: str,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    join_request_service: Annotated[
        JoinRequestService, Depends(get_join_request_service)
    ],
):
    """Cancel the current user's pending request."""
    try:
        join_request_service.cancel_join_request(community_id, current_user_id)
        return SuccessResponse(message="Join request cancelled", data=None)
    except Exception as e:
        raise to_http_exception(e, "cancel join request") from e


@router.get(
    "/communities/{community_id}/join-requests",
    response_model=PendingJoinRequestListResponse,
)
async def list_pending_join_requests(
    community_id: str,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    join_request_service: Annotated[
        JoinRequestService, Depends(get_join_request_service)
    ],
    community_service: Annotated[CommunityService, Depends(get_community_service)],
):
    """List pending requests for a community (admins only)."""
    try:
        _require_admin(community_service, community_id, current_user_id)
    except Exception as e:
        raise to_http_exception(e, "list join requests") from e

    pending = join_request_service.get_pending_join_requests(community_id)
    responses = [_pending_to_response(p) for p in pending]
    return PendingJoinRequestListResponse(requests=responses, total=len(responses))


@router.get(
    "/communities/{community_id}/join-requests/me",
    response_model=JoinRequestResponse,
)
async def get_my_join_request(
    community_id: str,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    join_request_service: Annotated[
        JoinRequestService, Depends(get_join_request_service)
    ],
):
    """Get the current user's most recent request to a community."""
    join_request = join_request_service.get_user_join_request_status(
        community_id, current_user_id
    )
    if join_request is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No join request found"
        )
    return _join_request_to_response(join_request)


@router.post(
    "/join-requests/{request_id}/respond", response_model=JoinDecisionResponse
)
async def respond_to_join_request(
    request_id: str,
    request: RespondToJoinRequest,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    join_request_service: Annotated[
        JoinRequestService, Depends(get_join_request_service)
    ],
    community_service: Annotated[CommunityService, Depends(get_community_service)],
):
    """Approve or reject a pending request (admins only)."""
    try:
        join_request = join_request_service.join_request_repo.get_join_request_by_id(
            request_id
        )
        if join_request is None:
            raise JoinRequestNotFoundError()
        _require_admin(community_service, join_request.community_id, current_user_id)

        summary = join_request_service.respond_to_join_request(
            request_id, request.action, current_user_id
        )
        return JoinDecisionResponse(
            success=summary.success,
            action=summary.action,
            community_name=summary.community_name,
            user_name=summary.user_name,
        )
    except Exception as e:
        raise to_http_exception(e, "respond to join request") from e
