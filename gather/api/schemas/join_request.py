"""Join request API request/response schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from gather.core.enums import JoinRequestAction, JoinRequestStatus
from gather.repositories.join_request_repo import MAX_JOIN_REQUEST_MESSAGE_LENGTH


# Request Models
class SubmitJoinRequest(BaseModel):
    """Request model for asking to join a private community."""

    message: str = Field(
        "",
        max_length=MAX_JOIN_REQUEST_MESSAGE_LENGTH,
        description="Optional note to the admins",
    )


class RespondToJoinRequest(BaseModel):
    """Request model for an admin decision."""

    action: JoinRequestAction = Field(..., description="'approved' or 'rejected'")


# Response Models
class UserProfileResponse(BaseModel):
    """Requester profile shown to admins."""

    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None


class JoinRequestResponse(BaseModel):
    """Join request information in API responses."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    community_id: str
    user_id: str
    status: JoinRequestStatus
    message: str
    requested_at: datetime
    responded_at: Optional[datetime] = None
    responded_by: Optional[str] = None


class PendingJoinRequestResponse(JoinRequestResponse):
    """Pending request with the requester's profile, when available."""

    user_profile: Optional[UserProfileResponse] = None


class PendingJoinRequestListResponse(BaseModel):
    """Response model for an admin's pending queue."""

    requests: List[PendingJoinRequestResponse] = Field(
        ..., description="Pending requests, newest first"
    )
    total: int = Field(..., description="Total number of pending requests")


class JoinDecisionResponse(BaseModel):
    """Summary of an admin decision."""

    success: bool
    action: str
    community_name: str
    user_name: str
