"""Community API request/response schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gather.core.enums import CommunityType


# Request Models
class CreateCommunityRequest(BaseModel):
    """Request model for creating a new community."""

    name: str = Field(..., min_length=1, max_length=255, description="Community name")
    type: CommunityType = Field(
        CommunityType.PUBLIC, description="Visibility: 'public' or 'private'"
    )
    description: Optional[str] = Field(None, description="Community description")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Reject names that are only whitespace."""
        if not v.strip():
            raise ValueError("Community name cannot be empty")
        return v.strip()


class UpdateCommunityTypeRequest(BaseModel):
    """Request model for changing community visibility."""

    type: CommunityType = Field(..., description="New visibility")


class AddAdminRequest(BaseModel):
    """Request model for granting admin rights."""

    user_id: str = Field(..., min_length=1, description="User to make an admin")


# Response Models
class CommunityResponse(BaseModel):
    """Community information in API responses."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    name: str
    description: Optional[str] = None
    type: CommunityType
    creator_id: str
    admins: List[str]
    member_count: int
    created_at: datetime


class CommunityListResponse(BaseModel):
    """Response model for listing the caller's communities."""

    communities: List[CommunityResponse] = Field(..., description="Communities")
    total: int = Field(..., description="Total number of communities")


class MembershipStatusResponse(BaseModel):
    """The caller's membership in a community."""

    community_id: str
    user_id: str
    is_member: bool
    is_admin: bool
    role: Optional[str] = None
    joined_at: Optional[datetime] = None


class JoinCommunityResponse(BaseModel):
    """Outcome of a join attempt."""

    success: bool
    status: str = Field(
        ..., description="'joined', 'already_member' or 'approval_required'"
    )


# Success Models
class SuccessResponse(BaseModel):
    """Standard success response format."""

    message: str = Field(..., description="Success message")
    data: Optional[dict] = Field(None, description="Additional response data")


class CommunityCreatedResponse(SuccessResponse):
    """Response for successful community creation."""

    data: CommunityResponse = Field(..., description="Created community information")
