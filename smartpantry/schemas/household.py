from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from smartpantry.schemas.profile import ProfileResponse


class HouseholdCreate(BaseModel):
    """Schema for creating a new household."""
    name: str = Field(..., min_length=1, max_length=100, description="Household name")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Household name must not be blank")
        return v


class HouseholdJoinRequest(BaseModel):
    """Schema for joining a household via invite code."""
    code: str = Field(..., min_length=1, max_length=20, description="Permanent or one-time invite code")


class HouseholdCreated(BaseModel):
    id: int


class InviteCodeResponse(BaseModel):
    """Schema for invite code response."""
    code: str


class JoinResponse(BaseModel):
    household_id: int
    new_member: Optional[ProfileResponse] = None


class HouseholdMemberResponse(BaseModel):
    """One roster entry per uid in the household's member set."""
    uid: str
    household_id: int
    linked: bool = Field(..., description="Whether a linkage record exists for this uid")


class HouseholdResponse(BaseModel):
    """Schema for household response."""
    id: int
    uuid: str
    name: str
    owner_uid: str
    type: str
    members: List[str]
    invite_code: Optional[str]
    invite_code_created_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class RemoveMemberResponse(BaseModel):
    message: str
    new_household_id: int


class ReconcileReport(BaseModel):
    """What a reconciliation pass repaired."""
    household_id: int
    linkages_created: List[str] = []
    profiles_linked: List[str] = []


class RosterResponse(BaseModel):
    """Merged dietary roster for a household."""
    household_id: int
    profiles: List[ProfileResponse]
    allergies: List[str]
    intolerances: List[str]
