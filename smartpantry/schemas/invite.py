from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime

from smartpantry.utils.time import as_utc


class InviteGrantResponse(BaseModel):
    """Schema for a one-time invite grant."""
    id: int
    household_id: int
    code: str
    created_by: str
    used: bool
    used_by: Optional[str]
    created_at: datetime
    used_at: Optional[datetime]
    expires_at: datetime

    @field_validator("created_at", "used_at", "expires_at")
    @classmethod
    def to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    class Config:
        from_attributes = True


class OneTimeCodeResponse(BaseModel):
    code: str
    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class InviteMatch(BaseModel):
    """Outcome of validating an invite code."""
    household_id: int
    grant_id: Optional[int] = None  # set when a one-time grant was consumed
