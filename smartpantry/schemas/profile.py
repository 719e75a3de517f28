from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Union

from smartpantry.utils.text import normalize_tokens

TokenList = Union[List[str], str, None]


class ProfilePreferences(BaseModel):
    """Dietary fields shared by create and update payloads."""
    name: Optional[str] = Field(None, max_length=100)
    allergies: TokenList = None
    intolerances: TokenList = None
    preferred_foods: TokenList = None
    disliked_foods: TokenList = None

    @field_validator(
        "allergies", "intolerances", "preferred_foods", "disliked_foods"
    )
    @classmethod
    def normalize_list(cls, v: TokenList) -> Optional[List[str]]:
        # None means "not provided" so partial updates leave the field alone
        if v is None:
            return None
        return normalize_tokens(v)


class ProfileCreate(ProfilePreferences):
    email: Optional[EmailStr] = None
    household_id: Optional[int] = None


class ProfileUpdate(ProfilePreferences):
    pass


class ProfileResponse(BaseModel):
    id: int
    uid: str
    email: str
    name: Optional[str]
    household_id: Optional[int]
    allergies: List[str]
    intolerances: List[str]
    preferred_foods: List[str]
    disliked_foods: List[str]

    class Config:
        from_attributes = True
