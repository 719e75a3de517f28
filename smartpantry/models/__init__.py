from smartpantry.models.base import Base, BaseModel
from smartpantry.models.associations import household_members, HouseholdMember
from smartpantry.models.household import Household, HouseholdType
from smartpantry.models.invite import InviteGrant
from smartpantry.models.profile import Profile
from smartpantry.models.linkage import LinkageRecord

__all__ = [
    # Base
    "Base",
    "BaseModel",
    # Household
    "Household",
    "HouseholdType",
    "household_members",
    "HouseholdMember",
    # Invites
    "InviteGrant",
    # Profiles
    "Profile",
    "LinkageRecord",
]
