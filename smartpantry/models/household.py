from datetime import datetime
from enum import Enum
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import List, Optional, TYPE_CHECKING
from smartpantry.models.base import BaseModel
from smartpantry.models.associations import HouseholdMember

if TYPE_CHECKING:
    from smartpantry.models.invite import InviteGrant


class HouseholdType(str, Enum):
    PERSONAL = "personal"
    CUSTOM = "custom"


class Household(BaseModel):
    """
    Household model grouping user identities that share one pantry.

    Membership is stored in the ``household_members`` association table,
    keyed by (household_id, uid).
    """

    __tablename__ = "households"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_uid: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=HouseholdType.CUSTOM.value
    )

    # Permanent invite code, minted lazily and never changed afterwards
    invite_code: Mapped[Optional[str]] = mapped_column(
        String(20), unique=True, index=True, nullable=True, default=None
    )
    invite_code_created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    # Relationships
    memberships: Mapped[List[HouseholdMember]] = relationship(
        HouseholdMember,
        primaryjoin="Household.id == HouseholdMember.household_id",
        foreign_keys="HouseholdMember.household_id",
        order_by="HouseholdMember.joined_at",
        viewonly=True,
        lazy="selectin",
    )

    invites: Mapped[List["InviteGrant"]] = relationship(
        "InviteGrant",
        back_populates="household",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def members(self) -> List[str]:
        """Member uids in join order."""
        return [m.uid for m in self.memberships]
