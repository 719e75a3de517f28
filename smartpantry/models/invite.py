from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import Optional, TYPE_CHECKING
from smartpantry.models.base import BaseModel

if TYPE_CHECKING:
    from smartpantry.models.household import Household


class InviteGrant(BaseModel):
    """
    Legacy one-time invite code.

    ``used`` flips from False to True exactly once, together with
    ``used_by`` and ``used_at``.
    """

    __tablename__ = "invite_grants"

    household_id: Mapped[int] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False
    )
    code: Mapped[str] = mapped_column(String(20), index=True, nullable=False)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)

    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    used_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, default=None)
    used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    household: Mapped["Household"] = relationship("Household", back_populates="invites")
