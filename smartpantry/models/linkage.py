from sqlalchemy import String, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from smartpantry.models.base import BaseModel


class LinkageRecord(BaseModel):
    """
    Secondary index from identity to household.

    Written whenever a uid is admitted to a household, independently of the
    member's profile, so the roster survives a profile that lags behind.
    """

    __tablename__ = "household_linkages"

    uid: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    household_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("uid", "household_id", name="uq_linkage_uid_household"),
    )
