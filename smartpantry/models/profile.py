from sqlalchemy import String, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column
from typing import List, Optional
from smartpantry.models.base import BaseModel


class Profile(BaseModel):
    """Per-identity dietary profile, optionally linked to a household."""

    __tablename__ = "profiles"

    uid: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, default=None)

    # Not a foreign key: linking never verifies the household
    household_id: Mapped[Optional[int]] = mapped_column(
        Integer, index=True, nullable=True, default=None
    )

    # Preferences
    allergies: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    intolerances: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    preferred_foods: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    disliked_foods: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
