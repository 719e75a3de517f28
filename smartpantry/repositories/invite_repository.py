from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import select, update
from typing import List, Optional
from smartpantry.models.invite import InviteGrant
from smartpantry.repositories.repository import BaseRepository


class InviteRepository(BaseRepository[InviteGrant]):
    """Repository for one-time invite grants."""

    def __init__(self, db: Session):
        super().__init__(InviteGrant, db)

    def get_active_by_code(self, code: str, now: datetime) -> Optional[InviteGrant]:
        """Find an unused, unexpired grant by code."""
        stmt = (
            select(InviteGrant)
            .where(
                InviteGrant.code == code,
                InviteGrant.used.is_(False),
                InviteGrant.expires_at > now,
            )
            .order_by(InviteGrant.id.desc())
        )
        return self.db.execute(stmt).scalars().first()

    def code_in_use(self, code: str) -> bool:
        """Check whether any unused grant carries this code."""
        stmt = select(InviteGrant.id).where(
            InviteGrant.code == code, InviteGrant.used.is_(False)
        )
        return self.db.execute(stmt).first() is not None

    def mark_used(self, grant_id: int, uid: str, now: datetime) -> bool:
        """
        Consume a grant.

        The update only matches while the grant is still unused and unexpired,
        so exactly one caller can flip it.

        Returns:
            True if this call consumed the grant
        """
        stmt = (
            update(InviteGrant)
            .where(
                InviteGrant.id == grant_id,
                InviteGrant.used.is_(False),
                InviteGrant.expires_at > now,
            )
            .values(used=True, used_by=uid, used_at=now)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.flush()
        return result.rowcount == 1

    def list_for_household(self, household_id: int) -> List[InviteGrant]:
        """All grants of a household, newest first."""
        stmt = (
            select(InviteGrant)
            .where(InviteGrant.household_id == household_id)
            .order_by(InviteGrant.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())
