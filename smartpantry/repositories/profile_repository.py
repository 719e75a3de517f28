from sqlalchemy.orm import Session
from sqlalchemy import select, update
from typing import List, Optional, Sequence
from smartpantry.models.profile import Profile
from smartpantry.repositories.repository import BaseRepository


class ProfileRepository(BaseRepository[Profile]):
    """Repository for Profile operations."""

    def __init__(self, db: Session):
        super().__init__(Profile, db)

    def get_by_uid(self, uid: str) -> Optional[Profile]:
        """Get profile by identity uid."""
        return self.db.query(Profile).filter(Profile.uid == uid).first()

    def uid_exists(self, uid: str) -> bool:
        """Check if a profile already exists for a uid."""
        return self.db.query(Profile).filter(Profile.uid == uid).count() > 0

    def get_by_household(self, household_id: int) -> List[Profile]:
        """Profiles whose own household_id points at the household."""
        stmt = (
            select(Profile)
            .where(Profile.household_id == household_id)
            .order_by(Profile.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_by_uids(self, uids: Sequence[str]) -> List[Profile]:
        """One "uid in set" query; at most STORE_IN_QUERY_LIMIT uids."""
        return self.get_where_in(Profile.uid, uids)

    def set_household(self, profile_id: int, household_id: Optional[int]) -> bool:
        """
        Single-field update of a profile's household link.

        Returns:
            True if the profile exists
        """
        stmt = (
            update(Profile)
            .where(Profile.id == profile_id)
            .values(household_id=household_id)
        )
        result = self.db.execute(stmt)
        self.db.flush()
        return result.rowcount == 1
