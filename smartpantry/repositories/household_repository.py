from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import select, and_, insert, delete, update, func
from typing import List, Optional
from smartpantry.models.household import Household, HouseholdType
from smartpantry.models.associations import household_members
from smartpantry.repositories.repository import BaseRepository


class HouseholdRepository(BaseRepository[Household]):
    """Repository for household records and their member set."""

    def __init__(self, db: Session):
        super().__init__(Household, db)

    def get_by_invite_code(self, code: str) -> Optional[Household]:
        """Find household by permanent invite code."""
        return self.db.query(Household).filter(Household.invite_code == code).first()

    def get_personal_household(self, uid: str) -> Optional[Household]:
        """Find a personal household owned by a uid that still counts it as a member."""
        stmt = (
            select(Household)
            .join(household_members, household_members.c.household_id == Household.id)
            .where(
                Household.owner_uid == uid,
                Household.type == HouseholdType.PERSONAL.value,
                household_members.c.uid == uid,
            )
            .order_by(Household.id)
        )
        return self.db.execute(stmt).scalars().first()

    def get_user_households(self, uid: str) -> List[Household]:
        """Get all households a uid belongs to."""
        stmt = (
            select(Household)
            .join(household_members, household_members.c.household_id == Household.id)
            .where(household_members.c.uid == uid)
            .order_by(Household.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def add_member(self, household_id: int, uid: str, role: str = "member") -> bool:
        """
        Add a uid to a household's member set.

        The insert touches only the (household_id, uid) row, so concurrent
        additions of different uids never overwrite each other. A concurrent
        duplicate is rejected by the primary key.

        Returns:
            True if added, False if already a member
        """
        if self.is_member(household_id, uid):
            return False

        stmt = insert(household_members).values(
            household_id=household_id,
            uid=uid,
            role=role
        )
        self.db.execute(stmt)
        self.db.flush()
        return True

    def lock(self, household_id: int) -> None:
        """Take a row lock on the household where the backend supports it."""
        stmt = select(Household.id).where(Household.id == household_id).with_for_update()
        self.db.execute(stmt)

    def remove_member(self, household_id: int, uid: str) -> bool:
        """
        Remove a uid from a household unless it is the last member.

        The member count is part of the DELETE itself, so two members removing
        each other at the same time can not leave the household empty.

        Returns:
            True if removed, False if not a member or the last one
        """
        others = household_members.alias("others")
        remaining = (
            select(func.count())
            .select_from(others)
            .where(others.c.household_id == household_id)
            .scalar_subquery()
        )
        stmt = delete(household_members).where(
            and_(
                household_members.c.household_id == household_id,
                household_members.c.uid == uid,
                remaining > 1,
            )
        )
        result = self.db.execute(stmt)
        self.db.flush()
        return result.rowcount > 0

    def get_member_uids(self, household_id: int) -> List[str]:
        """Member uids in join order."""
        stmt = (
            select(household_members.c.uid)
            .where(household_members.c.household_id == household_id)
            .order_by(household_members.c.joined_at, household_members.c.uid)
        )
        return list(self.db.execute(stmt).scalars().all())

    def is_member(self, household_id: int, uid: str) -> bool:
        """Check if a uid is a member of a household."""
        stmt = select(household_members.c.uid).where(
            and_(
                household_members.c.household_id == household_id,
                household_members.c.uid == uid
            )
        )
        return self.db.execute(stmt).first() is not None

    def get_member_count(self, household_id: int) -> int:
        """Get the number of members in a household."""
        stmt = select(func.count()).select_from(household_members).where(
            household_members.c.household_id == household_id
        )
        return self.db.execute(stmt).scalar_one()

    def set_invite_code_if_absent(
        self, household_id: int, code: str, created_at: datetime
    ) -> bool:
        """
        Store a permanent invite code unless one is already set.

        The IS NULL guard makes the write conditional, so of several racing
        callers only the first one wins.

        Returns:
            True if this call stored the code
        """
        stmt = (
            update(Household)
            .where(Household.id == household_id, Household.invite_code.is_(None))
            .values(invite_code=code, invite_code_created_at=created_at)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.flush()
        return result.rowcount == 1

    def get_invite_code(self, household_id: int) -> Optional[str]:
        """Read the stored permanent code straight from the table."""
        stmt = select(Household.invite_code).where(Household.id == household_id)
        return self.db.execute(stmt).scalar_one_or_none()
