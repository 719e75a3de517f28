from sqlalchemy.orm import Session
from sqlalchemy import select, delete
from typing import List, Optional, Tuple
from smartpantry.models.linkage import LinkageRecord
from smartpantry.repositories.repository import BaseRepository


class LinkageRepository(BaseRepository[LinkageRecord]):
    """Repository for the uid -> household linkage index."""

    def __init__(self, db: Session):
        super().__init__(LinkageRecord, db)

    def find(self, uid: str, household_id: int) -> Optional[LinkageRecord]:
        stmt = select(LinkageRecord).where(
            LinkageRecord.uid == uid, LinkageRecord.household_id == household_id
        )
        return self.db.execute(stmt).scalars().first()

    def ensure(self, uid: str, household_id: int) -> Tuple[LinkageRecord, bool]:
        """
        Get or create the linkage for (uid, household_id).

        Returns:
            (record, created)
        """
        existing = self.find(uid, household_id)
        if existing:
            return existing, False
        record = self.create(LinkageRecord(uid=uid, household_id=household_id))
        return record, True

    def get_linked_uids(self, household_id: int) -> List[str]:
        stmt = select(LinkageRecord.uid).where(LinkageRecord.household_id == household_id)
        return list(self.db.execute(stmt).scalars().all())

    def remove(self, uid: str, household_id: int) -> bool:
        stmt = delete(LinkageRecord).where(
            LinkageRecord.uid == uid, LinkageRecord.household_id == household_id
        )
        result = self.db.execute(stmt)
        self.db.flush()
        return result.rowcount > 0
