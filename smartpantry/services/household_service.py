import logging
from sqlalchemy.orm import Session
from typing import List, Optional

from smartpantry.config import settings
from smartpantry.models.household import Household, HouseholdType
from smartpantry.repositories.household_repository import HouseholdRepository
from smartpantry.repositories.linkage_repository import LinkageRepository
from smartpantry.services.profile_service import ProfileService
from smartpantry.core.transaction import transaction
from smartpantry.core.exception import (
    ResourceNotFoundException,
    BadRequestException,
    AuthorizationException,
)

logger = logging.getLogger(__name__)


class HouseholdService:
    """Service layer for household records and membership."""

    def __init__(self, db: Session):
        self.db = db
        self.household_repo = HouseholdRepository(db)
        self.linkage_repo = LinkageRepository(db)
        self.profile_service = ProfileService(db)

    def create_household(
        self,
        name: str,
        owner_uid: str,
        household_type: HouseholdType = HouseholdType.CUSTOM,
        profile_id: Optional[int] = None,
    ) -> Household:
        """
        Create a household owned by ``owner_uid``.

        The household row, the owner's membership, the owner's linkage record
        and the owner's profile link are written in one transaction, so a
        failure can not leave a household without its reverse link.

        Args:
            name: Household name
            owner_uid: Identity creating the household
            household_type: personal or custom
            profile_id: Profile to link; looked up by uid when omitted

        Returns:
            Created household (no invite code yet)
        """
        with transaction(self.db, "create household"):
            household = self.household_repo.create(
                Household(
                    name=name,
                    owner_uid=owner_uid,
                    type=household_type.value,
                )
            )
            self.household_repo.add_member(household.id, owner_uid, role="owner")
            self.linkage_repo.ensure(owner_uid, household.id)
            self.profile_service.link_uid_to_household(owner_uid, household.id, profile_id)

        logger.info(
            "Created %s household %s for uid %s", household.type, household.id, owner_uid
        )
        return household

    def ensure_personal_household(
        self, uid: str, exclude_household_id: Optional[int] = None
    ) -> Household:
        """
        Return the uid's personal household, creating it if none exists.

        ``exclude_household_id`` skips a household the uid is in the middle of
        leaving.
        """
        household = self.household_repo.get_personal_household(uid)
        if household and household.id != exclude_household_id:
            return household

        return self.create_household(
            settings.PERSONAL_HOUSEHOLD_NAME, uid, HouseholdType.PERSONAL
        )

    def get_household(self, household_id: int) -> Household:
        """
        Get a household.

        Raises:
            ResourceNotFoundException: If household not found
        """
        household = self.household_repo.get(household_id)
        if not household:
            raise ResourceNotFoundException("Household", household_id)
        return household

    def require_member(self, household_id: int, uid: str) -> Household:
        """
        Get a household on behalf of one of its members.

        Raises:
            ResourceNotFoundException: If household not found
            AuthorizationException: If uid is not a member
        """
        household = self.get_household(household_id)
        if not self.household_repo.is_member(household_id, uid):
            raise AuthorizationException("Not a member of this household")
        return household

    def get_user_households(self, uid: str) -> List[Household]:
        """Get all households a uid belongs to."""
        return self.household_repo.get_user_households(uid)

    def add_member(self, household_id: int, uid: str) -> bool:
        """
        Add a uid to the member set if absent.

        Returns:
            True if added, False if it was already a member
        """
        with transaction(self.db, "add member"):
            added = self.household_repo.add_member(household_id, uid)

        if added:
            logger.info("Added uid %s to household %s", uid, household_id)
        return added

    def remove_member(self, household_id: int, requester_uid: str, member_uid: str) -> dict:
        """
        Remove a member from a household.

        The removed uid falls back to its personal household, which is created
        if needed, and its profile is re-linked there.

        Args:
            household_id: Household ID
            requester_uid: Member performing the removal
            member_uid: Member to remove

        Returns:
            Dict with status message and the personal household id

        Raises:
            AuthorizationException: If requester is not a member
            BadRequestException: If target is not a member or is the only member
            ResourceNotFoundException: If household not found
        """
        self.require_member(household_id, requester_uid)

        if not self.household_repo.is_member(household_id, member_uid):
            raise BadRequestException("User is not a member of this household")

        if self.household_repo.get_member_count(household_id) <= 1:
            raise BadRequestException("You may not leave your only household")

        with transaction(self.db, "remove member"):
            self.household_repo.lock(household_id)
            # Re-checked by the write; a concurrent removal may have landed
            if not self.household_repo.remove_member(household_id, member_uid):
                if not self.household_repo.is_member(household_id, member_uid):
                    raise BadRequestException("User is not a member of this household")
                raise BadRequestException("You may not leave your only household")
            self.linkage_repo.remove(member_uid, household_id)

            personal = self.ensure_personal_household(
                member_uid, exclude_household_id=household_id
            )
            self.linkage_repo.ensure(member_uid, personal.id)
            self.profile_service.link_uid_to_household(member_uid, personal.id)

        logger.info(
            "uid %s removed uid %s from household %s; fallback household %s",
            requester_uid, member_uid, household_id, personal.id,
        )
        return {"message": "Member removed successfully", "new_household_id": personal.id}
