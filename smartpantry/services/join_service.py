import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional

from smartpantry.models.household import Household
from smartpantry.models.profile import Profile
from smartpantry.repositories.household_repository import HouseholdRepository
from smartpantry.repositories.linkage_repository import LinkageRepository
from smartpantry.schemas.household import JoinResponse
from smartpantry.schemas.profile import ProfileCreate, ProfileResponse
from smartpantry.services.household_service import HouseholdService
from smartpantry.services.invite_service import InviteService
from smartpantry.services.profile_service import ProfileService
from smartpantry.core.transaction import transaction
from smartpantry.core.exception import AlreadyMemberException, StoreException

logger = logging.getLogger(__name__)


class JoinService:
    """
    Entry points that admit a uid to a household.

    Accepting a code is a sequence of steps (ensure the joiner's personal
    household, validate/consume the code, add the member, record the linkage,
    link the profile). They all run in one transaction: either every step
    lands or none does, including the consumption of a one-time grant. Each
    step is also idempotent, so retrying a failed accept from the top is safe.
    """

    def __init__(self, db: Session):
        self.db = db
        self.household_repo = HouseholdRepository(db)
        self.linkage_repo = LinkageRepository(db)
        self.household_service = HouseholdService(db)
        self.invite_service = InviteService(db)
        self.profile_service = ProfileService(db)

    def create_household(self, name: str, uid: str) -> Household:
        """
        Create a custom household with ``uid`` as owner and sole member.

        The caller's personal household is ensured in the same transaction.
        """
        with transaction(self.db, "create household"):
            self._ensure_fallback_household(uid)
            household = self.household_service.create_household(name, uid)
        return household

    def sign_up(self, uid: str, email: Optional[str], data: ProfileCreate) -> Profile:
        """
        Create a profile and, unless it names a household, the personal
        household it lives in. Both land in one transaction.
        """
        with transaction(self.db, "sign up"):
            profile = self.profile_service.create_profile(uid, email, data)
            if profile.household_id is None:
                self.household_service.ensure_personal_household(uid)

        return self.profile_service.get_profile(profile.id)

    def accept_code(self, code: str, uid: str) -> JoinResponse:
        """
        Join the household an invite code resolves to.

        Raises:
            InvalidInviteCodeException: Unknown, used or expired code
            AlreadyMemberException: uid already belongs to the household
            StoreException: The store failed; nothing was committed
        """
        match = None
        try:
            with transaction(self.db, "accept invite code"):
                self._ensure_fallback_household(uid)
                match = self.invite_service.validate_and_consume(code, uid)
                household_id = match.household_id

                self._admit_member(household_id, uid)
                self._record_linkage(household_id, uid)
                profile = self._link_profile(household_id, uid)
        except IntegrityError:
            # A concurrent accept by the same uid won the membership insert
            if match and self.household_repo.is_member(match.household_id, uid):
                raise AlreadyMemberException()
            raise StoreException()

        logger.info(
            "uid %s joined household %s via %s code",
            uid, household_id, "one-time" if match.grant_id else "permanent",
        )
        new_member = ProfileResponse.model_validate(profile) if profile else None
        return JoinResponse(household_id=household_id, new_member=new_member)

    def _ensure_fallback_household(self, uid: str) -> None:
        self.household_service.ensure_personal_household(uid)

    def _admit_member(self, household_id: int, uid: str) -> None:
        if not self.household_repo.add_member(household_id, uid):
            logger.debug("uid %s already in household %s", uid, household_id)

    def _record_linkage(self, household_id: int, uid: str) -> None:
        self.linkage_repo.ensure(uid, household_id)

    def _link_profile(self, household_id: int, uid: str) -> Optional[Profile]:
        return self.profile_service.link_uid_to_household(uid, household_id)
