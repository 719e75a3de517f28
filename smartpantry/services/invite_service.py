import logging
import secrets
import string
from datetime import timedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional

from smartpantry.config import settings
from smartpantry.models.invite import InviteGrant
from smartpantry.repositories.household_repository import HouseholdRepository
from smartpantry.repositories.invite_repository import InviteRepository
from smartpantry.schemas.invite import InviteMatch
from smartpantry.core.transaction import transaction
from smartpantry.core.exception import (
    ResourceNotFoundException,
    InvalidInviteCodeException,
    AlreadyMemberException,
    StoreException,
)
from smartpantry.utils.text import normalize_invite_code
from smartpantry.utils.time import utcnow

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_MINT_ATTEMPTS = 5


def generate_code(length: Optional[int] = None) -> str:
    """Random uppercase alphanumeric code."""
    length = length or settings.INVITE_CODE_LENGTH
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class InviteService:
    """Mints and validates permanent invite codes and one-time grants."""

    def __init__(self, db: Session):
        self.db = db
        self.household_repo = HouseholdRepository(db)
        self.invite_repo = InviteRepository(db)

    def _new_code(self) -> str:
        """
        Generate a code no household or open grant is using.

        Codes are global, so a code always resolves to a single household.
        """
        while True:
            code = generate_code()
            if self.household_repo.get_by_invite_code(code):
                continue
            if self.invite_repo.code_in_use(code):
                continue
            return code

    def get_or_create_code(self, household_id: int) -> str:
        """
        Return the household's permanent invite code, minting it on first use.

        Once stored the code never changes; every call returns the same
        string, including calls racing the one that minted it.

        Raises:
            ResourceNotFoundException: If household not found
        """
        household = self.household_repo.get(household_id)
        if not household:
            raise ResourceNotFoundException("Household", household_id)

        if household.invite_code:
            return household.invite_code

        for attempt in range(1, MAX_MINT_ATTEMPTS + 1):
            code = self._new_code()
            try:
                with transaction(self.db, "mint invite code"):
                    stored = self.household_repo.set_invite_code_if_absent(
                        household_id, code, utcnow()
                    )
            except IntegrityError:
                # Another household claimed the same code in between
                logger.warning(
                    "Invite code collision for household %s (attempt %s)",
                    household_id, attempt,
                )
                continue

            if stored:
                logger.info("Minted invite code for household %s", household_id)
            break
        else:
            raise StoreException("Could not allocate an invite code. Please try again.")

        self.db.expire(household)
        return self.household_repo.get_invite_code(household_id)

    def generate_one_time_code(self, household_id: int, created_by: str) -> InviteGrant:
        """
        Create a legacy one-time grant that expires after INVITE_GRANT_TTL_DAYS.

        Raises:
            ResourceNotFoundException: If household not found
        """
        if not self.household_repo.exists(household_id):
            raise ResourceNotFoundException("Household", household_id)

        now = utcnow()
        with transaction(self.db, "generate one-time code"):
            grant = self.invite_repo.create(
                InviteGrant(
                    household_id=household_id,
                    code=self._new_code(),
                    created_by=created_by,
                    used=False,
                    expires_at=now + timedelta(days=settings.INVITE_GRANT_TTL_DAYS),
                )
            )

        logger.info("uid %s generated a one-time code for household %s", created_by, household_id)
        return grant

    def validate_and_consume(self, code: str, uid: str) -> InviteMatch:
        """
        Resolve an invite code for a joining uid.

        Permanent household codes are checked first and are never consumed.
        Otherwise an unused, unexpired one-time grant is looked up and
        consumed: used/used_by/used_at flip together in one conditional
        update, which only one caller can win.

        Raises:
            InvalidInviteCodeException: Unknown, used or expired code
            AlreadyMemberException: uid already belongs to the household
        """
        code = normalize_invite_code(code)
        if not code:
            raise InvalidInviteCodeException()

        household = self.household_repo.get_by_invite_code(code)
        if household:
            if self.household_repo.is_member(household.id, uid):
                raise AlreadyMemberException()
            return InviteMatch(household_id=household.id)

        now = utcnow()
        grant = self.invite_repo.get_active_by_code(code, now)
        if not grant:
            logger.warning("Rejected invite code for uid %s: no active match", uid)
            raise InvalidInviteCodeException()

        if self.household_repo.is_member(grant.household_id, uid):
            raise AlreadyMemberException()

        with transaction(self.db, "consume one-time code"):
            consumed = self.invite_repo.mark_used(grant.id, uid, now)

        if not consumed:
            logger.warning("Rejected invite code for uid %s: grant %s already consumed", uid, grant.id)
            raise InvalidInviteCodeException()

        logger.info("uid %s consumed grant %s", uid, grant.id)
        return InviteMatch(household_id=grant.household_id, grant_id=grant.id)

    def list_invites(self, household_id: int) -> List[InviteGrant]:
        """All one-time grants of a household, newest first."""
        return self.invite_repo.list_for_household(household_id)
