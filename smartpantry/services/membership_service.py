import logging
from sqlalchemy.orm import Session
from typing import Dict, Iterator, List, Sequence

from smartpantry.config import settings
from smartpantry.models.profile import Profile
from smartpantry.repositories.household_repository import HouseholdRepository
from smartpantry.repositories.linkage_repository import LinkageRepository
from smartpantry.repositories.profile_repository import ProfileRepository
from smartpantry.schemas.household import (
    HouseholdMemberResponse,
    ReconcileReport,
    RosterResponse,
)
from smartpantry.schemas.profile import ProfileResponse
from smartpantry.core.transaction import transaction
from smartpantry.core.exception import ResourceNotFoundException
from smartpantry.utils.text import normalize_tokens

logger = logging.getLogger(__name__)


def chunked(values: Sequence[str], size: int) -> Iterator[List[str]]:
    for start in range(0, len(values), size):
        yield list(values[start:start + size])


class MembershipService:
    """
    Roster reads and drift repair.

    The member set on the household is the source of truth. Profiles and
    linkage records are written after it and may lag, so every read here
    starts from the member set and fills in what the other records miss.
    """

    def __init__(self, db: Session):
        self.db = db
        self.household_repo = HouseholdRepository(db)
        self.linkage_repo = LinkageRepository(db)
        self.profile_repo = ProfileRepository(db)

    def _member_uids(self, household_id: int) -> List[str]:
        if not self.household_repo.exists(household_id):
            raise ResourceNotFoundException("Household", household_id)
        return self.household_repo.get_member_uids(household_id)

    def get_household_members(self, household_id: int) -> List[HouseholdMemberResponse]:
        """
        One entry per member uid, whether or not its profile or linkage
        record has caught up yet.
        """
        uids = self._member_uids(household_id)
        linked = set(self.linkage_repo.get_linked_uids(household_id))
        return [
            HouseholdMemberResponse(uid=uid, household_id=household_id, linked=uid in linked)
            for uid in uids
        ]

    def load_profiles(self, household_id: int) -> List[Profile]:
        """
        Profiles of a household.

        Starts with profiles that point at the household themselves, then
        fetches the members they miss by uid, at most STORE_IN_QUERY_LIMIT
        uids per query. Each profile appears once.
        """
        uids = self._member_uids(household_id)

        profiles: Dict[int, Profile] = {
            p.id: p for p in self.profile_repo.get_by_household(household_id)
        }

        found = {p.uid for p in profiles.values()}
        missing = [uid for uid in uids if uid not in found]
        if missing:
            logger.debug(
                "Household %s: %s member profile(s) not linked yet", household_id, len(missing)
            )

        for batch in chunked(missing, settings.STORE_IN_QUERY_LIMIT):
            for profile in self.profile_repo.get_by_uids(batch):
                profiles.setdefault(profile.id, profile)

        return list(profiles.values())

    def get_roster(self, household_id: int) -> RosterResponse:
        """Household profiles plus the merged allergies and intolerances."""
        profiles = self.load_profiles(household_id)
        return RosterResponse(
            household_id=household_id,
            profiles=[ProfileResponse.model_validate(p) for p in profiles],
            allergies=normalize_tokens(a for p in profiles for a in p.allergies),
            intolerances=normalize_tokens(i for p in profiles for i in p.intolerances),
        )

    def reconcile(self, household_id: int) -> ReconcileReport:
        """
        Repair drift for every member of a household.

        Creates missing linkage records and links member profiles that have no
        household yet. Profiles already pointing at another household are left
        alone; a uid may belong to several households.
        """
        uids = self._member_uids(household_id)
        report = ReconcileReport(household_id=household_id)

        with transaction(self.db, "reconcile household"):
            for uid in uids:
                _, created = self.linkage_repo.ensure(uid, household_id)
                if created:
                    report.linkages_created.append(uid)

            for batch in chunked(uids, settings.STORE_IN_QUERY_LIMIT):
                for profile in self.profile_repo.get_by_uids(batch):
                    if profile.household_id is None:
                        self.profile_repo.set_household(profile.id, household_id)
                        report.profiles_linked.append(profile.uid)

        if report.linkages_created or report.profiles_linked:
            logger.info(
                "Reconciled household %s: %s linkage(s) created, %s profile(s) linked",
                household_id, len(report.linkages_created), len(report.profiles_linked),
            )
        return report
