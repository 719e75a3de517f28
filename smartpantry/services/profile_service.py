import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional

from smartpantry.models.profile import Profile
from smartpantry.repositories.profile_repository import ProfileRepository
from smartpantry.schemas.profile import ProfileCreate, ProfileUpdate
from smartpantry.core.transaction import transaction
from smartpantry.core.exception import (
    ResourceNotFoundException,
    DuplicateResourceException,
    ValidationException,
)

logger = logging.getLogger(__name__)


class ProfileService:
    """Service layer for profiles and their household link."""

    def __init__(self, db: Session):
        self.db = db
        self.profile_repo = ProfileRepository(db)

    def get_profile(self, profile_id: int) -> Profile:
        profile = self.profile_repo.get(profile_id)
        if not profile:
            raise ResourceNotFoundException("Profile", profile_id)
        return profile

    def get_profile_by_uid(self, uid: str) -> Profile:
        profile = self.profile_repo.get_by_uid(uid)
        if not profile:
            raise ResourceNotFoundException("Profile for user", uid)
        return profile

    def create_profile(self, uid: str, email: Optional[str], data: ProfileCreate) -> Profile:
        """
        Create the profile of an identity.

        household_id stays None unless the payload provides one.

        Raises:
            DuplicateResourceException: If the uid already has a profile
            ValidationException: If no email is known for the identity
        """
        email = data.email or email
        if not email:
            raise ValidationException("An email address is required", field="email")

        if self.profile_repo.uid_exists(uid):
            raise DuplicateResourceException("Profile", uid)

        profile = Profile(
            uid=uid,
            email=email,
            name=data.name,
            household_id=data.household_id,
            allergies=data.allergies or [],
            intolerances=data.intolerances or [],
            preferred_foods=data.preferred_foods or [],
            disliked_foods=data.disliked_foods or [],
        )

        try:
            with transaction(self.db, "create profile"):
                profile = self.profile_repo.create(profile)
        except IntegrityError:
            # Lost a race with another signup for the same uid
            raise DuplicateResourceException("Profile", uid)

        logger.info("Created profile %s for uid %s", profile.id, uid)
        return profile

    def update_profile(self, uid: str, data: ProfileUpdate) -> Profile:
        """Update the caller's dietary fields; only provided fields change."""
        profile = self.get_profile_by_uid(uid)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        with transaction(self.db, "update profile"):
            self.profile_repo.update(profile.id, update_data)

        return self.get_profile(profile.id)

    def link_profile_to_household(self, profile_id: int, household_id: int) -> Profile:
        """
        Point a profile at a household.

        Neither the household nor the membership of the profile's uid is
        checked here. Callers add the membership first and link second.
        """
        with transaction(self.db, "link profile"):
            if not self.profile_repo.set_household(profile_id, household_id):
                raise ResourceNotFoundException("Profile", profile_id)

        logger.info("Linked profile %s to household %s", profile_id, household_id)
        return self.get_profile(profile_id)

    def link_uid_to_household(
        self, uid: str, household_id: int, profile_id: Optional[int] = None
    ) -> Optional[Profile]:
        """
        Link the profile of a uid, if one exists yet.

        A uid may be admitted before it has signed up, in which case there is
        nothing to link and the reconciler covers the gap.
        """
        if profile_id is not None:
            return self.link_profile_to_household(profile_id, household_id)

        profile = self.profile_repo.get_by_uid(uid)
        if not profile:
            logger.debug("No profile for uid %s yet; skipping link", uid)
            return None
        return self.link_profile_to_household(profile.id, household_id)
