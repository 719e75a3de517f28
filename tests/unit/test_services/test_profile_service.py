import pytest
from sqlalchemy.orm import Session

from smartpantry.core.exception import (
    DuplicateResourceException,
    ResourceNotFoundException,
    ValidationException,
)
from smartpantry.schemas.profile import ProfileCreate, ProfileUpdate
from smartpantry.services.profile_service import ProfileService


@pytest.mark.unit
class TestProfileService:
    """Unit tests for ProfileService."""

    def test_create_profile_normalizes_lists(self, db_session: Session):
        data = ProfileCreate(
            name="Sam",
            allergies=" Peanuts ,peanuts, Shellfish",
            preferred_foods=["Rice", "", "rice"],
        )

        profile = ProfileService(db_session).create_profile("A", "a@example.com", data)

        assert profile.uid == "A"
        assert profile.email == "a@example.com"
        assert profile.household_id is None
        assert profile.allergies == ["peanuts", "shellfish"]
        assert profile.preferred_foods == ["rice"]
        assert profile.intolerances == []

    def test_payload_email_wins_over_token_email(self, db_session: Session):
        data = ProfileCreate(email="other@example.com")

        profile = ProfileService(db_session).create_profile("A", "a@example.com", data)

        assert profile.email == "other@example.com"

    def test_create_profile_requires_email(self, db_session: Session):
        with pytest.raises(ValidationException):
            ProfileService(db_session).create_profile("A", None, ProfileCreate())

    def test_create_duplicate_profile(self, db_session: Session, make_profile):
        make_profile("A")

        with pytest.raises(DuplicateResourceException):
            ProfileService(db_session).create_profile("A", "a@example.com", ProfileCreate())

    def test_get_profile_by_uid_not_found(self, db_session: Session):
        with pytest.raises(ResourceNotFoundException):
            ProfileService(db_session).get_profile_by_uid("nobody")

    def test_update_profile_changes_only_provided_fields(self, db_session: Session, make_profile):
        make_profile("A", name="Sam", allergies=["nuts"], intolerances=["lactose"])

        profile = ProfileService(db_session).update_profile(
            "A", ProfileUpdate(allergies="Sesame, NUTS")
        )

        assert profile.name == "Sam"
        assert profile.allergies == ["sesame", "nuts"]
        assert profile.intolerances == ["lactose"]

    def test_update_profile_can_clear_a_list(self, db_session: Session, make_profile):
        make_profile("A", allergies=["nuts"])

        profile = ProfileService(db_session).update_profile("A", ProfileUpdate(allergies=[]))

        assert profile.allergies == []

    def test_link_does_not_verify_household(self, db_session: Session, make_profile):
        """Linking is a plain field write; callers admit the member first."""
        profile = make_profile("A")

        linked = ProfileService(db_session).link_profile_to_household(profile.id, 9999)

        assert linked.household_id == 9999

    def test_link_unknown_profile(self, db_session: Session):
        with pytest.raises(ResourceNotFoundException):
            ProfileService(db_session).link_profile_to_household(404, 1)

    def test_link_uid_without_profile_is_skipped(self, db_session: Session, household):
        assert ProfileService(db_session).link_uid_to_household("ghost", household.id) is None

    def test_link_uid_with_profile(self, db_session: Session, household, make_profile):
        make_profile("B")

        profile = ProfileService(db_session).link_uid_to_household("B", household.id)

        assert profile.household_id == household.id
