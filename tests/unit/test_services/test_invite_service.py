import re
import pytest
from datetime import timedelta
from sqlalchemy import update
from sqlalchemy.orm import Session

from smartpantry.core.exception import (
    AlreadyMemberException,
    InvalidInviteCodeException,
    ResourceNotFoundException,
)
from smartpantry.models import InviteGrant
from smartpantry.services import invite_service as invite_module
from smartpantry.services.household_service import HouseholdService
from smartpantry.services.invite_service import InviteService
from smartpantry.utils.time import as_utc, utcnow


def fixed_codes(monkeypatch, *codes):
    """Make generate_code hand out the given codes in order."""
    remaining = iter(codes)
    monkeypatch.setattr(invite_module, "generate_code", lambda length=None: next(remaining))


@pytest.mark.unit
class TestPermanentCode:
    """get_or_create_code"""

    def test_code_shape(self, db_session: Session, household):
        code = InviteService(db_session).get_or_create_code(household.id)

        assert re.fullmatch(r"[A-Z0-9]{6}", code)

    def test_code_is_idempotent(self, db_session: Session, household):
        service = InviteService(db_session)

        first = service.get_or_create_code(household.id)
        second = service.get_or_create_code(household.id)

        assert first == second
        db_session.refresh(household)
        assert household.invite_code == first
        assert household.invite_code_created_at is not None

    def test_code_never_regenerated(self, db_session: Session, household, monkeypatch):
        service = InviteService(db_session)
        first = service.get_or_create_code(household.id)

        fixed_codes(monkeypatch, "ZZZZZZ")

        assert service.get_or_create_code(household.id) == first

    def test_unknown_household(self, db_session: Session):
        with pytest.raises(ResourceNotFoundException):
            InviteService(db_session).get_or_create_code(404)

    def test_codes_are_globally_unique(self, db_session: Session, monkeypatch):
        households = HouseholdService(db_session)
        first = households.create_household("One", "A")
        second = households.create_household("Two", "B")
        service = InviteService(db_session)

        fixed_codes(monkeypatch, "AAAAAA", "AAAAAA", "BBBBBB")

        assert service.get_or_create_code(first.id) == "AAAAAA"
        assert service.get_or_create_code(second.id) == "BBBBBB"

    def test_permanent_code_is_not_consumed(self, db_session: Session, household, invite_code):
        service = InviteService(db_session)

        assert service.validate_and_consume(invite_code, "B").household_id == household.id
        # Nothing was written, so a different joiner can use it too
        match = service.validate_and_consume(invite_code, "C")
        assert match.household_id == household.id
        assert match.grant_id is None

    def test_permanent_code_existing_member(self, db_session: Session, household, invite_code):
        with pytest.raises(AlreadyMemberException):
            InviteService(db_session).validate_and_consume(invite_code, "A")

    def test_code_is_normalized(self, db_session: Session, household, invite_code):
        match = InviteService(db_session).validate_and_consume(f"  {invite_code.lower()} ", "B")

        assert match.household_id == household.id


@pytest.mark.unit
class TestOneTimeCode:
    """generate_one_time_code / validate_and_consume on grants"""

    def test_generate_one_time_code(self, db_session: Session, household, monkeypatch):
        fixed_codes(monkeypatch, "X7K2QP")

        grant = InviteService(db_session).generate_one_time_code(household.id, "A")

        assert grant.code == "X7K2QP"
        assert grant.used is False
        assert grant.used_by is None
        assert grant.created_by == "A"
        ttl = as_utc(grant.expires_at) - utcnow()
        assert timedelta(days=7) - timedelta(minutes=1) < ttl <= timedelta(days=7)

    def test_generate_for_unknown_household(self, db_session: Session):
        with pytest.raises(ResourceNotFoundException):
            InviteService(db_session).generate_one_time_code(404, "A")

    def test_consumed_exactly_once(self, db_session: Session, household, monkeypatch):
        fixed_codes(monkeypatch, "X7K2QP")
        service = InviteService(db_session)
        grant = service.generate_one_time_code(household.id, "A")

        match = service.validate_and_consume("X7K2QP", "B")

        assert match.household_id == household.id
        assert match.grant_id == grant.id
        db_session.refresh(grant)
        assert grant.used is True
        assert grant.used_by == "B"
        assert grant.used_at is not None

        for uid in ("B", "C"):
            with pytest.raises(InvalidInviteCodeException):
                service.validate_and_consume("X7K2QP", uid)

        db_session.refresh(grant)
        assert grant.used_by == "B"

    def test_expired_grant_is_rejected(self, db_session: Session, household):
        service = InviteService(db_session)
        grant = service.generate_one_time_code(household.id, "A")
        db_session.execute(
            update(InviteGrant)
            .where(InviteGrant.id == grant.id)
            .values(expires_at=utcnow() - timedelta(seconds=1))
        )
        db_session.commit()

        with pytest.raises(InvalidInviteCodeException):
            service.validate_and_consume(grant.code, "B")

        db_session.refresh(grant)
        assert grant.used is False

    def test_grant_for_existing_member(self, db_session: Session, household):
        service = InviteService(db_session)
        grant = service.generate_one_time_code(household.id, "A")

        with pytest.raises(AlreadyMemberException):
            service.validate_and_consume(grant.code, "A")

        db_session.refresh(grant)
        assert grant.used is False

    def test_unknown_code(self, db_session: Session, household, invite_code):
        with pytest.raises(InvalidInviteCodeException) as exc_info:
            InviteService(db_session).validate_and_consume("NOPE00", "B")

        assert "Invalid or expired code" in str(exc_info.value)

    def test_list_invites(self, db_session: Session, household):
        service = InviteService(db_session)
        older = service.generate_one_time_code(household.id, "A")
        newer = service.generate_one_time_code(household.id, "A")

        invites = service.list_invites(household.id)

        assert [i.id for i in invites] == [newer.id, older.id]
