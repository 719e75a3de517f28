import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from smartpantry.core.exception import (
    AuthorizationException,
    BadRequestException,
    InvalidInviteCodeException,
)
from smartpantry.repositories.household_repository import HouseholdRepository
from smartpantry.repositories.linkage_repository import LinkageRepository
from smartpantry.schemas.profile import ProfileCreate
from smartpantry.services.household_service import HouseholdService
from smartpantry.services.invite_service import InviteService
from smartpantry.services.join_service import JoinService
from smartpantry.services.profile_service import ProfileService


def run_together(session_factory, calls):
    """
    Run each call on its own thread and session, released at the same moment.

    Returns a list of (result, exception) pairs in call order.
    """
    barrier = threading.Barrier(len(calls), timeout=10)

    def worker(call):
        session = session_factory()
        try:
            barrier.wait()
            return call(session), None
        except Exception as ex:
            return None, ex
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(worker, calls))


@pytest.fixture
def shared_household(file_session_factory):
    """Household owned by 'A' on the file database, plus its permanent code."""
    session = file_session_factory()
    try:
        household = HouseholdService(session).create_household("Home", "A")
        code = InviteService(session).get_or_create_code(household.id)
        return household.id, code
    finally:
        session.close()


@pytest.mark.concurrency
class TestConcurrentJoins:
    """Several identities hitting the same household at once."""

    def test_concurrent_joins_lose_no_member(self, file_session_factory, shared_household):
        household_id, code = shared_household
        uids = [f"joiner-{i}" for i in range(8)]

        setup = file_session_factory()
        for uid in uids:
            ProfileService(setup).create_profile(uid, f"{uid}@example.com", ProfileCreate())
        setup.close()

        outcomes = run_together(
            file_session_factory,
            [lambda s, uid=uid: JoinService(s).accept_code(code, uid) for uid in uids],
        )

        assert [ex for _, ex in outcomes] == [None] * len(uids)

        check = file_session_factory()
        try:
            members = HouseholdRepository(check).get_member_uids(household_id)
            assert sorted(members) == sorted(["A"] + uids)
            assert sorted(LinkageRepository(check).get_linked_uids(household_id)) == sorted(["A"] + uids)
            for uid in uids:
                assert ProfileService(check).get_profile_by_uid(uid).household_id == household_id
        finally:
            check.close()

    def test_two_joiners_both_land(self, file_session_factory, shared_household):
        household_id, code = shared_household

        outcomes = run_together(
            file_session_factory,
            [
                lambda s: JoinService(s).accept_code(code, "B"),
                lambda s: JoinService(s).accept_code(code, "C"),
            ],
        )

        assert all(ex is None for _, ex in outcomes)
        check = file_session_factory()
        try:
            assert sorted(HouseholdRepository(check).get_member_uids(household_id)) == ["A", "B", "C"]
            linkage = LinkageRepository(check)
            assert linkage.find("B", household_id) is not None
            assert linkage.find("C", household_id) is not None
        finally:
            check.close()

    def test_one_time_grant_has_a_single_winner(self, file_session_factory, shared_household):
        household_id, _ = shared_household
        setup = file_session_factory()
        grant_code = InviteService(setup).generate_one_time_code(household_id, "A").code
        setup.close()

        outcomes = run_together(
            file_session_factory,
            [
                lambda s: JoinService(s).accept_code(grant_code, "B"),
                lambda s: JoinService(s).accept_code(grant_code, "C"),
            ],
        )

        winners = [result for result, ex in outcomes if ex is None]
        losers = [ex for _, ex in outcomes if ex is not None]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], InvalidInviteCodeException)

        check = file_session_factory()
        try:
            # Only the winner was admitted
            assert HouseholdRepository(check).get_member_count(household_id) == 2
        finally:
            check.close()

    def test_concurrent_minting_agrees_on_one_code(self, file_session_factory):
        setup = file_session_factory()
        household_id = HouseholdService(setup).create_household("Cabin", "A").id
        setup.close()

        outcomes = run_together(
            file_session_factory,
            [lambda s: InviteService(s).get_or_create_code(household_id) for _ in range(5)],
        )

        assert all(ex is None for _, ex in outcomes)
        codes = {code for code, _ in outcomes}
        assert len(codes) == 1


@pytest.mark.concurrency
class TestConcurrentRemovals:
    """Members removing each other at the same time."""

    def test_mutual_removal_never_empties_household(self, file_session_factory):
        for attempt in range(5):
            setup = file_session_factory()
            try:
                households = HouseholdService(setup)
                household_id = households.create_household(f"Home {attempt}", "A").id
                households.add_member(household_id, "B")
            finally:
                setup.close()

            outcomes = run_together(
                file_session_factory,
                [
                    lambda s: HouseholdService(s).remove_member(household_id, "A", "B"),
                    lambda s: HouseholdService(s).remove_member(household_id, "B", "A"),
                ],
            )

            winners = [result for result, ex in outcomes if ex is None]
            losers = [ex for _, ex in outcomes if ex is not None]
            assert len(winners) == 1
            assert len(losers) == 1
            # The loser is either refused at the write or no longer a member
            assert isinstance(losers[0], (BadRequestException, AuthorizationException))

            check = file_session_factory()
            try:
                assert HouseholdRepository(check).get_member_count(household_id) == 1
            finally:
                check.close()
