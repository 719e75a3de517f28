from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, sessionmaker
from typing import List

from smartpantry.core.concurrency import run_store_call
from smartpantry.database import get_session_factory
from smartpantry.dependencies import Identity, get_current_identity
from smartpantry.schemas.household import (
    HouseholdCreate,
    HouseholdCreated,
    HouseholdJoinRequest,
    HouseholdMemberResponse,
    HouseholdResponse,
    InviteCodeResponse,
    JoinResponse,
    ReconcileReport,
    RemoveMemberResponse,
    RosterResponse,
)
from smartpantry.schemas.invite import InviteGrantResponse, OneTimeCodeResponse
from smartpantry.schemas.result import Result
from smartpantry.services.household_service import HouseholdService
from smartpantry.services.invite_service import InviteService
from smartpantry.services.join_service import JoinService
from smartpantry.services.membership_service import MembershipService

router = APIRouter()


@router.post("", response_model=Result[HouseholdCreated], status_code=status.HTTP_201_CREATED)
async def create_household(
    household_data: HouseholdCreate,
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory)
):
    """Create a new household with the caller as owner and only member."""
    def work(db: Session) -> HouseholdCreated:
        household = JoinService(db).create_household(household_data.name, identity.uid)
        return HouseholdCreated(id=household.id)

    return Result.successful(data=await run_store_call(sessions, work))


@router.get("", response_model=Result[List[HouseholdResponse]])
async def get_my_households(
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory)
):
    """Get all households the caller belongs to."""
    def work(db: Session) -> List[HouseholdResponse]:
        households = HouseholdService(db).get_user_households(identity.uid)
        return [HouseholdResponse.model_validate(h) for h in households]

    return Result.successful(data=await run_store_call(sessions, work))


@router.post("/join", response_model=Result[JoinResponse])
async def join_household(
    join_data: HouseholdJoinRequest,
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory)
):
    """Join a household using a permanent or one-time invite code."""
    def work(db: Session) -> JoinResponse:
        return JoinService(db).accept_code(join_data.code, identity.uid)

    return Result.successful(data=await run_store_call(sessions, work))


@router.post("/{household_id}", response_model=Result[HouseholdResponse])
async def get_household(
    household_id: int,
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory)
):
    """Get household details, invite code included (members only)."""
    def work(db: Session) -> HouseholdResponse:
        household = HouseholdService(db).require_member(household_id, identity.uid)
        return HouseholdResponse.model_validate(household)

    return Result.successful(data=await run_store_call(sessions, work))


@router.post("/{household_id}/invite-code", response_model=Result[InviteCodeResponse])
async def get_invite_code(
    household_id: int,
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory)
):
    """Get the household's permanent invite code, minting it on first request (members only)."""
    def work(db: Session) -> InviteCodeResponse:
        HouseholdService(db).require_member(household_id, identity.uid)
        return InviteCodeResponse(code=InviteService(db).get_or_create_code(household_id))

    return Result.successful(data=await run_store_call(sessions, work))


@router.post("/{household_id}/invites", response_model=Result[OneTimeCodeResponse])
async def generate_one_time_code(
    household_id: int,
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory)
):
    """Generate a one-time invite code valid for seven days (members only)."""
    def work(db: Session) -> OneTimeCodeResponse:
        HouseholdService(db).require_member(household_id, identity.uid)
        grant = InviteService(db).generate_one_time_code(household_id, identity.uid)
        return OneTimeCodeResponse(code=grant.code, expires_at=grant.expires_at)

    return Result.successful(data=await run_store_call(sessions, work))


@router.post("/{household_id}/invites/list", response_model=Result[List[InviteGrantResponse]])
async def get_invites(
    household_id: int,
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory)
):
    """List the household's one-time invite codes (members only)."""
    def work(db: Session) -> List[InviteGrantResponse]:
        HouseholdService(db).require_member(household_id, identity.uid)
        invites = InviteService(db).list_invites(household_id)
        return [InviteGrantResponse.model_validate(i) for i in invites]

    return Result.successful(data=await run_store_call(sessions, work))


@router.post("/{household_id}/members", response_model=Result[List[HouseholdMemberResponse]])
async def get_members(
    household_id: int,
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory)
):
    """Get one entry per household member (members only)."""
    def work(db: Session) -> List[HouseholdMemberResponse]:
        HouseholdService(db).require_member(household_id, identity.uid)
        return MembershipService(db).get_household_members(household_id)

    return Result.successful(data=await run_store_call(sessions, work))


@router.delete("/{household_id}/members/{member_uid}", response_model=Result[RemoveMemberResponse])
async def remove_member(
    household_id: int,
    member_uid: str,
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory)
):
    """Remove a member; they fall back to their personal household."""
    def work(db: Session) -> RemoveMemberResponse:
        result = HouseholdService(db).remove_member(household_id, identity.uid, member_uid)
        return RemoveMemberResponse(**result)

    return Result.successful(data=await run_store_call(sessions, work))


@router.post("/{household_id}/profiles", response_model=Result[RosterResponse])
async def get_roster(
    household_id: int,
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory)
):
    """Get the merged dietary roster of the household (members only)."""
    def work(db: Session) -> RosterResponse:
        HouseholdService(db).require_member(household_id, identity.uid)
        return MembershipService(db).get_roster(household_id)

    return Result.successful(data=await run_store_call(sessions, work))


@router.post("/{household_id}/reconcile", response_model=Result[ReconcileReport])
async def reconcile_household(
    household_id: int,
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory)
):
    """Repair missing linkage records and unlinked member profiles (members only)."""
    def work(db: Session) -> ReconcileReport:
        HouseholdService(db).require_member(household_id, identity.uid)
        return MembershipService(db).reconcile(household_id)

    return Result.successful(data=await run_store_call(sessions, work))
