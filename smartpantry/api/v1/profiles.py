from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, sessionmaker

from ...core.concurrency import run_store_call
from ...database import get_session_factory
from ...dependencies import Identity, get_current_identity
from ...schemas.profile import ProfileCreate, ProfileResponse, ProfileUpdate
from ...schemas.result import Result
from ...services.join_service import JoinService
from ...services.profile_service import ProfileService

router = APIRouter()


@router.post("", response_model=Result[ProfileResponse], status_code=status.HTTP_201_CREATED)
async def create_my_profile(
    profile_data: ProfileCreate,
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory),
):
    """
    Create the caller's profile at signup.

    Unless the payload names a household, the caller's personal household is
    created as well and the profile is linked to it.

    Returns:
        Result[ProfileResponse]: Success result with the created profile
    """
    def work(db: Session) -> ProfileResponse:
        profile = JoinService(db).sign_up(identity.uid, identity.email, profile_data)
        return ProfileResponse.model_validate(profile)

    return Result.successful(data=await run_store_call(sessions, work))


@router.get("/me", response_model=Result[ProfileResponse])
async def get_my_profile(
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory),
):
    """
    Get the caller's profile.

    Returns:
        Result[ProfileResponse]: Success result with profile data
    """
    def work(db: Session) -> ProfileResponse:
        return ProfileResponse.model_validate(ProfileService(db).get_profile_by_uid(identity.uid))

    return Result.successful(data=await run_store_call(sessions, work))


@router.put("/me", response_model=Result[ProfileResponse])
async def update_my_profile(
    profile_update: ProfileUpdate,
    identity: Identity = Depends(get_current_identity),
    sessions: sessionmaker = Depends(get_session_factory),
):
    """
    Update the caller's dietary profile.

    Only provided fields will be updated.

    Returns:
        Result[ProfileResponse]: Success result with updated profile data
    """
    def work(db: Session) -> ProfileResponse:
        profile = ProfileService(db).update_profile(identity.uid, profile_update)
        return ProfileResponse.model_validate(profile)

    return Result.successful(data=await run_store_call(sessions, work))
