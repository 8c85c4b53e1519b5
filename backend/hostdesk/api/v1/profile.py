from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hostdesk.core.auth import CurrentUser, get_current_user
from hostdesk.core.dependencies import get_db
from hostdesk.models.request import UserProfile
from hostdesk.schemas.profile import ProfileOut, ProfileUpdate
from hostdesk.services.profile_service import get_profile, save_profile

router = APIRouter()


def _to_out(user_id: str, profile: UserProfile | None) -> ProfileOut:
    if profile is None:
        return ProfileOut(user_id=user_id)
    return ProfileOut(
        user_id=profile.user_id,
        display_name=profile.display_name,
        website=profile.website,
        github=profile.github,
        twitter=profile.twitter,
        linkedin=profile.linkedin,
        updated_at=profile.updated_at,
    )


@router.get("/me/profile", response_model=ProfileOut)
def read_profile(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _to_out(current_user.id, get_profile(db, current_user.id))


@router.put("/me/profile", response_model=ProfileOut)
def update_profile(
    payload: ProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _to_out(current_user.id, save_profile(db, current_user.id, payload))
