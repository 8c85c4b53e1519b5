import logging
from typing import Optional

from sqlalchemy.orm import Session

from hostdesk.models.request import UserProfile
from hostdesk.schemas.profile import ProfileUpdate
from hostdesk.utils.clock import utcnow

logger = logging.getLogger(__name__)


def get_profile(db: Session, user_id: str) -> Optional[UserProfile]:
    return db.get(UserProfile, user_id)


def save_profile(db: Session, user_id: str, changes: ProfileUpdate) -> UserProfile:
    """Upsert the caller's profile; fields sent as blank are cleared."""
    profile = db.get(UserProfile, user_id)
    if profile is None:
        profile = UserProfile(user_id=user_id)
        db.add(profile)

    for key, value in changes.model_dump(exclude_unset=True).items():
        setattr(profile, key, value)
    profile.updated_at = utcnow()
    db.commit()
    db.refresh(profile)
    logger.info("Saved profile for user=%s", user_id)
    return profile
