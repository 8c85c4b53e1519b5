from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from hostdesk.schemas.request import is_valid_url


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(None, max_length=255)
    website: Optional[str] = None
    github: Optional[str] = None
    twitter: Optional[str] = None
    linkedin: Optional[str] = None

    @field_validator("website", "github", "twitter", "linkedin")
    @classmethod
    def url_or_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if not is_valid_url(v):
            raise ValueError("Please enter a valid URL.")
        return v


class ProfileOut(BaseModel):
    user_id: str
    display_name: Optional[str] = None
    website: Optional[str] = None
    github: Optional[str] = None
    twitter: Optional[str] = None
    linkedin: Optional[str] = None
    updated_at: Optional[datetime] = None
