"""Service request schemas: intake form, admin edits, comments, read models."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator

SUBDOMAIN_RE = re.compile(r"^[a-z0-9-]+$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_OTHER_TYPE_DESCRIPTION = 10
MIN_NEW_PROJECT_DESCRIPTION = 20


class RequestStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    NEW_UPDATE = "New Update"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


class ProjectType(str, Enum):
    POS_INVENTORY = "POS & Inventory System"
    MARKETPLACE = "Local Marketplace/Shop"
    BOOKING = "Appointment/Booking System"
    DELIVERY = "Food/Product Delivery Platform"
    DIRECTORY = "Business Directory/Listing"
    PAYMENT_GATEWAY = "Payment Gateway Integration"
    LOGISTICS = "Logistics & Tracking System"
    LEARNING = "Online Learning Platform"
    STATIC_SITE = "Static Website/Blogs/Pages"
    OTHER = "Other"


class ProjectFiles(str, Enum):
    READY = "Yes, I have my project files ready"
    NEW_BUILD = "No, I need a new project built"


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ServiceRequestCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    email: str = Field(..., max_length=255)
    whatsapp: str = Field(..., min_length=10, max_length=32)
    project_name: str = Field(..., min_length=2, max_length=255)
    project_type: ProjectType
    subdomain: str = Field(..., min_length=3, max_length=63)
    other_project_type_description: Optional[str] = None
    has_project_files: ProjectFiles
    project_link: Optional[str] = None
    new_project_description: Optional[str] = None

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        v = v.strip()
        if not _EMAIL_RE.match(v):
            raise ValueError("Please enter a valid email address.")
        return v

    @field_validator("subdomain")
    @classmethod
    def subdomain_format(cls, v: str) -> str:
        if not SUBDOMAIN_RE.match(v):
            raise ValueError("Only lowercase letters, numbers, and hyphens are allowed.")
        return v

    @field_validator("other_project_type_description", "project_link", "new_project_description")
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

    @field_validator("project_link")
    @classmethod
    def link_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_valid_url(v):
            raise ValueError("Please enter a valid URL.")
        return v

    @model_validator(mode="after")
    def conditional_fields(self):
        if self.project_type == ProjectType.OTHER and len(self.other_project_type_description or "") < MIN_OTHER_TYPE_DESCRIPTION:
            raise ValueError("other_project_type_description must be at least 10 characters.")
        if self.has_project_files == ProjectFiles.READY and not self.project_link:
            raise ValueError("project_link is required when project files are ready.")
        if self.has_project_files == ProjectFiles.NEW_BUILD and len(self.new_project_description or "") < MIN_NEW_PROJECT_DESCRIPTION:
            raise ValueError("new_project_description must be at least 20 characters.")
        return self


class StatusUpdate(BaseModel):
    status: RequestStatus
    expected_row_version: Optional[int] = None


class DetailsUpdate(BaseModel):
    project_name: Optional[str] = Field(None, min_length=2, max_length=255)
    subdomain: Optional[str] = Field(None, min_length=3, max_length=63)
    project_type: Optional[ProjectType] = None
    expected_row_version: Optional[int] = None

    @field_validator("subdomain")
    @classmethod
    def subdomain_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not SUBDOMAIN_RE.match(v):
            raise ValueError("Only lowercase letters, numbers, and hyphens are allowed.")
        return v


class CommentCreate(BaseModel):
    text: str = Field(..., max_length=5000)


class CommentOut(BaseModel):
    author: str
    author_id: str
    text: str
    created_at: datetime


class ServiceRequestOut(BaseModel):
    id: str
    user_id: str
    name: str
    email: str
    whatsapp: str
    project_name: str
    project_type: str
    subdomain: str
    other_project_type_description: Optional[str] = None
    has_project_files: str
    project_link: Optional[str] = None
    new_project_description: Optional[str] = None
    status: RequestStatus
    row_version: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    last_viewed_by_client: Optional[datetime] = None
    has_unread_update: bool = False
    comments: list[CommentOut] = Field(default_factory=list)


class ServiceRequestListResponse(BaseModel):
    items: list[ServiceRequestOut]


class SubdomainAvailabilityOut(BaseModel):
    label: str
    availability: str
    available: bool
