"""Organization model — the tenant isolation boundary."""

import uuid
from enum import StrEnum

from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid

NAME_MAX_LENGTH = 255
EMAIL_MAX_LENGTH = 320
WEBSITE_MAX_LENGTH = 2048
SLUG_MAX_LENGTH = 120


class OrganizationStatus(StrEnum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class Organization(TimestampMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    name: str = Field(max_length=NAME_MAX_LENGTH, nullable=False)
    email: str = Field(max_length=EMAIL_MAX_LENGTH, nullable=False, index=True)
    # Unique constraint is authoritative; the allocator's probe is best-effort.
    slug: str = Field(max_length=SLUG_MAX_LENGTH, unique=True, nullable=False, index=True)
    website: str | None = Field(default=None, max_length=WEBSITE_MAX_LENGTH)
    description: str | None = Field(default=None)
    status: OrganizationStatus = Field(default=OrganizationStatus.ACTIVE)
    verified: bool = Field(default=False)
    country: str | None = Field(default=None, max_length=100)
    city: str | None = Field(default=None, max_length=100)
    logo_url: str | None = Field(default=None, max_length=2048)
