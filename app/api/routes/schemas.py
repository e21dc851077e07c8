"""camelCase wire schemas shared by the routers."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.organization import OrganizationStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RegisterTenantResponse(CamelModel):
    tenant_id: uuid.UUID
    name: str
    slug: str
    logo_url: str | None = None


class CapabilitiesResponse(CamelModel):
    identity_id: uuid.UUID
    email: str
    kind: str
    is_org_user: bool
    is_donor: bool
    tenant_id: uuid.UUID | None = None
    tenant_role: str | None = None
    donor_account_id: uuid.UUID | None = None


# ── Organizations ────────────────────────────────────────────

class OrganizationRead(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    slug: str
    website: str | None
    description: str | None
    status: OrganizationStatus
    verified: bool
    country: str | None
    city: str | None
    logo_url: str | None
    created_at: datetime


class PublicOrganizationResponse(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    logo_url: str | None
    description: str | None
    website: str | None
    verified: bool
    can_manage: bool = False


# ── Donors ───────────────────────────────────────────────────

class DonorAccountCreate(CamelModel):
    full_name: str | None = Field(default=None, max_length=255)


class DonorAccountRead(CamelModel):
    id: uuid.UUID
    email: str
    full_name: str | None
    email_verified: bool
    created_at: datetime
