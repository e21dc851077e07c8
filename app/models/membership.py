"""Membership — grants an identity administrative rights over an organization."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.base import new_uuid, utcnow


class MembershipRole(StrEnum):
    ADMIN = "admin"
    MEMBER = "member"


class Membership(SQLModel, table=True):
    __tablename__ = "organization_users"
    __table_args__ = (
        UniqueConstraint("organization_id", "identity_id", name="uq_organization_users_org_identity"),
    )

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    organization_id: uuid.UUID = Field(
        foreign_key="organizations.id", nullable=False, index=True
    )
    # Owned by the identity provider; no local foreign key.
    identity_id: uuid.UUID = Field(nullable=False, index=True)
    role: MembershipRole = Field(default=MembershipRole.ADMIN)
    created_at: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=True), nullable=False
    )
