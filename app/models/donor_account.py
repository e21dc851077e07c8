"""Donor account — links an identity to the donor portal."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from app.models.base import new_uuid, utcnow


class DonorAccount(SQLModel, table=True):
    __tablename__ = "donor_accounts"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    identity_id: uuid.UUID = Field(unique=True, nullable=False, index=True)
    email: str = Field(max_length=320, unique=True, nullable=False, index=True)
    full_name: str | None = Field(default=None, max_length=255)
    email_verified: bool = Field(default=False)
    created_at: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=True), nullable=False
    )
