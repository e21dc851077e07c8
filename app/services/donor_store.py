"""Donor account lookups and creation."""

import uuid

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlmodel import select

from app.core.errors import AlreadyExists, StoreError
from app.models.donor_account import DonorAccount


class DonorStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    async def get_by_identity(self, identity_id: uuid.UUID) -> DonorAccount | None:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(DonorAccount).where(DonorAccount.identity_id == identity_id)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"donor lookup failed: {exc}", retryable=True) from exc

    async def create(
        self,
        identity_id: uuid.UUID,
        email: str,
        full_name: str | None = None,
    ) -> DonorAccount:
        # The identity provider has already confirmed the email.
        donor = DonorAccount(
            identity_id=identity_id,
            email=email,
            full_name=full_name,
            email_verified=True,
        )
        try:
            async with self.session_factory() as session:
                session.add(donor)
                await session.commit()
                await session.refresh(donor)
                return donor
        except IntegrityError as exc:
            raise AlreadyExists("You already have a donor account") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"donor insert failed: {exc}", retryable=True) from exc
