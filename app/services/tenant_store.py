"""Tenant store — organizations and their admin memberships.

Every method opens its own session and commits before returning, so each
onboarding step is durable independently of the others.
"""

import logging
import uuid

from sqlalchemy import delete, func
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlmodel import select

from app.core.errors import SlugConflict, StoreError
from app.models.membership import Membership, MembershipRole
from app.models.organization import Organization

logger = logging.getLogger(__name__)


def _is_slug_violation(exc: IntegrityError) -> bool:
    return "slug" in str(exc.orig).lower()


class TenantStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    async def slug_exists(self, slug: str) -> bool:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(func.count()).select_from(Organization).where(Organization.slug == slug)
                )
                return result.scalar_one() > 0
        except SQLAlchemyError as exc:
            raise StoreError(f"slug probe failed: {exc}", retryable=True) from exc

    async def insert(self, **fields) -> Organization:
        org = Organization(**fields)
        try:
            async with self.session_factory() as session:
                session.add(org)
                await session.commit()
                await session.refresh(org)
                return org
        except IntegrityError as exc:
            if _is_slug_violation(exc):
                raise SlugConflict(f"slug {fields.get('slug')!r} already taken") from exc
            raise StoreError(f"organization insert rejected: {exc.orig}") from exc
        except DataError as exc:
            raise StoreError(f"organization insert rejected: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"organization insert failed: {exc}", retryable=True) from exc

    async def update(self, tenant_id: uuid.UUID, **fields) -> Organization:
        try:
            async with self.session_factory() as session:
                org = await session.get(Organization, tenant_id)
                if org is None:
                    raise StoreError(f"organization {tenant_id} not found")
                for key, value in fields.items():
                    setattr(org, key, value)
                org.touch()
                session.add(org)
                await session.commit()
                await session.refresh(org)
                return org
        except SQLAlchemyError as exc:
            raise StoreError(f"organization update failed: {exc}", retryable=True) from exc

    async def delete(self, tenant_id: uuid.UUID) -> None:
        try:
            async with self.session_factory() as session:
                await session.execute(
                    delete(Membership).where(Membership.organization_id == tenant_id)
                )
                await session.execute(delete(Organization).where(Organization.id == tenant_id))
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"organization delete failed: {exc}", retryable=True) from exc

    async def get(self, tenant_id: uuid.UUID) -> Organization | None:
        try:
            async with self.session_factory() as session:
                return await session.get(Organization, tenant_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"organization lookup failed: {exc}", retryable=True) from exc

    async def get_by_slug(self, slug: str) -> Organization | None:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Organization).where(Organization.slug == slug)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"organization lookup failed: {exc}", retryable=True) from exc

    # ── Memberships ──────────────────────────────────────────

    async def add_membership(
        self,
        tenant_id: uuid.UUID,
        identity_id: uuid.UUID,
        role: MembershipRole = MembershipRole.ADMIN,
    ) -> Membership:
        membership = Membership(organization_id=tenant_id, identity_id=identity_id, role=role)
        try:
            async with self.session_factory() as session:
                session.add(membership)
                await session.commit()
                await session.refresh(membership)
                return membership
        except IntegrityError as exc:
            raise StoreError(f"membership insert rejected: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"membership insert failed: {exc}", retryable=True) from exc

    async def get_membership(self, identity_id: uuid.UUID) -> Membership | None:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Membership)
                    .where(Membership.identity_id == identity_id)
                    .order_by(Membership.created_at.asc())  # type: ignore[union-attr]
                    .limit(1)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"membership lookup failed: {exc}", retryable=True) from exc
