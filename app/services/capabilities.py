"""Per-request caller classification.

A verified identity can administer an organization (it has a membership),
be a donor (it has a donor account), both, or neither. The two relations
are looked up independently and the classification is derived from both
results, never from one alone.
"""

import asyncio
import logging
import uuid
from enum import StrEnum

from app.core.errors import NoDonorProfile, Unauthenticated
from app.models.membership import MembershipRole
from app.services.donor_store import DonorStore
from app.services.identity import Identity, IdentityGateway
from app.services.tenant_store import TenantStore

logger = logging.getLogger(__name__)


class CallerKind(StrEnum):
    NEITHER = "neither"
    ORG_ADMIN = "org_admin"
    DONOR = "donor"
    BOTH = "both"

    @classmethod
    def from_flags(cls, is_org_admin: bool, is_donor: bool) -> "CallerKind":
        if is_org_admin and is_donor:
            return cls.BOTH
        if is_org_admin:
            return cls.ORG_ADMIN
        if is_donor:
            return cls.DONOR
        return cls.NEITHER


class AuthMode(StrEnum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    DONOR_REQUIRED = "donor_required"


class AuthContext:
    """Resolved identity and capabilities carried through a request."""

    __slots__ = ("identity_id", "email", "tenant_id", "tenant_role", "donor_account_id")

    def __init__(
        self,
        identity_id: uuid.UUID | None,
        email: str = "",
        tenant_id: uuid.UUID | None = None,
        tenant_role: str | None = None,
        donor_account_id: uuid.UUID | None = None,
    ) -> None:
        self.identity_id = identity_id
        self.email = email
        self.tenant_id = tenant_id
        self.tenant_role = tenant_role
        self.donor_account_id = donor_account_id

    @classmethod
    def anonymous(cls) -> "AuthContext":
        return cls(identity_id=None)

    @property
    def is_authenticated(self) -> bool:
        return self.identity_id is not None

    @property
    def is_org_admin(self) -> bool:
        return self.tenant_id is not None

    @property
    def is_donor(self) -> bool:
        return self.donor_account_id is not None

    @property
    def kind(self) -> CallerKind:
        return CallerKind.from_flags(self.is_org_admin, self.is_donor)


class CapabilityResolver:
    def __init__(
        self,
        identity: IdentityGateway,
        tenants: TenantStore,
        donors: DonorStore,
    ) -> None:
        self.identity = identity
        self.tenants = tenants
        self.donors = donors

    async def resolve(self, token: str | None) -> AuthContext:
        """Verify ``token`` and attach whichever capabilities the caller has."""
        if not token:
            raise Unauthenticated()
        identity = await self.identity.verify(token)
        if identity is None:
            raise Unauthenticated("Invalid or expired token")
        return await self._classify(identity)

    async def resolve_for(self, token: str | None, mode: AuthMode) -> AuthContext:
        if mode is AuthMode.OPTIONAL:
            try:
                return await self.resolve(token)
            except Unauthenticated:
                return AuthContext.anonymous()

        ctx = await self.resolve(token)
        if mode is AuthMode.DONOR_REQUIRED and not ctx.is_donor:
            raise NoDonorProfile()
        return ctx

    async def _classify(self, identity: Identity) -> AuthContext:
        membership, donor = await asyncio.gather(
            self.tenants.get_membership(identity.id),
            self.donors.get_by_identity(identity.id),
            return_exceptions=True,
        )
        if isinstance(membership, BaseException):
            logger.warning("Membership lookup failed for %s: %s", identity.id, membership)
            membership = None
        if isinstance(donor, BaseException):
            logger.warning("Donor lookup failed for %s: %s", identity.id, donor)
            donor = None

        return AuthContext(
            identity_id=identity.id,
            email=identity.email,
            tenant_id=membership.organization_id if membership else None,
            tenant_role=MembershipRole(membership.role).value if membership else None,
            donor_account_id=donor.id if donor else None,
        )
