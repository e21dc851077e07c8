"""Organization onboarding saga.

One registration touches three independent systems: the identity
provider, the relational store and object storage. There is no shared
transaction, so the critical steps are an explicit, ordered list of
``SagaStep`` entries. Each entry pairs an action with the compensation that
undoes it. ``run_saga`` walks the list forward and, when a step fails,
walks the completed entries backwards running their compensations.

The logo upload is not part of that list. It runs after the critical
steps and its failure is only logged.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field

from pydantic import AnyHttpUrl, BaseModel, TypeAdapter, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from app.core.config import Settings, get_settings
from app.core.errors import (
    AppError,
    IdentityProviderError,
    InvalidInput,
    MembershipLinkFailed,
    SlugConflict,
    TenantCreateFailed,
)
from app.models.base import new_uuid
from app.models.membership import Membership, MembershipRole
from app.models.organization import (
    EMAIL_MAX_LENGTH,
    NAME_MAX_LENGTH,
    WEBSITE_MAX_LENGTH,
    Organization,
    OrganizationStatus,
)
from app.services.asset_store import AssetStore, logo_path
from app.services.identity import Identity, IdentityGateway
from app.services.slug import SlugAllocator, derive_slug
from app.services.tenant_store import TenantStore

logger = logging.getLogger(__name__)

_url_adapter = TypeAdapter(AnyHttpUrl)


# ── Input ─────────────────────────────────────────────────────

class RegistrationRequest(BaseModel):
    name: str
    email: str
    password: str
    website: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise PydanticCustomError("invalid_input", "Name must be at least 2 characters")
        if len(v) > NAME_MAX_LENGTH:
            raise PydanticCustomError("invalid_input", "Name must be at most 255 characters")
        return v

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or len(v) > EMAIL_MAX_LENGTH:
            raise PydanticCustomError("invalid_input", "Invalid email address")
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if len(v) < 6:
            raise PydanticCustomError("invalid_input", "Password must be at least 6 characters")
        return v

    @field_validator("website")
    @classmethod
    def _website(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if len(v) > WEBSITE_MAX_LENGTH:
            raise PydanticCustomError("invalid_input", "Invalid website URL")
        try:
            _url_adapter.validate_python(v)
        except ValidationError:
            raise PydanticCustomError("invalid_input", "Invalid website URL") from None
        return v


@dataclass(frozen=True)
class LogoUpload:
    data: bytes
    content_type: str


def validate_registration(
    name: str,
    email: str,
    password: str,
    website: str | None = None,
    logo: LogoUpload | None = None,
    settings: Settings | None = None,
) -> RegistrationRequest:
    """Check the registration form. Raises InvalidInput, never touches a provider."""
    settings = settings or get_settings()
    try:
        request = RegistrationRequest(name=name, email=email, password=password, website=website)
    except ValidationError as exc:
        raise InvalidInput(exc.errors()[0]["msg"]) from None

    if logo is not None:
        if logo.content_type not in settings.logo_types:
            raise InvalidInput("Only PNG, JPG or WebP images are allowed")
        if len(logo.data) > settings.max_logo_bytes:
            raise InvalidInput("Logo must be 2MB or smaller")
    return request


# ── Saga machinery ───────────────────────────────────────────

@dataclass
class OnboardingContext:
    request: RegistrationRequest
    identity: Identity | None = None
    base_slug: str | None = None
    slug: str | None = None
    tenant_id: uuid.UUID | None = None
    tenant: Organization | None = None
    membership: Membership | None = None
    completed: list[str] = field(default_factory=list)
    compensated: list[str] = field(default_factory=list)


Action = Callable[[OnboardingContext], Awaitable[None]]


@dataclass(frozen=True)
class SagaStep:
    name: str
    action: Action
    compensation: Action | None
    failure: type[AppError]


def _as_step_error(step: SagaStep, exc: Exception) -> AppError:
    if isinstance(exc, AppError):
        return exc
    return step.failure(retryable=_is_ambiguous(exc))


def _is_ambiguous(exc: Exception) -> bool:
    """Whether the step may have taken effect despite failing."""
    return isinstance(exc, TimeoutError) or getattr(exc, "retryable", False)


async def _compensate(done: Iterable[SagaStep], ctx: OnboardingContext, timeout: float | None) -> None:
    for step in done:
        if step.compensation is None:
            continue
        try:
            await asyncio.wait_for(step.compensation(ctx), timeout)
            ctx.compensated.append(step.name)
        except Exception:
            logger.exception("Compensation for step %s failed; manual cleanup needed", step.name)


async def run_saga(
    steps: list[SagaStep], ctx: OnboardingContext, timeout: float | None = None
) -> OnboardingContext:
    """Execute ``steps`` in order; on failure compensate completed steps in reverse.

    A step that times out or fails with a retryable error may have
    committed anyway, so its own compensation runs first. The error raised
    is always the one from the failing step, whatever happens during
    compensation.
    """
    done: list[SagaStep] = []
    for step in steps:
        try:
            await asyncio.wait_for(step.action(ctx), timeout)
        except Exception as exc:
            error = _as_step_error(step, exc)
            undo = list(reversed(done))
            if _is_ambiguous(exc):
                undo.insert(0, step)
            logger.warning(
                "Onboarding step %s failed (%s: %s); compensating %s",
                step.name, type(exc).__name__, exc, [s.name for s in undo],
            )
            await _compensate(undo, ctx, timeout)
            if error is exc:
                raise
            raise error from exc
        done.append(step)
        ctx.completed.append(step.name)
    return ctx


# ── Onboarding ───────────────────────────────────────────────

@dataclass(frozen=True)
class OnboardingResult:
    tenant_id: uuid.UUID
    name: str
    slug: str
    logo_url: str | None = None


class OnboardingSaga:
    def __init__(
        self,
        identity: IdentityGateway,
        tenants: TenantStore,
        assets: AssetStore,
        settings: Settings | None = None,
    ) -> None:
        self.identity = identity
        self.tenants = tenants
        self.assets = assets
        self.settings = settings or get_settings()
        self.allocator = SlugAllocator(tenants, max_attempts=self.settings.slug_max_attempts)

    @property
    def steps(self) -> list[SagaStep]:
        return [
            SagaStep("create_identity", self._create_identity, self._delete_identity, IdentityProviderError),
            SagaStep("allocate_slug", self._allocate_slug, None, TenantCreateFailed),
            SagaStep("create_tenant", self._create_tenant, self._delete_tenant, TenantCreateFailed),
            SagaStep("link_membership", self._link_membership, None, MembershipLinkFailed),
        ]

    async def onboard(
        self,
        name: str,
        email: str,
        password: str,
        website: str | None = None,
        logo: LogoUpload | None = None,
    ) -> OnboardingResult:
        request = validate_registration(name, email, password, website, logo, self.settings)
        ctx = OnboardingContext(request=request)
        await run_saga(self.steps, ctx, timeout=self.settings.store_timeout_seconds)

        logo_url = None
        if logo is not None:
            logo_url = await self._attach_logo(ctx, logo)

        tenant = ctx.tenant
        logger.info("Registered organization %s (%s)", tenant.slug, tenant.id)
        return OnboardingResult(
            tenant_id=tenant.id, name=tenant.name, slug=tenant.slug, logo_url=logo_url
        )

    # ── Steps ────────────────────────────────────────────────

    async def _create_identity(self, ctx: OnboardingContext) -> None:
        ctx.identity = await self.identity.create_identity(ctx.request.email, ctx.request.password)

    async def _delete_identity(self, ctx: OnboardingContext) -> None:
        if ctx.identity is None:
            return
        await self.identity.delete_identity(ctx.identity.id)

    async def _allocate_slug(self, ctx: OnboardingContext) -> None:
        ctx.base_slug = derive_slug(ctx.request.name, self.settings.slug_fallback)
        ctx.slug = await self.allocator.allocate(ctx.base_slug)

    async def _create_tenant(self, ctx: OnboardingContext) -> None:
        ctx.tenant_id = new_uuid()
        try:
            ctx.tenant = await self._insert_tenant(ctx)
        except SlugConflict:
            # Lost a race for the slug; the winner's row is visible now.
            logger.info("Slug %s taken concurrently, allocating again", ctx.slug)
            ctx.slug = await self.allocator.allocate(ctx.base_slug)
            ctx.tenant = await self._insert_tenant(ctx)

    async def _insert_tenant(self, ctx: OnboardingContext) -> Organization:
        req = ctx.request
        return await self.tenants.insert(
            id=ctx.tenant_id,
            name=req.name,
            email=req.email,
            website=req.website,
            slug=ctx.slug,
            status=OrganizationStatus.ACTIVE,
            verified=False,
            country=self.settings.default_country,
            city=self.settings.default_city,
        )

    async def _delete_tenant(self, ctx: OnboardingContext) -> None:
        if ctx.tenant_id is None:
            return
        await self.tenants.delete(ctx.tenant_id)

    async def _link_membership(self, ctx: OnboardingContext) -> None:
        ctx.membership = await self.tenants.add_membership(
            ctx.tenant_id, ctx.identity.id, MembershipRole.ADMIN
        )

    # ── Best-effort logo ─────────────────────────────────────

    async def _attach_logo(self, ctx: OnboardingContext, logo: LogoUpload) -> str | None:
        tenant_id = ctx.tenant.id
        path = logo_path(tenant_id, logo.content_type)
        timeout = self.settings.store_timeout_seconds
        try:
            await asyncio.wait_for(self.assets.upload(path, logo.data, logo.content_type), timeout)
            url = self.assets.public_url(path)
        except Exception:
            logger.warning("Logo upload failed for organization %s", tenant_id, exc_info=True)
            return None

        try:
            ctx.tenant = await asyncio.wait_for(self.tenants.update(tenant_id, logo_url=url), timeout)
        except Exception:
            logger.warning("Could not save logo URL for organization %s", tenant_id, exc_info=True)
            return None
        return url
