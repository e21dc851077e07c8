"""FastAPI dependencies: provider adapters and caller resolution."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import sessionmaker

from app.core.config import get_settings
from app.core.database import get_session_factory
from app.core.errors import Forbidden
from app.services.asset_store import AssetStore
from app.services.capabilities import AuthContext, AuthMode, CapabilityResolver
from app.services.donor_store import DonorStore
from app.services.identity import IdentityGateway
from app.services.onboarding import OnboardingSaga
from app.services.tenant_store import TenantStore

# auto_error=False so a missing header reaches the resolver, which owns
# the unauthenticated response.
bearer_scheme = HTTPBearer(auto_error=False)

SessionFactory = Annotated[sessionmaker, Depends(get_session_factory)]


def get_identity_gateway() -> IdentityGateway:
    settings = get_settings()
    return IdentityGateway(
        base_url=settings.supabase_url,
        service_key=settings.supabase_service_role_key,
        jwt_secret=settings.supabase_jwt_secret,
        timeout=settings.provider_timeout_seconds,
    )


def get_asset_store() -> AssetStore:
    settings = get_settings()
    return AssetStore(
        base_url=settings.supabase_url,
        service_key=settings.supabase_service_role_key,
        bucket=settings.logo_bucket,
        timeout=settings.provider_timeout_seconds,
    )


def get_tenant_store(session_factory: SessionFactory) -> TenantStore:
    return TenantStore(session_factory)


def get_donor_store(session_factory: SessionFactory) -> DonorStore:
    return DonorStore(session_factory)


Identity = Annotated[IdentityGateway, Depends(get_identity_gateway)]
Tenants = Annotated[TenantStore, Depends(get_tenant_store)]
Donors = Annotated[DonorStore, Depends(get_donor_store)]
Assets = Annotated[AssetStore, Depends(get_asset_store)]


def get_onboarding_saga(identity: Identity, tenants: Tenants, assets: Assets) -> OnboardingSaga:
    return OnboardingSaga(identity, tenants, assets)


def get_resolver(identity: Identity, tenants: Tenants, donors: Donors) -> CapabilityResolver:
    return CapabilityResolver(identity, tenants, donors)


Resolver = Annotated[CapabilityResolver, Depends(get_resolver)]
Credentials = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def _token(credentials: HTTPAuthorizationCredentials | None) -> str | None:
    return credentials.credentials if credentials else None


async def get_auth_context(credentials: Credentials, resolver: Resolver) -> AuthContext:
    return await resolver.resolve_for(_token(credentials), AuthMode.REQUIRED)


async def get_optional_auth_context(credentials: Credentials, resolver: Resolver) -> AuthContext:
    return await resolver.resolve_for(_token(credentials), AuthMode.OPTIONAL)


async def get_donor_context(credentials: Credentials, resolver: Resolver) -> AuthContext:
    return await resolver.resolve_for(_token(credentials), AuthMode.DONOR_REQUIRED)


Auth = Annotated[AuthContext, Depends(get_auth_context)]
OptionalAuth = Annotated[AuthContext, Depends(get_optional_auth_context)]
DonorAuth = Annotated[AuthContext, Depends(get_donor_context)]


async def require_org_admin(auth: Auth) -> AuthContext:
    if not auth.is_org_admin:
        raise Forbidden("Organization access required")
    return auth


OrgAdmin = Annotated[AuthContext, Depends(require_org_admin)]
Onboarding = Annotated[OnboardingSaga, Depends(get_onboarding_saga)]
