"""Authentication endpoints — organization registration + caller capabilities."""

from typing import Annotated

from fastapi import APIRouter, Form, UploadFile, status

from app.api.deps import Auth, Onboarding
from app.api.routes.schemas import CapabilitiesResponse, RegisterTenantResponse
from app.services.onboarding import LogoUpload

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register-tenant",
    response_model=RegisterTenantResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new organization and its admin account",
)
async def register_tenant(
    saga: Onboarding,
    name: Annotated[str, Form()] = "",
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    website: Annotated[str | None, Form()] = None,
    logo: UploadFile | None = None,
) -> RegisterTenantResponse:
    """Create identity, organization and admin membership in one call.

    This is the only unauthenticated write endpoint. The logo is optional
    and best-effort: a failed upload still registers the organization.
    """
    upload = None
    if logo is not None and logo.filename:
        data = await logo.read()
        if data:
            upload = LogoUpload(
                data=data, content_type=logo.content_type or "application/octet-stream"
            )

    result = await saga.onboard(name, email, password, website=website, logo=upload)
    return RegisterTenantResponse(
        tenant_id=result.tenant_id,
        name=result.name,
        slug=result.slug,
        logo_url=result.logo_url,
    )


@router.get("/me", response_model=CapabilitiesResponse)
async def get_capabilities(auth: Auth) -> CapabilitiesResponse:
    """Report which capabilities the authenticated caller holds."""
    return CapabilitiesResponse(
        identity_id=auth.identity_id,
        email=auth.email,
        kind=auth.kind.value,
        is_org_user=auth.is_org_admin,
        is_donor=auth.is_donor,
        tenant_id=auth.tenant_id,
        tenant_role=auth.tenant_role,
        donor_account_id=auth.donor_account_id,
    )
