"""Public (optionally authenticated) organization profile."""

from fastapi import APIRouter

from app.api.deps import OptionalAuth, Tenants
from app.api.routes.schemas import PublicOrganizationResponse
from app.core.errors import NotFound
from app.models.organization import OrganizationStatus

router = APIRouter(prefix="/public", tags=["public"])


@router.get("/organizations/{slug}", response_model=PublicOrganizationResponse)
async def get_public_organization(
    slug: str, auth: OptionalAuth, tenants: Tenants
) -> PublicOrganizationResponse:
    org = await tenants.get_by_slug(slug)
    if org is None or org.status != OrganizationStatus.ACTIVE:
        raise NotFound("Organization not found")
    profile = PublicOrganizationResponse.model_validate(org)
    profile.can_manage = auth.tenant_id == org.id
    return profile
