"""Organization endpoints for tenant administrators."""

from fastapi import APIRouter

from app.api.deps import OrgAdmin, Tenants
from app.api.routes.schemas import OrganizationRead
from app.core.errors import NotFound

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.get("/me", response_model=OrganizationRead)
async def get_my_organization(auth: OrgAdmin, tenants: Tenants) -> OrganizationRead:
    """Return the organization the caller administers."""
    org = await tenants.get(auth.tenant_id)
    if org is None:
        raise NotFound("Organization not found")
    return OrganizationRead.model_validate(org)
