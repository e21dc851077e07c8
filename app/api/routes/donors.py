"""Donor account endpoints."""

from fastapi import APIRouter, status

from app.api.deps import Auth, DonorAuth, Donors
from app.api.routes.schemas import DonorAccountCreate, DonorAccountRead
from app.core.errors import AlreadyExists, NotFound

router = APIRouter(prefix="/donor", tags=["donor"])


@router.post("/register", response_model=DonorAccountRead, status_code=status.HTTP_201_CREATED)
async def register_donor(
    body: DonorAccountCreate,
    auth: Auth,
    donors: Donors,
) -> DonorAccountRead:
    """Create the donor account for an already-authenticated identity."""
    if auth.is_donor:
        raise AlreadyExists("You already have a donor account")
    donor = await donors.create(auth.identity_id, auth.email, body.full_name)
    return DonorAccountRead.model_validate(donor)


@router.get("/profile", response_model=DonorAccountRead)
async def get_donor_profile(auth: DonorAuth, donors: Donors) -> DonorAccountRead:
    donor = await donors.get_by_identity(auth.identity_id)
    if donor is None:
        raise NotFound("Donor account not found")
    return DonorAccountRead.model_validate(donor)
