"""Import all models so SQLModel.metadata picks them up."""

from app.models.donor_account import DonorAccount
from app.models.membership import Membership, MembershipRole
from app.models.organization import Organization, OrganizationStatus

__all__ = [
    "DonorAccount",
    "Membership",
    "MembershipRole",
    "Organization",
    "OrganizationStatus",
]
