"""Error taxonomy shared by onboarding, capability resolution and the API.

Every ``AppError`` carries a stable, user-facing message. Provider error
text is logged server-side and never copied into these messages.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    message: str = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None, *, retryable: bool = False) -> None:
        if message is not None:
            self.message = message
        self.retryable = retryable
        super().__init__(self.message)


# ── Onboarding ───────────────────────────────────────────────

class InvalidInput(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_input"
    message = "Invalid registration data"


class EmailTaken(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "email_taken"
    message = "This email is already registered"


class SlugExhausted(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "slug_exhausted"
    message = "Could not reserve a unique address for this organization. Try a different name."


class IdentityProviderError(AppError):
    code = "identity_provider_error"
    message = "Could not create the account. Please try again."


class TenantCreateFailed(AppError):
    code = "tenant_create_failed"
    message = "Could not create the organization. Please try again."


class MembershipLinkFailed(AppError):
    code = "membership_link_failed"
    message = "Could not set up the account. Please try again."


class AssetUploadFailed(AppError):
    code = "asset_upload_failed"
    message = "Could not upload the image"


# ── Request authorization ────────────────────────────────────

class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    message = "Authentication required"


class NoDonorProfile(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "no_donor_profile"
    message = "No donor account exists for this user"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    message = "You do not have access to this resource"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Not found"


class AlreadyExists(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "already_exists"
    message = "Already exists"


# ── Adapter-level (internal) ─────────────────────────────────

class ProviderError(Exception):
    """Failure talking to an external provider or store."""

    def __init__(self, detail: str, *, retryable: bool = False) -> None:
        super().__init__(detail)
        self.detail = detail
        self.retryable = retryable


class StoreError(ProviderError):
    pass


class SlugConflict(StoreError):
    """The store's uniqueness constraint rejected a slug."""


async def app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code, "retryable": exc.retryable},
    )


async def provider_error_handler(_request: Request, exc: ProviderError) -> JSONResponse:
    # Adapter detail stays in the log; the caller gets the stable message.
    logger.error("Unhandled provider error: %s", exc.detail)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "error": AppError.message,
            "code": "store_unavailable",
            "retryable": exc.retryable,
        },
    )
