"""Identity gateway — thin adapter over the Supabase Auth REST API.

The platform never stores credentials. Identities are created and deleted
through the admin endpoints with the service-role key, and bearer tokens
are verified either locally (when the project's JWT secret is configured)
or by asking the provider who the token belongs to.
"""

import logging
import uuid
from dataclasses import dataclass

import httpx
from jose import JWTError, jwt

from app.core.errors import EmailTaken, IdentityProviderError

logger = logging.getLogger(__name__)

JWT_AUDIENCE = "authenticated"
_EMAIL_TAKEN_CODES = {"email_exists", "user_already_exists"}


@dataclass(frozen=True)
class Identity:
    id: uuid.UUID
    email: str


def _is_email_taken(resp: httpx.Response) -> bool:
    if resp.status_code not in (400, 409, 422):
        return False
    try:
        body = resp.json()
    except ValueError:
        return False
    code = str(body.get("error_code") or body.get("code") or "")
    text = str(body.get("msg") or body.get("message") or body.get("error_description") or "")
    return code in _EMAIL_TAKEN_CODES or "already" in text.lower()


def _identity_from(body: dict) -> Identity:
    user = body.get("user", body)
    return Identity(id=uuid.UUID(str(user["id"])), email=user.get("email") or "")


class IdentityGateway:
    def __init__(
        self,
        base_url: str,
        service_key: str,
        jwt_secret: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.jwt_secret = jwt_secret
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/auth/v1",
            timeout=self.timeout,
            transport=self._transport,
        )

    def _admin_headers(self) -> dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
        }

    async def create_identity(self, email: str, password: str) -> Identity:
        try:
            async with self._client() as client:
                resp = await client.post(
                    "/admin/users",
                    json={"email": email, "password": password, "email_confirm": True},
                    headers=self._admin_headers(),
                )
        except httpx.HTTPError as exc:
            logger.warning("Identity provider unreachable while creating %s: %s", email, exc)
            raise IdentityProviderError(retryable=True) from exc

        if resp.is_success:
            return _identity_from(resp.json())
        if _is_email_taken(resp):
            raise EmailTaken()
        logger.error(
            "Identity provider rejected user creation (%s): %s", resp.status_code, resp.text
        )
        raise IdentityProviderError(retryable=resp.status_code >= 500)

    async def delete_identity(self, identity_id: uuid.UUID) -> None:
        """Delete an identity. Raises IdentityProviderError on failure."""
        try:
            async with self._client() as client:
                resp = await client.delete(
                    f"/admin/users/{identity_id}", headers=self._admin_headers()
                )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(retryable=True) from exc

        if resp.status_code == 404:
            logger.info("Identity %s already gone", identity_id)
            return
        if not resp.is_success:
            logger.error(
                "Identity provider refused deletion of %s (%s): %s",
                identity_id, resp.status_code, resp.text,
            )
            raise IdentityProviderError(retryable=resp.status_code >= 500)

    async def verify(self, token: str) -> Identity | None:
        """Return the identity a bearer token belongs to, or None."""
        if not token:
            return None
        if self.jwt_secret:
            return self._verify_local(token)
        return await self._verify_remote(token)

    def _verify_local(self, token: str) -> Identity | None:
        try:
            claims = jwt.decode(
                token, self.jwt_secret, algorithms=["HS256"], audience=JWT_AUDIENCE
            )
            return Identity(id=uuid.UUID(claims["sub"]), email=claims.get("email") or "")
        except (JWTError, KeyError, ValueError):
            return None

    async def _verify_remote(self, token: str) -> Identity | None:
        try:
            async with self._client() as client:
                resp = await client.get(
                    "/user",
                    headers={"apikey": self.service_key, "Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError:
            logger.exception("Token verification request failed")
            return None
        if not resp.is_success:
            return None
        try:
            return _identity_from(resp.json())
        except (KeyError, ValueError):
            logger.warning("Malformed user payload from identity provider")
            return None
