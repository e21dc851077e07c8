"""Asset store — logo uploads to Supabase Storage."""

import logging
import uuid
from urllib.parse import quote

import httpx

from app.core.errors import AssetUploadFailed

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
}


def logo_path(tenant_id: uuid.UUID, content_type: str) -> str:
    """Object key for a tenant logo: ``{tenant_id}/logo.{ext}``.

    The extension follows the validated content type; the client's
    filename never reaches the key.
    """
    ext = _EXTENSIONS.get(content_type, "png")
    return f"{tenant_id}/logo.{ext}"


class AssetStore:
    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self.timeout = timeout
        self._transport = transport

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``path`` (overwriting). Returns the path."""
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(path)}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    url,
                    content=data,
                    headers={
                        "apikey": self.service_key,
                        "Authorization": f"Bearer {self.service_key}",
                        "Content-Type": content_type,
                        "x-upsert": "true",
                    },
                )
        except httpx.HTTPError as exc:
            raise AssetUploadFailed(retryable=True) from exc

        if not resp.is_success:
            logger.error("Storage rejected upload of %s (%s): %s", path, resp.status_code, resp.text)
            raise AssetUploadFailed(retryable=resp.status_code >= 500)
        return path

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(path)}"
