"""Signed URL issuance against the Supabase storage REST API."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


class StorageClient:
    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        timeout: float = 15.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self.timeout = timeout

    async def create_signed_url(self, path: str, expires_in: int = 60) -> Optional[str]:
        """Exchange a stored object path for a short-lived download URL.

        Returns None when the object cannot be signed (missing object,
        storage outage, timeout).
        """
        endpoint = f"{self.base_url}/storage/v1/object/sign/{self.bucket}/{quote(path.lstrip('/'))}"
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(endpoint, json={"expiresIn": expires_in}, headers=headers)
                if resp.status_code != 200:
                    logger.warning("Signing %s returned status %s", path, resp.status_code)
                    return None
                payload = resp.json()
                signed = payload.get("signedURL") or payload.get("signedUrl")
        except Exception as exc:
            logger.warning("Signing %s failed: %s", path, exc)
            return None

        if not signed:
            logger.warning("Storage returned no signed URL for %s", path)
            return None
        if signed.startswith("http"):
            return signed
        return f"{self.base_url}/storage/v1/{signed.lstrip('/')}"


def get_storage_client() -> StorageClient:
    from homefolio.config import settings
    return StorageClient(
        settings.storage_url,
        settings.storage_service_key,
        settings.storage_bucket,
        timeout=settings.fetch_timeout_seconds,
    )
