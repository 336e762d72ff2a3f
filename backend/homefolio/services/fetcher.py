"""Remote asset fetching for reports (logos, avatars, bundled documents).

Every fetch is bounded by a timeout and degrades to ``None``: a missing
asset must never block report generation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import httpx
from PIL import Image as PILImage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


@dataclass(frozen=True)
class FetchedAsset:
    content: bytes
    content_type: str


@dataclass(frozen=True)
class ImageAsset:
    data: bytes
    width: int
    height: int


class BinaryFetcher:
    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    async def fetch(self, url: str) -> Optional[FetchedAsset]:
        """GET *url*; ``None`` on timeout, transport error or non-2xx status."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                resp = await client.get(url)
                if not resp.is_success:
                    logger.warning("Fetch of %s returned status %s", _redact(url), resp.status_code)
                    return None
                return FetchedAsset(
                    content=resp.content,
                    content_type=resp.headers.get("content-type", "").lower(),
                )
        except Exception as exc:
            logger.warning("Fetch of %s failed: %s", _redact(url), exc)
            return None

    async def fetch_image(self, url: Optional[str]) -> Optional[ImageAsset]:
        """Fetch and decode a PNG/JPEG for drawing (logo, avatar)."""
        if not url:
            return None
        asset = await self.fetch(url)
        if asset is None:
            return None
        return load_image(asset.content)


def load_image(data: bytes) -> Optional[ImageAsset]:
    """Decode *data* and read its pixel size; ``None`` if Pillow cannot decode it."""
    try:
        with PILImage.open(BytesIO(data)) as img:
            img.load()
            width, height = img.size
    except Exception as exc:
        logger.warning("Image decode failed: %s", exc)
        return None
    if width <= 0 or height <= 0:
        return None
    return ImageAsset(data=data, width=width, height=height)


def _redact(url: str) -> str:
    # signed URLs carry their token in the query string
    return url.split("?", 1)[0]
