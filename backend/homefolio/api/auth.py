"""Optional Clerk JWT authentication.

Report endpoints are reachable with a share token alone; a verified bearer
token only changes how the caller is identified for rate limiting.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import jwt
import httpx
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from homefolio.config import settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# In-memory JWKS cache
_jwks_cache: dict = {"keys": [], "fetched_at": 0}
_JWKS_TTL = 3600  # 1 hour


@dataclass
class CallerInfo:
    """Verified caller from a Clerk JWT."""
    user_id: str
    email: str = ""


async def _get_jwks() -> list[dict]:
    """Fetch and cache Clerk JWKS keys."""
    now = time.time()
    if _jwks_cache["keys"] and (now - _jwks_cache["fetched_at"]) < _JWKS_TTL:
        return _jwks_cache["keys"]

    url = f"https://{settings.clerk_domain}/.well-known/jwks.json"
    async with httpx.AsyncClient() as client:
        resp = await client.get(url, timeout=10)
        resp.raise_for_status()
        data = resp.json()

    _jwks_cache["keys"] = data.get("keys", [])
    _jwks_cache["fetched_at"] = now
    return _jwks_cache["keys"]


async def get_optional_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[CallerInfo]:
    """Verified caller, or None when no valid bearer token is present.

    Without CLERK_DOMAIN nothing can be verified and every caller is
    anonymous.
    """
    if not settings.clerk_domain or not credentials:
        return None

    try:
        jwks = await _get_jwks()
        kid = jwt.get_unverified_header(credentials.credentials).get("kid")
        key_data = next((k for k in jwks if k.get("kid") == kid), None)
        if not key_data:
            return None

        public_key = jwt.algorithms.RSAAlgorithm.from_jwk(key_data)
        payload = jwt.decode(
            credentials.credentials,
            public_key,
            algorithms=["RS256"],
            issuer=f"https://{settings.clerk_domain}",
            options={"verify_aud": False},
        )
    except jwt.InvalidTokenError as e:
        logger.info("Ignoring invalid bearer token: %s", e)
        return None
    except Exception as e:
        logger.warning("Bearer token verification failed: %s", e)
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None
    return CallerInfo(user_id=user_id, email=payload.get("email", ""))
