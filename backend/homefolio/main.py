from __future__ import annotations

import logging
import math
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from homefolio import database
from homefolio.config import settings
from homefolio.api.reports import router as reports_router
from homefolio.services.errors import RateLimited, ReportError

logger = logging.getLogger(__name__)

app = FastAPI(
    title="HomeFolio Report Engine",
    description=(
        "Generate PDF property reports and complete showing-tour packets, "
        "with uploaded documents bundled in, for share-token holders."
    ),
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "Content-Disposition", "Retry-After",
        "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset",
    ],
)

app.include_router(reports_router)


@app.on_event("shutdown")
async def shutdown():
    await database.dispose_engine()


def rate_limit_headers(exc: RateLimited) -> tuple[int, dict[str, str]]:
    """Retry-After (seconds) and the X-RateLimit-* headers for a 429."""
    now = datetime.now(timezone.utc)
    retry_after = max(1, math.ceil((exc.result.reset_at - now).total_seconds()))
    headers = {
        "Retry-After": str(retry_after),
        "X-RateLimit-Limit": str(exc.limit),
        "X-RateLimit-Remaining": str(exc.result.remaining),
        "X-RateLimit-Reset": exc.result.reset_at.isoformat(),
    }
    return retry_after, headers


@app.exception_handler(ReportError)
async def report_error_handler(request: Request, exc: ReportError):
    body: dict = {"error": exc.message}
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimited):
        retry_after, headers = rate_limit_headers(exc)
        body["retryAfter"] = retry_after
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


@app.get("/")
async def root():
    return {
        "name": "HomeFolio Report Engine",
        "version": "1.0.0",
        "endpoints": {
            "api_docs": "/docs",
            "health": "/health",
            "property_report": "POST /report/property",
            "session_report": "POST /report/session",
        },
    }


@app.get("/health")
async def health():
    """Health check with dependency status."""
    status = {"status": "healthy", "version": "1.0.0"}

    try:
        await database.ping()
        status["database"] = "connected"
    except Exception as e:
        logger.warning("Health check database error: %s", e)
        status["database"] = f"error: {e}"

    status["rate_limit_backend"] = settings.rate_limit_backend
    return status
