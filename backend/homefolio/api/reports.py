"""Report download endpoints (share-token access)."""
from __future__ import annotations

import json
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from homefolio.api.auth import CallerInfo, get_optional_caller
from homefolio.config import settings
from homefolio.database import get_db
from homefolio.services.bundler import DocumentBundler
from homefolio.services.composer import ReportComposer
from homefolio.services.errors import InvalidInput
from homefolio.services.fetcher import BinaryFetcher
from homefolio.services.mortgage import MortgageAssumptions
from homefolio.services.rate_limit import RateLimiter, get_rate_limiter
from homefolio.services.report import GeneratedReport, ReportService
from homefolio.services.storage import get_storage_client
from homefolio.services.store import ReportStore

router = APIRouter(prefix="/report", tags=["reports"])


def get_report_service(
    db: AsyncSession = Depends(get_db),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> ReportService:
    store = ReportStore(db)
    fetcher = BinaryFetcher(timeout=settings.fetch_timeout_seconds)
    bundler = DocumentBundler(
        get_storage_client(), fetcher, signed_url_ttl=settings.signed_url_ttl_seconds,
    )
    composer = ReportComposer(
        store,
        fetcher,
        bundler,
        mortgage=MortgageAssumptions.from_settings(settings),
        brand_name=settings.brand_name,
        product_logo_url=settings.product_logo_url,
    )
    return ReportService(
        store,
        limiter,
        composer,
        max_requests=settings.report_rate_limit_max_requests,
        window_seconds=settings.report_rate_limit_window_seconds,
    )


async def _read_json(request: Request):
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidInput("Request body must be valid JSON")


def _pdf_response(report: GeneratedReport) -> Response:
    return Response(
        content=report.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
    )


@router.post("/property")
async def property_report(
    request: Request,
    service: ReportService = Depends(get_report_service),
    caller: Optional[CallerInfo] = Depends(get_optional_caller),
):
    """Single-property PDF with its attached documents bundled in."""
    payload = await _read_json(request)
    report = await service.generate_property_report(
        payload, request, user_id=caller.user_id if caller else None,
    )
    return _pdf_response(report)


@router.post("/session")
async def session_report(
    request: Request,
    service: ReportService = Depends(get_report_service),
    caller: Optional[CallerInfo] = Depends(get_optional_caller),
):
    """Whole-tour PDF: cover page, then every property with its documents."""
    payload = await _read_json(request)
    report = await service.generate_session_report(
        payload, request, user_id=caller.user_id if caller else None,
    )
    return _pdf_response(report)
