"""
Report generation entry point.

Per request:
  validate input (400) → rate limit (429) → share-token check (401/403)
  → fetch records (404) → compose + bundle → PDF bytes

The rate limit runs before the token check so that token guessing is
throttled too. Anything unexpected past validation becomes a
``CompositionFailure`` with a generic message; details only go to the log.
"""

from __future__ import annotations

import asyncio
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Request
from pydantic import BaseModel, ValidationError

from homefolio.models.schemas import PropertyReportRequest, SessionReportRequest
from homefolio.services.bundler import assemble_pdf
from homefolio.services.composer import ComposedReport, ReportComposer
from homefolio.services.errors import (
    CompositionFailure, Forbidden, InvalidInput, NotFound, RateLimited, ReportError,
    Unauthorized,
)
from homefolio.services.rate_limit import (
    RateLimitConfig, RateLimiter, get_rate_limit_identifier,
)
from homefolio.services.store import ReportStore

logger = logging.getLogger(__name__)

PROPERTY_OPERATION = "generate_property_pdf"
SESSION_OPERATION = "generate_session_pdf"
MAX_TOKEN_LENGTH = 256


@dataclass(frozen=True)
class GeneratedReport:
    content: bytes
    filename: str
    page_count: int


def sanitize_filename(title: str, fallback: str = "report") -> str:
    """Filesystem-safe name: runs of non-alphanumerics become one hyphen."""
    cleaned = re.sub(r"[^A-Za-z0-9]+", "-", title or "").strip("-")
    return cleaned or fallback


def _parse(model: type[BaseModel], payload: Any) -> BaseModel:
    if not isinstance(payload, dict):
        raise InvalidInput("Request body must be a JSON object")
    try:
        return model.model_validate(payload)
    except ValidationError:
        raise InvalidInput("Malformed request body")


def _clean_token(token: Optional[str]) -> Optional[str]:
    token = (token or "").strip()
    if not token:
        return None
    if len(token) > MAX_TOKEN_LENGTH:
        raise InvalidInput("Malformed share token")
    return token


class ReportService:
    def __init__(
        self,
        store: ReportStore,
        limiter: RateLimiter,
        composer: ReportComposer,
        max_requests: int = 20,
        window_seconds: int = 3600,
    ):
        self.store = store
        self.limiter = limiter
        self.composer = composer
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def _check_rate_limit(self, identity: str, operation: str) -> None:
        config = RateLimitConfig(self.max_requests, self.window_seconds, operation)
        result = await self.limiter.check(identity, config)
        if not result.allowed:
            logger.warning("Rate limit exceeded for %s (%s)", identity, operation)
            raise RateLimited(result, limit=self.max_requests)

    async def _finish(self, report: ComposedReport, suffix: str) -> GeneratedReport:
        content = await asyncio.to_thread(assemble_pdf, report.pages, report.document_title)
        return GeneratedReport(
            content=content,
            filename=f"{sanitize_filename(report.title)}-{suffix}.pdf",
            page_count=report.page_count,
        )

    # ── Property report ──

    async def generate_property_report(
        self, payload: Any, request: Request, user_id: Optional[str] = None,
    ) -> GeneratedReport:
        body = _parse(PropertyReportRequest, payload)
        if not body.property_id:
            raise InvalidInput("Property ID and share token are required")
        try:
            property_id = uuid.UUID(body.property_id)
        except ValueError:
            raise InvalidInput("Malformed property ID")
        token = _clean_token(body.share_token)

        identity = get_rate_limit_identifier(request, user_id=user_id)
        await self._check_rate_limit(identity, PROPERTY_OPERATION)

        if token is None:
            raise Unauthorized("Share token is required")

        try:
            if not await self.store.is_valid_property_share_token(property_id, token):
                raise Forbidden("Invalid access")
            report = await self.composer.build_property_report(property_id)
            return await self._finish(report, "details")
        except ReportError:
            raise
        except Exception as exc:
            logger.exception("PDF generation error for property %s", property_id)
            raise CompositionFailure(cause=exc) from exc

    # ── Session report ──

    async def generate_session_report(
        self, payload: Any, request: Request, user_id: Optional[str] = None,
    ) -> GeneratedReport:
        body = _parse(SessionReportRequest, payload)
        token = _clean_token(body.share_token)
        if token is None:
            raise InvalidInput("Share token is required")

        identity = get_rate_limit_identifier(request, user_id=user_id)
        await self._check_rate_limit(identity, SESSION_OPERATION)

        try:
            if not await self.store.is_valid_share_token(token):
                raise Forbidden("Invalid access")
            session = await self.store.get_session_by_token(token)
            if session is None:
                raise NotFound("Session not found")
            report = await self.composer.build_session_report(session)
            result = await self._finish(report, "complete")
        except ReportError:
            raise
        except Exception as exc:
            logger.exception("PDF generation error for shared session")
            raise CompositionFailure(cause=exc) from exc

        logger.info("Generated PDF with %d pages for session %s", result.page_count, session.id)
        return result
