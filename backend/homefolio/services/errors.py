"""Errors surfaced to report callers.

Each carries the HTTP status it maps to; the API layer turns them into the
``{"error": ...}`` envelope. Asset failures (logo, avatar, attachments) are
not represented here: they degrade locally and never reach the caller.
"""

from __future__ import annotations

from typing import Optional

from homefolio.services.rate_limit import RateLimitResult


class ReportError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ReportError):
    status_code = 400


class Unauthorized(ReportError):
    status_code = 401


class Forbidden(ReportError):
    status_code = 403


class NotFound(ReportError):
    status_code = 404


class RateLimited(ReportError):
    status_code = 429

    def __init__(self, result: RateLimitResult, limit: int):
        super().__init__(result.error or "Rate limit exceeded")
        self.result = result
        self.limit = limit


class CompositionFailure(ReportError):
    status_code = 500

    def __init__(self, message: str = "Failed to generate PDF", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
