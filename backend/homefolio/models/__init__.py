from __future__ import annotations

from homefolio.models.showing_session import ShowingSession
from homefolio.models.session_property import SessionProperty
from homefolio.models.property_document import PropertyDocument
from homefolio.models.profile import Profile
from homefolio.models.rate_limit_log import RateLimitLog

__all__ = ["ShowingSession", "SessionProperty", "PropertyDocument", "Profile", "RateLimitLog"]
