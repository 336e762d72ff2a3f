"""Read access to sessions, properties, documents and agent profiles."""

from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from homefolio.models import PropertyDocument, Profile, SessionProperty, ShowingSession
from homefolio.models.schemas import (
    AgentIdentity, AttachmentRecord, PropertyRecord, SessionRecord,
)


class ReportStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Share-token checks ──

    async def is_valid_share_token(self, token: str) -> bool:
        return await self.get_session_by_token(token) is not None

    async def is_valid_property_share_token(self, property_id: uuid.UUID, token: str) -> bool:
        """True when *token* shares the session that owns *property_id*."""
        row = await self.db.scalar(
            select(SessionProperty.id)
            .join(ShowingSession, ShowingSession.id == SessionProperty.session_id)
            .where(SessionProperty.id == property_id, ShowingSession.share_token == token)
        )
        return row is not None

    # ── Records ──

    async def get_session_by_token(self, token: str) -> Optional[SessionRecord]:
        row = await self.db.scalar(
            select(ShowingSession).where(ShowingSession.share_token == token)
        )
        return SessionRecord.model_validate(row) if row else None

    async def get_session(self, session_id: uuid.UUID) -> Optional[SessionRecord]:
        row = await self.db.get(ShowingSession, session_id)
        return SessionRecord.model_validate(row) if row else None

    async def get_property(self, property_id: uuid.UUID) -> Optional[PropertyRecord]:
        row = await self.db.get(SessionProperty, property_id)
        return PropertyRecord.model_validate(row) if row else None

    async def list_session_properties(self, session_id: uuid.UUID) -> list[PropertyRecord]:
        rows = await self.db.scalars(
            select(SessionProperty)
            .where(SessionProperty.session_id == session_id)
            .order_by(SessionProperty.order_index, SessionProperty.created_at)
        )
        return [PropertyRecord.model_validate(r) for r in rows]

    async def list_attachments(self, property_ids: list[uuid.UUID]) -> dict[uuid.UUID, list[AttachmentRecord]]:
        """Attachments grouped by property, each group in upload order."""
        grouped: dict[uuid.UUID, list[AttachmentRecord]] = defaultdict(list)
        if not property_ids:
            return grouped
        rows = await self.db.scalars(
            select(PropertyDocument)
            .where(PropertyDocument.session_property_id.in_(property_ids))
            .order_by(PropertyDocument.created_at, PropertyDocument.id)
        )
        for row in rows:
            grouped[row.session_property_id].append(AttachmentRecord.model_validate(row))
        return grouped

    async def get_agent(self, admin_id: Optional[uuid.UUID]) -> AgentIdentity:
        if admin_id is None:
            return AgentIdentity()
        profile = await self.db.scalar(select(Profile).where(Profile.user_id == admin_id))
        if profile is None:
            return AgentIdentity()
        return AgentIdentity(
            full_name=profile.full_name or "Your Agent",
            company=profile.company,
            avatar_url=profile.avatar_url,
            brokerage_name=profile.brokerage_name,
            brokerage_logo_url=profile.brokerage_logo_url,
        )
