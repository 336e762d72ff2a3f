from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Index, Uuid

from homefolio.database import Base


class RateLimitLog(Base):
    __tablename__ = "rate_limit_logs"
    __table_args__ = (
        Index("ix_rate_limit_logs_lookup", "user_id", "operation", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String(255), nullable=False)
    operation = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
