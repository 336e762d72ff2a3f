from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Date, Text, Uuid

from homefolio.database import Base


class ShowingSession(Base):
    __tablename__ = "showing_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    admin_id = Column(Uuid, nullable=False)
    title = Column(Text, nullable=False)
    client_name = Column(Text, nullable=False)
    session_date = Column(Date, nullable=True)
    share_token = Column(String(128), unique=True, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
