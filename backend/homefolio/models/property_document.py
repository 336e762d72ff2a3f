from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Uuid

from homefolio.database import Base


class PropertyDocument(Base):
    __tablename__ = "property_documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_property_id = Column(
        Uuid, ForeignKey("session_properties.id"), nullable=False, index=True,
    )
    name = Column(Text, nullable=False)
    doc_type = Column(String(32), nullable=True)
    file_url = Column(Text, nullable=False)  # storage path, not a URL
    created_at = Column(DateTime, default=datetime.utcnow)
