from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Text, ForeignKey, JSON, Uuid,
)
from sqlalchemy.dialects.postgresql import ARRAY

from homefolio.database import Base


class SessionProperty(Base):
    __tablename__ = "session_properties"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("showing_sessions.id"), nullable=False, index=True)
    address = Column(Text, nullable=False)
    city = Column(Text, nullable=True)
    state = Column(String(32), nullable=True)
    zip_code = Column(String(16), nullable=True)
    price = Column(Float, nullable=True)
    beds = Column(Float, nullable=True)
    baths = Column(Float, nullable=True)
    sqft = Column(Integer, nullable=True)
    year_built = Column(Integer, nullable=True)
    lot_size = Column(Text, nullable=True)
    garage = Column(Text, nullable=True)
    heating = Column(Text, nullable=True)
    cooling = Column(Text, nullable=True)
    property_type = Column(Text, nullable=True)
    hoa_fee = Column(Float, nullable=True)
    summary = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    agent_notes = Column(Text, nullable=True)
    features = Column(ARRAY(Text).with_variant(JSON(), "sqlite"), nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    showing_time = Column(String(16), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
