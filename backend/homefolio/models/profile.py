from __future__ import annotations

import uuid

from sqlalchemy import Column, Text, Uuid

from homefolio.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, unique=True, nullable=False, index=True)
    full_name = Column(Text, nullable=True)
    company = Column(Text, nullable=True)
    avatar_url = Column(Text, nullable=True)
    brokerage_name = Column(Text, nullable=True)
    brokerage_logo_url = Column(Text, nullable=True)
