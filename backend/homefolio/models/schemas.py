from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


# ── Requests ──

class PropertyReportRequest(BaseModel):
    property_id: Optional[str] = Field(default=None, alias="propertyId")
    share_token: Optional[str] = Field(default=None, alias="shareToken")

    model_config = {"populate_by_name": True}


class SessionReportRequest(BaseModel):
    share_token: Optional[str] = Field(default=None, alias="shareToken")

    model_config = {"populate_by_name": True}


# ── Records read from the collaborator store ──

class PropertyRecord(BaseModel):
    id: uuid.UUID
    session_id: uuid.UUID
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    price: Optional[float] = None
    beds: Optional[float] = None
    baths: Optional[float] = None
    sqft: Optional[int] = None
    year_built: Optional[int] = None
    lot_size: Optional[str] = None
    garage: Optional[str] = None
    heating: Optional[str] = None
    cooling: Optional[str] = None
    property_type: Optional[str] = None
    hoa_fee: Optional[float] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    agent_notes: Optional[str] = None
    features: Optional[list[str]] = None
    order_index: int = 0
    showing_time: Optional[str] = None

    model_config = {"from_attributes": True}

    @property
    def full_address(self) -> str:
        parts = [self.address, self.city, self.state, self.zip_code]
        return ", ".join(p for p in parts if p)


class AttachmentRecord(BaseModel):
    id: uuid.UUID
    session_property_id: uuid.UUID
    name: str
    doc_type: Optional[str] = None
    file_url: str

    model_config = {"from_attributes": True}


class SessionRecord(BaseModel):
    id: uuid.UUID
    admin_id: uuid.UUID
    title: str
    client_name: str
    session_date: Optional[date] = None
    share_token: Optional[str] = None

    model_config = {"from_attributes": True}


class AgentIdentity(BaseModel):
    full_name: str = "Your Agent"
    company: Optional[str] = None
    avatar_url: Optional[str] = None
    brokerage_name: Optional[str] = None
    brokerage_logo_url: Optional[str] = None
