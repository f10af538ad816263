# backend/agency_crm/schemas/marketing.py
from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from agency_crm.schemas.common import UtcDatetime


class MarketingSettingsUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    meta_pixel_id: Optional[str] = Field(default=None, max_length=64)
    meta_api_token: Optional[str] = Field(default=None, max_length=512)


class MarketingSettingsOut(BaseModel):
    client_id: UUID
    meta_pixel_id: Optional[str] = None
    has_api_token: bool = False
    updated_at: Optional[UtcDatetime] = None


class BrowserEvent(BaseModel):
    """Payload posted by the pixel proxy script (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    event_name: str = Field(alias="eventName", min_length=1, max_length=120)
    event_data: dict[str, Any] = Field(default_factory=dict, alias="eventData")
    event_id: Optional[str] = Field(default=None, alias="eventId", max_length=128)
    url: Optional[str] = None
    user_agent: Optional[str] = Field(default=None, alias="userAgent")
    timestamp: Optional[int] = None
