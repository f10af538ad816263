# backend/agency_crm/schemas/tracking.py
from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from agency_crm.core.roles import DestinationPlatform, SourceStatus, SourceType
from agency_crm.schemas.common import UtcDatetime


# -----------------------------
# Datasets
# -----------------------------
class DatasetCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)


class DatasetUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)


class DestinationOut(BaseModel):
    id: UUID
    dataset_id: UUID
    platform: str
    config: dict[str, Any] = Field(default_factory=dict)
    enabled: bool
    created_at: UtcDatetime

    model_config = {"from_attributes": True}


class SourceOut(BaseModel):
    id: UUID
    dataset_id: UUID
    type: str
    provider: Optional[str] = None
    name: str
    config: dict[str, Any] = Field(default_factory=dict)
    enabled: bool
    status: str
    created_at: UtcDatetime

    model_config = {"from_attributes": True}


class DatasetOut(BaseModel):
    id: UUID
    client_id: UUID
    name: str
    description: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = {"from_attributes": True}


class DatasetDetailOut(DatasetOut):
    destinations: list[DestinationOut] = Field(default_factory=list)
    sources: list[SourceOut] = Field(default_factory=list)
    destination_count: int = 0
    source_count: int = 0


# -----------------------------
# Destinations / sources
# -----------------------------
class DestinationCreate(BaseModel):
    platform: DestinationPlatform
    # META: {"pixelId": "...", "apiToken": "..."}
    config: dict[str, Any] = Field(default_factory=dict)


class DestinationUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: Optional[bool] = None
    config: Optional[dict[str, Any]] = None


class SourceCreate(BaseModel):
    type: SourceType
    name: str = Field(min_length=1, max_length=200)
    provider: Optional[str] = Field(default=None, max_length=50)
    config: dict[str, Any] = Field(default_factory=dict)


class SourceUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    enabled: Optional[bool] = None
    config: Optional[dict[str, Any]] = None
    status: Optional[SourceStatus] = None


# -----------------------------
# Events
# -----------------------------
class DeliveryOut(BaseModel):
    id: UUID
    destination_id: UUID
    platform: Optional[str] = None
    status: str
    response_code: Optional[int] = None
    response_body: Optional[str] = None
    created_at: UtcDatetime


class EventOut(BaseModel):
    id: UUID
    event_id: str
    event_name: str
    event_data: dict[str, Any] = Field(default_factory=dict)
    url: str
    user_agent: str
    client_ip: Optional[str] = None
    status: str
    created_at: UtcDatetime
    deliveries: list[DeliveryOut] = Field(default_factory=list)


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class EventPage(BaseModel):
    data: list[EventOut]
    meta: PageMeta


class DatasetStats(BaseModel):
    total_events_24h: int
    # index 23 is the current hour, index 0 is 23 hours earlier
    events_by_hour: list[int]
    last_event_time: Optional[UtcDatetime] = None


class CollectAccepted(BaseModel):
    status: str = "received"
