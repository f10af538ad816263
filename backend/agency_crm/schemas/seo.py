# backend/agency_crm/schemas/seo.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agency_crm.schemas.common import UtcDatetime, normalize_keys


class SeoSettingsUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    global_title: Optional[str] = Field(default=None, max_length=255)
    global_description: Optional[str] = Field(default=None, max_length=1000)
    google_search_console_id: Optional[str] = Field(default=None, max_length=255)
    google_analytics_id: Optional[str] = Field(default=None, max_length=64)
    target_keywords: Optional[list[str]] = None

    @field_validator("target_keywords")
    @classmethod
    def validate_keywords(cls, v: Optional[list[str]]) -> list[str]:
        return normalize_keys(v)


class SeoSettingsOut(BaseModel):
    id: UUID
    client_id: UUID
    global_title: Optional[str] = None
    global_description: Optional[str] = None
    google_search_console_id: Optional[str] = None
    google_analytics_id: Optional[str] = None
    target_keywords: list[str] = Field(default_factory=list)
    updated_at: UtcDatetime

    model_config = {"from_attributes": True}
