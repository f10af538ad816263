# backend/agency_crm/schemas/ticket.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agency_crm.core.roles import TicketPriority, TicketStatus
from agency_crm.schemas.common import UtcDatetime


class TicketCreate(BaseModel):
    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=10000)
    priority: TicketPriority = TicketPriority.MEDIUM

    @field_validator("subject", "message")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("must not be blank.")
        return v2


class TicketUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None


class TicketOut(BaseModel):
    id: UUID
    client_id: UUID
    subject: str
    message: str
    status: str
    priority: str
    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = {"from_attributes": True}
