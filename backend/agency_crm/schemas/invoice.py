# backend/agency_crm/schemas/invoice.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from agency_crm.core.roles import InvoiceStatus
from agency_crm.schemas.common import UtcDatetime


class InvoiceCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    due_date: datetime
    service_id: Optional[UUID] = None
    status: InvoiceStatus = InvoiceStatus.PENDING


class InvoiceUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[InvoiceStatus] = None
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    due_date: Optional[datetime] = None
    # Defaults to now when status moves to PAID
    paid_date: Optional[datetime] = None


class InvoiceOut(BaseModel):
    id: UUID
    client_id: UUID
    service_id: Optional[UUID] = None
    service_title: Optional[str] = None
    amount: Decimal
    status: str
    due_date: UtcDatetime
    paid_date: Optional[UtcDatetime] = None
    created_at: UtcDatetime

    model_config = {"from_attributes": True}
