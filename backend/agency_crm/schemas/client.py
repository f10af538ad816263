# backend/agency_crm/schemas/client.py
from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from agency_crm.core.roles import ClientPlan
from agency_crm.models.client import Client
from agency_crm.schemas.auth import ClientOut
from agency_crm.schemas.common import UtcDatetime
from agency_crm.schemas.invoice import InvoiceOut
from agency_crm.schemas.service import ServiceOut
from agency_crm.schemas.ticket import TicketOut


class ClientUpdate(BaseModel):
    """Master-side edit. Slug is immutable: it is the tenant's hostname."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    email: Optional[EmailStr] = None
    plan: Optional[ClientPlan] = None

    document: Optional[str] = Field(default=None, max_length=32)
    phone: Optional[str] = Field(default=None, max_length=32)
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=120)
    state: Optional[str] = Field(default=None, max_length=64)
    zip_code: Optional[str] = Field(default=None, max_length=16)

    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return Client.normalize_email(v) if v is not None else None


class ClientDetailOut(ClientOut):
    services: list[ServiceOut] = Field(default_factory=list)
    invoices: list[InvoiceOut] = Field(default_factory=list)
    tickets: list[TicketOut] = Field(default_factory=list)


class ClientIdentity(BaseModel):
    name: str
    slug: str
    email: EmailStr


class DashboardStats(BaseModel):
    active_services: int
    pending_invoices_amount: float
    open_tickets: int


class ActivityItem(BaseModel):
    type: Literal["invoice", "ticket"]
    id: UUID
    description: str
    date: UtcDatetime
    amount: Optional[float] = None


class ClientDashboard(BaseModel):
    client: ClientIdentity
    stats: DashboardStats
    recent_activity: list[ActivityItem]


class ServicesSummary(BaseModel):
    total_services: int
    active_services: int
    open_tickets: int
    pending_invoices: int


class UpcomingEvent(BaseModel):
    id: UUID
    date: UtcDatetime
    title: str
    description: str
    amount: Decimal
    type: Literal["invoice"] = "invoice"
    status: str


class ServicesDashboard(BaseModel):
    summary: ServicesSummary
    recent_tickets: list[TicketOut]
    upcoming_events: list[UpcomingEvent]
    services: list[ServiceOut]


class SidebarLink(BaseModel):
    title: str
    url: str


class SidebarEntry(BaseModel):
    title: str
    url: str
    icon: str
    items: list[SidebarLink] = Field(default_factory=list)
