# backend/agency_crm/schemas/master.py
from __future__ import annotations

from pydantic import BaseModel

from agency_crm.schemas.auth import ClientOut


class MasterStats(BaseModel):
    clients: int
    active_services: int
    open_tickets: int
    pending_invoices_amount: float


class MasterDashboard(BaseModel):
    stats: MasterStats
    recent_clients: list[ClientOut]
