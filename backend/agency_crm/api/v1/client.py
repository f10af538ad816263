# backend/agency_crm/api/v1/client.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agency_crm.api.deps.tenant import get_current_client
from agency_crm.core.logging import get_logger
from agency_crm.core.roles import InvoiceStatus, ServiceStatus, TicketStatus
from agency_crm.core.sidebar import SidebarService, build_sidebar_menu
from agency_crm.crud.service import list_client_services
from agency_crm.db.base import as_utc
from agency_crm.db.session import get_db
from agency_crm.models.admin import Admin
from agency_crm.models.client import Client
from agency_crm.models.invoice import Invoice
from agency_crm.models.service import Service
from agency_crm.models.ticket import Ticket
from agency_crm.schemas.auth import AdminPublic
from agency_crm.schemas.client import (
    ActivityItem,
    ClientDashboard,
    ClientIdentity,
    DashboardStats,
    ServicesDashboard,
    ServicesSummary,
    SidebarEntry,
    UpcomingEvent,
)
from agency_crm.schemas.invoice import InvoiceOut
from agency_crm.schemas.service import ServiceOut
from agency_crm.schemas.ticket import TicketCreate, TicketOut

# Mounted at /client (tenant from x-client-slug) and /api/{client_slug}
router = APIRouter(tags=["client"])

log = get_logger(__name__)

RECENT_PER_KIND = 3
RECENT_ACTIVITY_LIMIT = 5
SERVICES_DASHBOARD_TICKETS = 5
SERVICES_DASHBOARD_INVOICES = 20


# ---------------------------------------------------------
# Dashboard
# ---------------------------------------------------------
@router.get("/", response_model=ClientDashboard, include_in_schema=False)
@router.get("/dashboard", response_model=ClientDashboard)
async def dashboard(
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
) -> ClientDashboard:
    active_services = (
        await db.execute(
            select(func.count(Service.id)).where(
                Service.client_id == client.id,
                Service.status == ServiceStatus.ACTIVE.value,
            )
        )
    ).scalar() or 0
    pending_amount = (
        await db.execute(
            select(func.coalesce(func.sum(Invoice.amount), 0)).where(
                Invoice.client_id == client.id,
                Invoice.status == InvoiceStatus.PENDING.value,
            )
        )
    ).scalar()
    open_tickets = (
        await db.execute(
            select(func.count(Ticket.id)).where(
                Ticket.client_id == client.id,
                Ticket.status == TicketStatus.OPEN.value,
            )
        )
    ).scalar() or 0

    recent_invoices = (
        await db.execute(
            select(Invoice)
            .where(Invoice.client_id == client.id)
            .order_by(Invoice.created_at.desc())
            .limit(RECENT_PER_KIND)
        )
    ).scalars().all()
    recent_tickets = (
        await db.execute(
            select(Ticket)
            .where(Ticket.client_id == client.id)
            .order_by(Ticket.created_at.desc())
            .limit(RECENT_PER_KIND)
        )
    ).scalars().all()

    activity = [
        ActivityItem(
            type="invoice",
            id=inv.id,
            description=f"Invoice #{str(inv.id)[-4:]} - {inv.status}",
            date=as_utc(inv.created_at),
            amount=float(inv.amount),
        )
        for inv in recent_invoices
    ] + [
        ActivityItem(
            type="ticket",
            id=t.id,
            description=f"Ticket: {t.subject}",
            date=as_utc(t.created_at),
        )
        for t in recent_tickets
    ]
    activity.sort(key=lambda a: a.date, reverse=True)

    return ClientDashboard(
        client=ClientIdentity(name=client.name, slug=client.slug, email=client.email),
        stats=DashboardStats(
            active_services=int(active_services),
            pending_invoices_amount=float(pending_amount or 0),
            open_tickets=int(open_tickets),
        ),
        recent_activity=activity[:RECENT_ACTIVITY_LIMIT],
    )


# ---------------------------------------------------------
# Services
# ---------------------------------------------------------
@router.get("/services", response_model=List[ServiceOut])
async def list_services(
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    return await list_client_services(db, client.id)


@router.get("/services/dashboard", response_model=ServicesDashboard)
async def services_dashboard(
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
) -> ServicesDashboard:
    services = await list_client_services(db, client.id)
    tickets = (
        await db.execute(
            select(Ticket)
            .where(Ticket.client_id == client.id)
            .order_by(Ticket.created_at.desc())
            .limit(SERVICES_DASHBOARD_TICKETS)
        )
    ).scalars().all()
    invoices = (
        await db.execute(
            select(Invoice)
            .where(Invoice.client_id == client.id)
            .order_by(Invoice.due_date.asc())
            .limit(SERVICES_DASHBOARD_INVOICES)
        )
    ).scalars().all()

    # Counts cover only the windows fetched above, not the whole history
    return ServicesDashboard(
        summary=ServicesSummary(
            total_services=len(services),
            active_services=sum(1 for s in services if s.status == ServiceStatus.ACTIVE.value),
            open_tickets=sum(1 for t in tickets if t.status == TicketStatus.OPEN.value),
            pending_invoices=sum(1 for i in invoices if i.status == InvoiceStatus.PENDING.value),
        ),
        recent_tickets=[TicketOut.model_validate(t) for t in tickets],
        upcoming_events=[
            UpcomingEvent(
                id=i.id,
                date=i.due_date,
                title="Invoice",
                description="Invoice due",
                amount=i.amount,
                status=i.status,
            )
            for i in invoices
        ],
        services=[ServiceOut.model_validate(s) for s in services],
    )


# ---------------------------------------------------------
# Tickets
# ---------------------------------------------------------
@router.get("/tickets", response_model=List[TicketOut])
async def list_tickets(
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    res = await db.execute(
        select(Ticket).where(Ticket.client_id == client.id).order_by(Ticket.created_at.desc())
    )
    return list(res.scalars().all())


@router.post("/tickets", response_model=TicketOut, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreate,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    ticket = Ticket(
        client_id=client.id,
        subject=payload.subject,
        message=payload.message,
        priority=payload.priority.value,
        status=TicketStatus.OPEN.value,
    )
    db.add(ticket)
    await db.commit()
    await db.refresh(ticket)

    log.info("ticket_created", ticket_id=str(ticket.id), priority=ticket.priority)
    return ticket


# ---------------------------------------------------------
# Invoices / team
# ---------------------------------------------------------
@router.get("/invoices", response_model=List[InvoiceOut])
async def list_invoices(
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    res = await db.execute(
        select(Invoice)
        .where(Invoice.client_id == client.id)
        .options(selectinload(Invoice.service))
        .order_by(Invoice.due_date.desc())
    )
    return list(res.scalars().all())


@router.get("/team", response_model=List[AdminPublic])
async def team(
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    res = await db.execute(select(Admin).where(Admin.is_active.is_(True)).order_by(Admin.name))
    return list(res.scalars().all())


# ---------------------------------------------------------
# Navigation
# ---------------------------------------------------------
@router.get("/sidebar", response_model=List[SidebarEntry])
async def sidebar(
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    services = await list_client_services(db, client.id, active_only=True)
    # Oldest first so the menu order is stable as services are added
    services.sort(key=lambda s: s.created_at)
    return build_sidebar_menu(
        SidebarService(
            id=str(s.id),
            title=s.title,
            features=tuple(s.features or ()),
            module_keys=tuple(m.key for m in s.modules),
        )
        for s in services
    )
