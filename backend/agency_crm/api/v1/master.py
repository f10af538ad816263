# backend/agency_crm/api/v1/master.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agency_crm.api.deps.auth import get_current_admin, require_admin_roles
from agency_crm.core.logging import get_logger
from agency_crm.core.roles import AdminRole, InvoiceStatus, ServiceStatus, TicketStatus
from agency_crm.crud.client import create_admin, create_client, get_client_by_email, get_client_detail
from agency_crm.crud.service import build_modules, ensure_head_exists, get_service
from agency_crm.db.session import get_db
from agency_crm.models.admin import Admin
from agency_crm.models.client import Client
from agency_crm.models.invoice import Invoice
from agency_crm.models.service import Service
from agency_crm.models.ticket import Ticket
from agency_crm.schemas.auth import AdminCreate, AdminPublic, ClientOut, ClientRegister
from agency_crm.schemas.client import ClientDetailOut, ClientUpdate
from agency_crm.schemas.invoice import InvoiceCreate, InvoiceOut, InvoiceUpdate
from agency_crm.schemas.master import MasterDashboard, MasterStats
from agency_crm.schemas.service import ServiceCreate, ServiceOut, ServiceUpdate
from agency_crm.schemas.ticket import TicketOut, TicketUpdate

# Mounted at /master (host-routed area) and /api/master. Every route needs an admin.
router = APIRouter(tags=["master"], dependencies=[Depends(get_current_admin)])

log = get_logger(__name__)

RECENT_CLIENTS_LIMIT = 5


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------
def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _get_client_or_404(db: AsyncSession, client_id: uuid.UUID) -> Client:
    client = await db.get(Client, client_id)
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return client


async def _get_invoice(db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
    stmt = (
        select(Invoice)
        .where(Invoice.id == invoice_id)
        .options(selectinload(Invoice.service))
        .execution_options(populate_existing=True)
    )
    invoice = (await db.execute(stmt)).scalar_one_or_none()
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return invoice


async def _ensure_service_of_client(db: AsyncSession, service_id: uuid.UUID | None, client_id: uuid.UUID) -> None:
    if service_id is None:
        return
    service = await db.get(Service, service_id)
    if not service or service.client_id != client_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="service_id does not belong to this client",
        )


# ---------------------------------------------------------
# Dashboard
# ---------------------------------------------------------
@router.get("/", response_model=MasterDashboard, include_in_schema=False)
@router.get("/dashboard", response_model=MasterDashboard)
async def dashboard(db: AsyncSession = Depends(get_db)) -> MasterDashboard:
    clients = (await db.execute(select(func.count(Client.id)))).scalar() or 0
    active_services = (
        await db.execute(select(func.count(Service.id)).where(Service.status == ServiceStatus.ACTIVE.value))
    ).scalar() or 0
    open_tickets = (
        await db.execute(select(func.count(Ticket.id)).where(Ticket.status == TicketStatus.OPEN.value))
    ).scalar() or 0
    pending_amount = (
        await db.execute(
            select(func.coalesce(func.sum(Invoice.amount), 0)).where(Invoice.status == InvoiceStatus.PENDING.value)
        )
    ).scalar()

    recent = (
        await db.execute(select(Client).order_by(Client.created_at.desc()).limit(RECENT_CLIENTS_LIMIT))
    ).scalars().all()

    return MasterDashboard(
        stats=MasterStats(
            clients=int(clients),
            active_services=int(active_services),
            open_tickets=int(open_tickets),
            pending_invoices_amount=float(pending_amount or 0),
        ),
        recent_clients=[ClientOut.model_validate(c) for c in recent],
    )


# ---------------------------------------------------------
# Clients
# ---------------------------------------------------------
@router.get("/users", response_model=List[ClientOut])
async def list_clients(db: AsyncSession = Depends(get_db)):
    res = await db.execute(select(Client).order_by(Client.created_at.desc()))
    return list(res.scalars().all())


@router.get("/users/{client_id}", response_model=ClientDetailOut)
async def get_client(client_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    client = await get_client_detail(db, client_id)
    return ClientDetailOut(
        **ClientOut.model_validate(client).model_dump(),
        services=[ServiceOut.model_validate(s) for s in sorted(client.services, key=lambda s: s.created_at, reverse=True)],
        invoices=[InvoiceOut.model_validate(i) for i in sorted(client.invoices, key=lambda i: i.due_date, reverse=True)],
        tickets=[TicketOut.model_validate(t) for t in sorted(client.tickets, key=lambda t: t.created_at, reverse=True)],
    )


@router.post("/clients", response_model=ClientOut, status_code=status.HTTP_201_CREATED)
async def create_client_account(
    payload: ClientRegister,
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    client = await create_client(db, payload)
    log.info("client_created", client_id=str(client.id), slug=client.slug, by_admin=str(admin.id))
    return client


@router.patch("/users/{client_id}", response_model=ClientOut)
async def update_client(
    client_id: uuid.UUID,
    payload: ClientUpdate,
    db: AsyncSession = Depends(get_db),
):
    client = await _get_client_or_404(db, client_id)

    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields provided to update.")

    for field in ("name", "email", "plan", "is_active"):
        if field in data and data[field] is None:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"{field} cannot be null")

    if "email" in data and data["email"] != client.email:
        existing = await get_client_by_email(db, data["email"])
        if existing and existing.id != client.id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    for field, value in data.items():
        if field == "plan":
            value = value.value
        setattr(client, field, value)

    await db.commit()
    await db.refresh(client)
    return client


# ---------------------------------------------------------
# Services
# ---------------------------------------------------------
@router.post("/users/{client_id}/services", response_model=ServiceOut, status_code=status.HTTP_201_CREATED)
async def create_service(
    client_id: uuid.UUID,
    payload: ServiceCreate,
    db: AsyncSession = Depends(get_db),
):
    await _get_client_or_404(db, client_id)
    await ensure_head_exists(db, payload.head_id)

    service = Service(
        client_id=client_id,
        head_id=payload.head_id,
        title=payload.title,
        description=payload.description,
        status=payload.status.value,
        sector=payload.sector,
        price=payload.price,
        features=list(payload.features),
        modules=build_modules(payload.modules),
    )
    db.add(service)
    await db.commit()

    return await get_service(db, service.id)


@router.put("/services/{service_id}", response_model=ServiceOut)
async def update_service(
    service_id: uuid.UUID,
    payload: ServiceUpdate,
    db: AsyncSession = Depends(get_db),
):
    service = await get_service(db, service_id)
    data = payload.model_dump(exclude_unset=True)

    if "title" in data and data["title"] is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="title cannot be null")

    if "head_id" in data:
        await ensure_head_exists(db, data["head_id"])
        service.head_id = data["head_id"]

    for field in ("title", "description", "sector", "price"):
        if field in data:
            setattr(service, field, data[field])

    if data.get("status") is not None:
        service.status = payload.status.value

    # features / modules are replaced wholesale
    if payload.features is not None:
        service.features = list(payload.features)
    if payload.modules is not None:
        service.modules = build_modules(payload.modules)

    await db.commit()
    return await get_service(db, service_id)


@router.delete("/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(service_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> Response:
    service = await get_service(db, service_id)
    await db.delete(service)
    await db.commit()
    log.info("service_deleted", service_id=str(service_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------
# Invoices
# ---------------------------------------------------------
@router.post("/users/{client_id}/invoices", response_model=InvoiceOut, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    client_id: uuid.UUID,
    payload: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
):
    await _get_client_or_404(db, client_id)
    await _ensure_service_of_client(db, payload.service_id, client_id)

    invoice = Invoice(
        client_id=client_id,
        service_id=payload.service_id,
        amount=payload.amount,
        status=payload.status.value,
        due_date=payload.due_date,
        paid_date=_utcnow() if payload.status == InvoiceStatus.PAID else None,
    )
    db.add(invoice)
    await db.commit()

    return await _get_invoice(db, invoice.id)


@router.patch("/invoices/{invoice_id}", response_model=InvoiceOut)
async def update_invoice(
    invoice_id: uuid.UUID,
    payload: InvoiceUpdate,
    db: AsyncSession = Depends(get_db),
):
    invoice = await _get_invoice(db, invoice_id)

    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields provided to update.")

    if data.get("amount") is not None:
        invoice.amount = data["amount"]
    if data.get("due_date") is not None:
        invoice.due_date = data["due_date"]
    if "paid_date" in data:
        invoice.paid_date = data["paid_date"]

    if payload.status is not None:
        invoice.status = payload.status.value
        if payload.status == InvoiceStatus.PAID and invoice.paid_date is None:
            invoice.paid_date = _utcnow()

    await db.commit()
    return await _get_invoice(db, invoice_id)


# ---------------------------------------------------------
# Tickets
# ---------------------------------------------------------
@router.patch("/tickets/{ticket_id}", response_model=TicketOut)
async def update_ticket(
    ticket_id: uuid.UUID,
    payload: TicketUpdate,
    db: AsyncSession = Depends(get_db),
):
    ticket = await db.get(Ticket, ticket_id)
    if not ticket:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found")

    if payload.status is None and payload.priority is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields provided to update.")

    if payload.status is not None:
        ticket.status = payload.status.value
    if payload.priority is not None:
        ticket.priority = payload.priority.value

    await db.commit()
    await db.refresh(ticket)
    return ticket


# ---------------------------------------------------------
# Admins
# ---------------------------------------------------------
@router.get("/admins", response_model=List[AdminPublic])
async def list_admins(db: AsyncSession = Depends(get_db)):
    res = await db.execute(select(Admin).where(Admin.is_active.is_(True)).order_by(Admin.name))
    return list(res.scalars().all())


@router.post("/admins", response_model=AdminPublic, status_code=status.HTTP_201_CREATED)
async def create_admin_account(
    payload: AdminCreate,
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(require_admin_roles(AdminRole.MASTER.value)),
):
    created = await create_admin(db, payload)
    log.info("admin_created", admin_id=str(created.id), role=created.role, by_admin=str(admin.id))
    return created
