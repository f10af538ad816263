# backend/agency_crm/crud/client.py
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agency_crm.core.security import hash_password
from agency_crm.models.admin import Admin
from agency_crm.models.client import Client
from agency_crm.models.invoice import Invoice
from agency_crm.models.service import Service
from agency_crm.schemas.auth import AdminCreate, ClientRegister


async def get_client_by_email(db: AsyncSession, email: str) -> Optional[Client]:
    res = await db.execute(select(Client).where(Client.email == email.strip().lower()))
    return res.scalar_one_or_none()


async def get_admin_by_email(db: AsyncSession, email: str) -> Optional[Admin]:
    res = await db.execute(select(Admin).where(Admin.email == email.strip().lower()))
    return res.scalar_one_or_none()


async def ensure_client_unique(db: AsyncSession, *, email: str, slug: Optional[str] = None) -> None:
    """409 when the email or slug already belongs to a client."""
    if await get_client_by_email(db, email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    if slug is not None:
        taken = (await db.execute(select(Client.id).where(Client.slug == slug))).scalar_one_or_none()
        if taken:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug already taken")


async def create_client(db: AsyncSession, payload: ClientRegister) -> Client:
    await ensure_client_unique(db, email=payload.email, slug=payload.slug)

    client = Client(
        name=payload.name,
        email=payload.email,
        slug=payload.slug,
        password_hash=hash_password(payload.password),
        plan=payload.plan.value,
        document=payload.document,
        phone=payload.phone,
        address=payload.address,
        city=payload.city,
        state=payload.state,
        zip_code=payload.zip_code,
        is_active=True,
    )
    db.add(client)
    await db.commit()
    await db.refresh(client)
    return client


async def create_admin(db: AsyncSession, payload: AdminCreate) -> Admin:
    if await get_admin_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Admin already exists")

    admin = Admin(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role.value,
        is_active=True,
    )
    db.add(admin)
    await db.commit()
    await db.refresh(admin)
    return admin


async def get_client_detail(db: AsyncSession, client_id: uuid.UUID) -> Client:
    stmt = (
        select(Client)
        .where(Client.id == client_id)
        .options(
            selectinload(Client.services).selectinload(Service.head),
            selectinload(Client.services).selectinload(Service.modules),
            selectinload(Client.invoices).selectinload(Invoice.service),
            selectinload(Client.tickets),
        )
        # collections already loaded in this session would otherwise be reused stale
        .execution_options(populate_existing=True)
    )
    client = (await db.execute(stmt)).scalar_one_or_none()
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return client
