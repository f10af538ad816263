# backend/agency_crm/crud/service.py
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agency_crm.models.admin import Admin
from agency_crm.models.service import Service, ServiceModule
from agency_crm.schemas.service import ServiceModuleIn


def service_options():
    return (selectinload(Service.head), selectinload(Service.modules))


async def get_service(db: AsyncSession, service_id: uuid.UUID) -> Service:
    stmt = (
        select(Service)
        .where(Service.id == service_id)
        .options(*service_options())
        .execution_options(populate_existing=True)
    )
    service = (await db.execute(stmt)).scalar_one_or_none()
    if not service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return service


async def ensure_head_exists(db: AsyncSession, head_id: Optional[uuid.UUID]) -> None:
    if head_id is None:
        return
    if not await db.get(Admin, head_id):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"head_id does not reference an existing admin: {head_id}",
        )


def build_modules(modules: list[ServiceModuleIn]) -> list[ServiceModule]:
    return [ServiceModule(key=m.key, name=m.name, status=m.status) for m in modules]


async def list_client_services(db: AsyncSession, client_id: uuid.UUID, *, active_only: bool = False) -> list[Service]:
    stmt = (
        select(Service)
        .where(Service.client_id == client_id)
        .options(*service_options())
        .order_by(Service.created_at.desc())
    )
    if active_only:
        stmt = stmt.where(Service.status == "ACTIVE")
    return list((await db.execute(stmt)).scalars().all())
