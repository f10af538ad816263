# backend/agency_crm/api/v1/seo.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agency_crm.api.deps.tenant import get_current_client
from agency_crm.db.session import get_db
from agency_crm.models.client import Client
from agency_crm.models.seo_settings import SeoSettings
from agency_crm.schemas.seo import SeoSettingsOut, SeoSettingsUpdate

router = APIRouter(prefix="/seo", tags=["seo"])


async def _get_settings(db: AsyncSession, client: Client) -> SeoSettings | None:
    res = await db.execute(select(SeoSettings).where(SeoSettings.client_id == client.id))
    return res.scalar_one_or_none()


@router.get("/settings", response_model=SeoSettingsOut)
async def get_settings(
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    """
    First access creates an empty row so the dashboard always has something to edit.
    """
    row = await _get_settings(db, client)
    if row is None:
        row = SeoSettings(client_id=client.id, target_keywords=[])
        db.add(row)
        await db.commit()
        await db.refresh(row)
    return row


@router.put("/settings", response_model=SeoSettingsOut)
async def update_settings(
    payload: SeoSettingsUpdate,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    row = await _get_settings(db, client)
    if row is None:
        row = SeoSettings(client_id=client.id)
        db.add(row)

    row.global_title = payload.global_title
    row.global_description = payload.global_description
    row.google_search_console_id = payload.google_search_console_id
    row.google_analytics_id = payload.google_analytics_id
    row.target_keywords = list(payload.target_keywords or [])

    await db.commit()
    await db.refresh(row)
    return row
