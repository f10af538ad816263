# backend/agency_crm/api/v1/marketing.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agency_crm.api.deps.tenant import get_current_client
from agency_crm.core.logging import get_logger
from agency_crm.db.session import get_db
from agency_crm.models.client import Client
from agency_crm.models.marketing_settings import MarketingSettings
from agency_crm.schemas.marketing import MarketingSettingsOut, MarketingSettingsUpdate

router = APIRouter(prefix="/marketing", tags=["marketing"])

log = get_logger(__name__)


async def get_marketing_settings(db: AsyncSession, client_id) -> MarketingSettings | None:
    res = await db.execute(select(MarketingSettings).where(MarketingSettings.client_id == client_id))
    return res.scalar_one_or_none()


def _to_out(client: Client, row: MarketingSettings | None) -> MarketingSettingsOut:
    if row is None:
        return MarketingSettingsOut(client_id=client.id)
    return MarketingSettingsOut(
        client_id=client.id,
        meta_pixel_id=row.meta_pixel_id,
        has_api_token=bool(row.meta_api_token),
        updated_at=row.updated_at,
    )


@router.get("/settings", response_model=MarketingSettingsOut)
async def get_settings(
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
) -> MarketingSettingsOut:
    return _to_out(client, await get_marketing_settings(db, client.id))


@router.post("/settings", response_model=MarketingSettingsOut)
async def update_settings(
    payload: MarketingSettingsUpdate,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
) -> MarketingSettingsOut:
    row = await get_marketing_settings(db, client.id)
    if row is None:
        row = MarketingSettings(client_id=client.id)
        db.add(row)

    data = payload.model_dump(exclude_unset=True)
    if "meta_pixel_id" in data:
        row.meta_pixel_id = (data["meta_pixel_id"] or "").strip() or None
    # Omitting the token keeps the stored one; it is never read back
    if "meta_api_token" in data:
        row.meta_api_token = (data["meta_api_token"] or "").strip() or None

    await db.commit()
    await db.refresh(row)

    log.info("marketing_settings_saved", client_id=str(client.id), has_pixel=bool(row.meta_pixel_id))
    return _to_out(client, row)
