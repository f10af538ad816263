# backend/agency_crm/api/v1/public.py
from __future__ import annotations

import uuid
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agency_crm.api.v1.marketing import get_marketing_settings
from agency_crm.core.logging import get_logger
from agency_crm.db.session import get_db, get_session_factory
from agency_crm.models.client import Client
from agency_crm.models.tracking import TrackingDataset
from agency_crm.schemas.marketing import BrowserEvent
from agency_crm.schemas.tracking import CollectAccepted
from agency_crm.services.http import HttpClientFactory, get_http_client_factory
from agency_crm.services.marketing import NO_PIXEL_SCRIPT, forward_browser_event, generate_pixel_script
from agency_crm.services.tracking_pipeline import CollectedEvent, process_event

# Mounted at /api/public. No authentication: these are called from browsers
# and third-party webhooks.
router = APIRouter(tags=["public"])

log = get_logger(__name__)

JAVASCRIPT_MEDIA_TYPE = "application/javascript"


def client_ip_of(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


# ---------------------------------------------------------
# Tracking collection
# ---------------------------------------------------------
@router.post(
    "/tracking/collect/{dataset_id}",
    response_model=CollectAccepted,
)
async def collect_event(
    dataset_id: uuid.UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    payload: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    http_client_factory: HttpClientFactory = Depends(get_http_client_factory),
) -> CollectAccepted:
    """
    Body: {"eventName": "Purchase", "eventData": {...}, "eventId"?, "url"?, "timestamp"?}
    Answers immediately; persistence and fan-out run after the response.
    """
    if not payload.get("eventName"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="eventName is required")

    if not await db.get(TrackingDataset, dataset_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dataset not found")

    event = CollectedEvent.from_payload(
        payload,
        client_ip=str(payload.get("clientIp") or "") or client_ip_of(request),
        user_agent=request.headers.get("user-agent"),
    )
    background_tasks.add_task(process_event, session_factory, http_client_factory, dataset_id, event)
    return CollectAccepted()


# ---------------------------------------------------------
# Marketing pixel
# ---------------------------------------------------------
@router.get("/marketing/pixel.js/{client_id}", response_class=PlainTextResponse)
async def pixel_script(
    client_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> PlainTextResponse:
    row = await get_marketing_settings(db, client_id)
    if row is None or not row.meta_pixel_id:
        return PlainTextResponse(NO_PIXEL_SCRIPT, status_code=status.HTTP_404_NOT_FOUND, media_type=JAVASCRIPT_MEDIA_TYPE)

    endpoint_url = str(request.url_for("track_marketing_event", client_id=str(client_id)))
    return PlainTextResponse(
        generate_pixel_script(row.meta_pixel_id, endpoint_url),
        media_type=JAVASCRIPT_MEDIA_TYPE,
    )


@router.post("/marketing/events/{client_id}", name="track_marketing_event")
async def track_marketing_event(
    client_id: uuid.UUID,
    payload: BrowserEvent,
    request: Request,
    background_tasks: BackgroundTasks,
    sync: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
    http_client_factory: HttpClientFactory = Depends(get_http_client_factory),
):
    """
    Relay one browser pixel event to the Conversions API.
    ?sync=true waits for Meta and reports its failure as 502.
    """
    mode = "sync" if sync else "async"

    if not await db.get(Client, client_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    row = await get_marketing_settings(db, client_id)
    if row is None or not row.meta_pixel_id or not row.meta_api_token:
        log.info("marketing_event_skipped", client_id=str(client_id), reason="pixel_not_configured")
        return {"status": "skipped", "mode": mode}

    kwargs = dict(
        pixel_id=row.meta_pixel_id,
        access_token=row.meta_api_token,
        event=payload,
        client_ip=client_ip_of(request),
    )

    if not sync:
        background_tasks.add_task(forward_browser_event, http_client_factory, **kwargs)
        return {"status": "success", "mode": mode}

    result = await forward_browser_event(http_client_factory, **kwargs)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": "CAPI_ERROR",
                "message": "Meta Conversions API rejected the event",
                "upstream_status": result.code,
            },
        )
    return {"status": "success", "mode": mode}
