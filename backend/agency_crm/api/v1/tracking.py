# backend/agency_crm/api/v1/tracking.py
from __future__ import annotations

import math
import uuid
from datetime import datetime, timedelta, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agency_crm.api.deps.tenant import get_current_client
from agency_crm.core.logging import get_logger
from agency_crm.core.roles import SourceStatus
from agency_crm.crud.tracking import (
    get_dataset_for_client,
    get_destination_for_client,
    get_source_for_client,
    list_datasets_for_client,
)
from agency_crm.db.base import as_utc
from agency_crm.db.session import get_db
from agency_crm.models.client import Client
from agency_crm.models.tracking import (
    TrackingDataset,
    TrackingDestination,
    TrackingEvent,
    TrackingEventDelivery,
    TrackingSource,
)
from agency_crm.schemas.tracking import (
    DatasetCreate,
    DatasetDetailOut,
    DatasetOut,
    DatasetStats,
    DatasetUpdate,
    DeliveryOut,
    DestinationCreate,
    DestinationOut,
    DestinationUpdate,
    EventOut,
    EventPage,
    PageMeta,
    SourceCreate,
    SourceOut,
    SourceUpdate,
)

router = APIRouter(prefix="/tracking", tags=["tracking"])

log = get_logger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200
STATS_WINDOW_HOURS = 24


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dataset_out(dataset: TrackingDataset) -> DatasetDetailOut:
    return DatasetDetailOut(
        **DatasetOut.model_validate(dataset).model_dump(),
        destinations=[DestinationOut.model_validate(d) for d in dataset.destinations],
        sources=[SourceOut.model_validate(s) for s in dataset.sources],
        destination_count=len(dataset.destinations),
        source_count=len(dataset.sources),
    )


def _event_out(event: TrackingEvent) -> EventOut:
    return EventOut(
        id=event.id,
        event_id=event.event_id,
        event_name=event.event_name,
        event_data=event.event_data or {},
        url=event.url,
        user_agent=event.user_agent,
        client_ip=event.client_ip,
        status=event.status,
        created_at=event.created_at,
        deliveries=[
            DeliveryOut(
                id=d.id,
                destination_id=d.destination_id,
                platform=d.destination.platform if d.destination is not None else None,
                status=d.status,
                response_code=d.response_code,
                response_body=d.response_body,
                created_at=d.created_at,
            )
            for d in event.deliveries
        ],
    )


# ---------------------------------------------------------
# Datasets
# ---------------------------------------------------------
@router.get("/datasets", response_model=List[DatasetDetailOut])
async def list_datasets(
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    return [_dataset_out(ds) for ds in await list_datasets_for_client(db, client.id)]


@router.post("/datasets", response_model=DatasetDetailOut, status_code=status.HTTP_201_CREATED)
async def create_dataset(
    payload: DatasetCreate,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    dataset = TrackingDataset(client_id=client.id, name=payload.name.strip(), description=payload.description)
    db.add(dataset)
    await db.commit()

    log.info("dataset_created", dataset_id=str(dataset.id))
    return _dataset_out(await get_dataset_for_client(db, client.id, dataset.id))


@router.get("/datasets/{dataset_id}", response_model=DatasetDetailOut)
async def get_dataset(
    dataset_id: uuid.UUID,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    return _dataset_out(await get_dataset_for_client(db, client.id, dataset_id))


@router.put("/datasets/{dataset_id}", response_model=DatasetDetailOut)
async def update_dataset(
    dataset_id: uuid.UUID,
    payload: DatasetUpdate,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    dataset = await get_dataset_for_client(db, client.id, dataset_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("name") is not None:
        dataset.name = data["name"].strip()
    if "description" in data:
        dataset.description = data["description"]

    await db.commit()
    return _dataset_out(await get_dataset_for_client(db, client.id, dataset_id))


@router.delete("/datasets/{dataset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_dataset(
    dataset_id: uuid.UUID,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
) -> Response:
    dataset = await get_dataset_for_client(db, client.id, dataset_id)
    await db.delete(dataset)
    await db.commit()

    log.info("dataset_deleted", dataset_id=str(dataset_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/datasets/{dataset_id}/events", response_model=EventPage)
async def list_events(
    dataset_id: uuid.UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
) -> EventPage:
    await get_dataset_for_client(db, client.id, dataset_id)

    total = (
        await db.execute(select(func.count(TrackingEvent.id)).where(TrackingEvent.dataset_id == dataset_id))
    ).scalar() or 0

    events = (
        await db.execute(
            select(TrackingEvent)
            .where(TrackingEvent.dataset_id == dataset_id)
            .options(selectinload(TrackingEvent.deliveries).selectinload(TrackingEventDelivery.destination))
            .order_by(TrackingEvent.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
    ).scalars().all()

    return EventPage(
        data=[_event_out(e) for e in events],
        meta=PageMeta(total=int(total), page=page, limit=limit, total_pages=math.ceil(total / limit)),
    )


@router.get("/datasets/{dataset_id}/stats", response_model=DatasetStats)
async def dataset_stats(
    dataset_id: uuid.UUID,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
) -> DatasetStats:
    await get_dataset_for_client(db, client.id, dataset_id)

    now = _utcnow()
    since = now - timedelta(hours=STATS_WINDOW_HOURS)

    rows = (
        await db.execute(
            select(TrackingEvent.created_at).where(
                TrackingEvent.dataset_id == dataset_id,
                TrackingEvent.created_at >= since,
            )
        )
    ).scalars().all()
    created = [as_utc(c) for c in rows]

    # index 23 = current hour, index 0 = 23 hours ago
    by_hour = [0] * STATS_WINDOW_HOURS
    for ts in created:
        hours_ago = int((now - ts).total_seconds() // 3600)
        if 0 <= hours_ago < STATS_WINDOW_HOURS:
            by_hour[STATS_WINDOW_HOURS - 1 - hours_ago] += 1

    return DatasetStats(
        total_events_24h=len(created),
        events_by_hour=by_hour,
        last_event_time=max(created) if created else None,
    )


# ---------------------------------------------------------
# Destinations
# ---------------------------------------------------------
@router.post(
    "/datasets/{dataset_id}/destinations",
    response_model=DestinationOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_destination(
    dataset_id: uuid.UUID,
    payload: DestinationCreate,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    await get_dataset_for_client(db, client.id, dataset_id)

    destination = TrackingDestination(
        dataset_id=dataset_id,
        platform=payload.platform.value,
        config=dict(payload.config),
        enabled=True,
    )
    db.add(destination)
    await db.commit()
    await db.refresh(destination)
    return destination


@router.put("/destinations/{destination_id}", response_model=DestinationOut)
async def update_destination(
    destination_id: uuid.UUID,
    payload: DestinationUpdate,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    destination = await get_destination_for_client(db, client.id, destination_id)

    if payload.enabled is not None:
        destination.enabled = payload.enabled
    if payload.config is not None:
        destination.config = dict(payload.config)

    await db.commit()
    await db.refresh(destination)
    return destination


@router.delete("/destinations/{destination_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_destination(
    destination_id: uuid.UUID,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
) -> Response:
    destination = await get_destination_for_client(db, client.id, destination_id)
    await db.delete(destination)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------
# Sources
# ---------------------------------------------------------
@router.post(
    "/datasets/{dataset_id}/sources",
    response_model=SourceOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_source(
    dataset_id: uuid.UUID,
    payload: SourceCreate,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    await get_dataset_for_client(db, client.id, dataset_id)

    source = TrackingSource(
        dataset_id=dataset_id,
        type=payload.type.value,
        name=payload.name.strip(),
        provider=payload.provider,
        config=dict(payload.config),
        enabled=True,
        status=SourceStatus.PENDING.value,
    )
    db.add(source)
    await db.commit()
    await db.refresh(source)
    return source


@router.put("/sources/{source_id}", response_model=SourceOut)
async def update_source(
    source_id: uuid.UUID,
    payload: SourceUpdate,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
):
    source = await get_source_for_client(db, client.id, source_id)

    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields provided to update.")

    if data.get("name") is not None:
        source.name = data["name"].strip()
    if payload.enabled is not None:
        source.enabled = payload.enabled
    if payload.config is not None:
        source.config = dict(payload.config)
    if payload.status is not None:
        source.status = payload.status.value

    await db.commit()
    await db.refresh(source)
    return source


@router.delete("/sources/{source_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_source(
    source_id: uuid.UUID,
    client: Client = Depends(get_current_client),
    db: AsyncSession = Depends(get_db),
) -> Response:
    source = await get_source_for_client(db, client.id, source_id)
    await db.delete(source)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
