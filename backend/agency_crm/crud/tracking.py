# backend/agency_crm/crud/tracking.py
from __future__ import annotations

import uuid

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agency_crm.models.tracking import TrackingDataset, TrackingDestination, TrackingSource

# Ownership is always checked through dataset.client_id; a row of another
# tenant is reported exactly like a missing one.


async def get_dataset_for_client(db: AsyncSession, client_id: uuid.UUID, dataset_id: uuid.UUID) -> TrackingDataset:
    stmt = (
        select(TrackingDataset)
        .where(TrackingDataset.id == dataset_id, TrackingDataset.client_id == client_id)
        .options(selectinload(TrackingDataset.destinations), selectinload(TrackingDataset.sources))
        .execution_options(populate_existing=True)
    )
    dataset = (await db.execute(stmt)).scalar_one_or_none()
    if not dataset:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dataset not found")
    return dataset


async def list_datasets_for_client(db: AsyncSession, client_id: uuid.UUID) -> list[TrackingDataset]:
    stmt = (
        select(TrackingDataset)
        .where(TrackingDataset.client_id == client_id)
        .options(selectinload(TrackingDataset.destinations), selectinload(TrackingDataset.sources))
        .order_by(TrackingDataset.created_at.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def get_destination_for_client(
    db: AsyncSession, client_id: uuid.UUID, destination_id: uuid.UUID
) -> TrackingDestination:
    stmt = (
        select(TrackingDestination)
        .join(TrackingDataset, TrackingDataset.id == TrackingDestination.dataset_id)
        .where(TrackingDestination.id == destination_id, TrackingDataset.client_id == client_id)
    )
    destination = (await db.execute(stmt)).scalar_one_or_none()
    if not destination:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Destination not found")
    return destination


async def get_source_for_client(db: AsyncSession, client_id: uuid.UUID, source_id: uuid.UUID) -> TrackingSource:
    stmt = (
        select(TrackingSource)
        .join(TrackingDataset, TrackingDataset.id == TrackingSource.dataset_id)
        .where(TrackingSource.id == source_id, TrackingDataset.client_id == client_id)
    )
    source = (await db.execute(stmt)).scalar_one_or_none()
    if not source:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Source not found")
    return source
