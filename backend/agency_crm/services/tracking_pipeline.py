# backend/agency_crm/services/tracking_pipeline.py
"""
Event collection pipeline for tracking datasets.

process_event() runs after the collect endpoint has answered:
  1. persist the event (dedup key = supplied eventId or a content hash)
  2. mark PENDING pixel-script sources as ACTIVE
  3. fan out to every enabled destination, one delivery row each

Destination failures are recorded on the delivery row and logged. They never
propagate back to the caller.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import httpx
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agency_crm.core.logging import get_logger
from agency_crm.core.roles import DeliveryStatus, DestinationPlatform, SourceStatus, SourceType
from agency_crm.db.base import utcnow
from agency_crm.models.tracking import (
    TrackingDataset,
    TrackingDestination,
    TrackingEvent,
    TrackingEventDelivery,
    TrackingSource,
)
from agency_crm.services import meta_capi
from agency_crm.services.http import HttpClientFactory

log = get_logger(__name__)

DEDUP_WINDOW_SECONDS = 60


@dataclass(frozen=True)
class CollectedEvent:
    event_name: str
    event_data: dict[str, Any] = field(default_factory=dict)
    event_id: Optional[str] = None
    url: str = ""
    user_agent: str = ""
    client_ip: Optional[str] = None
    # unix seconds
    timestamp: int = 0

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        *,
        client_ip: Optional[str],
        user_agent: Optional[str],
    ) -> "CollectedEvent":
        raw_data = payload.get("eventData")
        raw_ts = payload.get("timestamp")
        try:
            ts = int(raw_ts) if raw_ts is not None else int(time.time())
        except (TypeError, ValueError):
            ts = int(time.time())

        return cls(
            event_name=str(payload["eventName"]),
            event_data=dict(raw_data) if isinstance(raw_data, Mapping) else {},
            event_id=str(payload["eventId"]) if payload.get("eventId") else None,
            url=str(payload.get("url") or ""),
            user_agent=str(payload.get("userAgent") or user_agent or ""),
            client_ip=client_ip,
            timestamp=ts,
        )

    @property
    def dedup_id(self) -> str:
        return self.event_id or generate_event_id(self.event_name, self.event_data, self.timestamp)


def generate_event_id(event_name: str, event_data: Mapping[str, Any], timestamp: int) -> str:
    """
    Same name + same data inside the same minute -> same id, so a browser
    pixel and a server webhook reporting one conversion collapse downstream.
    """
    payload = json.dumps(
        {
            "eventName": event_name,
            "data": dict(event_data or {}),
            "timeWindow": int(timestamp) // DEDUP_WINDOW_SECONDS,
        },
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


async def send_to_destination(
    http: httpx.AsyncClient,
    destination: TrackingDestination,
    event: CollectedEvent,
) -> meta_capi.CapiResult:
    if destination.platform == DestinationPlatform.META.value:
        config = destination.config or {}
        pixel_id = config.get("pixelId")
        api_token = config.get("apiToken")
        if not pixel_id or not api_token:
            log.warning("destination_misconfigured", destination_id=str(destination.id), platform=destination.platform)
            return meta_capi.CapiResult(success=False, code=400, body="Missing Pixel ID or API Token")

        server_event = meta_capi.build_server_event(
            event_name=event.event_name,
            event_id=event.dedup_id,
            url=event.url,
            user_data=meta_capi.build_user_data(
                event.event_data,
                client_ip=event.client_ip,
                user_agent=event.user_agent,
            ),
            custom_data=meta_capi.purchase_custom_data(event.event_data),
        )
        return await meta_capi.post_events(
            http,
            pixel_id=str(pixel_id),
            access_token=str(api_token),
            events=[server_event],
        )

    return meta_capi.CapiResult(
        success=False,
        code=0,
        body=f"Platform {destination.platform} is not supported yet",
    )


async def _activate_pixel_sources(db: AsyncSession, dataset_id: uuid.UUID) -> None:
    await db.execute(
        update(TrackingSource)
        .where(
            TrackingSource.dataset_id == dataset_id,
            TrackingSource.status == SourceStatus.PENDING.value,
            TrackingSource.type == SourceType.PIXEL_SCRIPT.value,
        )
        .values(status=SourceStatus.ACTIVE.value, updated_at=utcnow())
    )


async def process_event(
    session_factory: async_sessionmaker[AsyncSession],
    http_client_factory: HttpClientFactory,
    dataset_id: uuid.UUID,
    event: CollectedEvent,
) -> Optional[uuid.UUID]:
    async with session_factory() as db:
        dataset = await db.get(TrackingDataset, dataset_id)
        if dataset is None:
            log.warning("tracking_dataset_missing", dataset_id=str(dataset_id))
            return None

        saved = TrackingEvent(
            id=uuid.uuid4(),
            dataset_id=dataset_id,
            event_id=event.dedup_id,
            event_name=event.event_name,
            event_data=event.event_data,
            url=event.url,
            user_agent=event.user_agent,
            client_ip=event.client_ip,
            status="PROCESSED",
        )
        db.add(saved)

        await _activate_pixel_sources(db, dataset_id)

        destinations = (
            await db.execute(
                select(TrackingDestination)
                .where(
                    TrackingDestination.dataset_id == dataset_id,
                    TrackingDestination.enabled.is_(True),
                )
                .order_by(TrackingDestination.created_at)
            )
        ).scalars().all()

        deliveries = [
            TrackingEventDelivery(
                event_id=saved.id,
                destination_id=dest.id,
                dataset_id=dataset_id,
                status=DeliveryStatus.PENDING.value,
            )
            for dest in destinations
        ]
        db.add_all(deliveries)

        # The event is on record before any destination is contacted
        await db.commit()

        if not destinations:
            log.info("tracking_event_stored", dataset_id=str(dataset_id), event_name=event.event_name, destinations=0)
            return saved.id

        async with http_client_factory() as http:
            results = await asyncio.gather(
                *(send_to_destination(http, dest, event) for dest in destinations),
                return_exceptions=True,
            )

        for dest, delivery, result in zip(destinations, deliveries, results):
            if isinstance(result, BaseException):
                log.error(
                    "tracking_delivery_error",
                    destination_id=str(dest.id),
                    platform=dest.platform,
                    exc_info=result,
                )
                delivery.status = DeliveryStatus.FAILED.value
                delivery.response_code = 500
                delivery.response_body = str(result)
                continue

            delivery.status = DeliveryStatus.SUCCESS.value if result.success else DeliveryStatus.FAILED.value
            delivery.response_code = result.code
            delivery.response_body = result.body

        await db.commit()

        log.info(
            "tracking_event_processed",
            dataset_id=str(dataset_id),
            event_name=event.event_name,
            destinations=len(destinations),
            delivered=sum(1 for d in deliveries if d.status == DeliveryStatus.SUCCESS.value),
        )
        return saved.id
