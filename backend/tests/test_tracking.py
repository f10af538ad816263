# tests/test_tracking.py
from __future__ import annotations

import hashlib
import json
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from agency_crm.models.tracking import TrackingDataset, TrackingEvent, TrackingSource
from agency_crm.services.tracking_pipeline import CollectedEvent, generate_event_id

pytestmark = pytest.mark.asyncio(loop_scope="session")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def create_dataset(client, headers, name="Main site"):
    resp = await client.post("/api/demo/tracking/datasets", json={"name": name}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def add_destination(client, headers, dataset_id, platform="META", config=None):
    resp = await client.post(
        f"/api/demo/tracking/datasets/{dataset_id}/destinations",
        json={"platform": platform, "config": config if config is not None else {"pixelId": "px1", "apiToken": "tk1"}},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------
# Event ids
# ---------------------------------------------------------
async def test_event_id_is_stable_within_a_minute():
    a = generate_event_id("Purchase", {"value": 10, "currency": "BRL"}, 1_760_000_040)
    b = generate_event_id("Purchase", {"currency": "BRL", "value": 10}, 1_760_000_059)
    assert a == b
    assert len(a) == 64


async def test_event_id_changes_with_window_name_or_data():
    base = generate_event_id("Purchase", {"value": 10}, 1_760_000_040)
    assert generate_event_id("Purchase", {"value": 10}, 1_760_000_100) != base
    assert generate_event_id("Lead", {"value": 10}, 1_760_000_040) != base
    assert generate_event_id("Purchase", {"value": 11}, 1_760_000_040) != base


async def test_collected_event_prefers_supplied_id():
    event = CollectedEvent.from_payload(
        {"eventName": "Lead", "eventId": "evt_1", "eventData": "not-a-dict", "timestamp": "oops"},
        client_ip="1.2.3.4",
        user_agent="UA",
    )
    assert event.dedup_id == "evt_1"
    assert event.event_data == {}
    assert event.timestamp > 0
    assert event.user_agent == "UA"


# ---------------------------------------------------------
# Dataset / destination / source CRUD
# ---------------------------------------------------------
async def test_dataset_crud(client, tenant, tenant_headers):
    ds = await create_dataset(client, tenant_headers)
    assert ds["destination_count"] == 0
    assert ds["source_count"] == 0

    await add_destination(client, tenant_headers, ds["id"])
    resp = await client.post(
        f"/api/demo/tracking/datasets/{ds['id']}/sources",
        json={"type": "PIXEL_SCRIPT", "name": "Website pixel"},
        headers=tenant_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["status"] == "PENDING"

    resp = await client.get(f"/api/demo/tracking/datasets/{ds['id']}", headers=tenant_headers)
    body = resp.json()
    assert body["destination_count"] == 1
    assert body["source_count"] == 1
    assert body["destinations"][0]["platform"] == "META"

    resp = await client.put(
        f"/api/demo/tracking/datasets/{ds['id']}",
        json={"name": " Renamed ", "description": "store"},
        headers=tenant_headers,
    )
    assert resp.json()["name"] == "Renamed"
    assert resp.json()["description"] == "store"

    resp = await client.get("/api/demo/tracking/datasets", headers=tenant_headers)
    assert [d["name"] for d in resp.json()] == ["Renamed"]

    resp = await client.delete(f"/api/demo/tracking/datasets/{ds['id']}", headers=tenant_headers)
    assert resp.status_code == 204
    resp = await client.get(f"/api/demo/tracking/datasets/{ds['id']}", headers=tenant_headers)
    assert resp.status_code == 404


async def test_destination_and_source_updates(client, tenant, tenant_headers):
    ds = await create_dataset(client, tenant_headers)
    dest = await add_destination(client, tenant_headers, ds["id"])

    resp = await client.put(
        f"/api/demo/tracking/destinations/{dest['id']}",
        json={"enabled": False},
        headers=tenant_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["enabled"] is False
    assert resp.json()["config"] == {"pixelId": "px1", "apiToken": "tk1"}

    resp = await client.post(
        f"/api/demo/tracking/datasets/{ds['id']}/sources",
        json={"type": "WEBHOOK", "name": "Shop", "provider": "shopify"},
        headers=tenant_headers,
    )
    source = resp.json()

    resp = await client.put(f"/api/demo/tracking/sources/{source['id']}", json={}, headers=tenant_headers)
    assert resp.status_code == 400

    resp = await client.put(
        f"/api/demo/tracking/sources/{source['id']}",
        json={"status": "INACTIVE", "enabled": False},
        headers=tenant_headers,
    )
    assert resp.json()["status"] == "INACTIVE"
    assert resp.json()["enabled"] is False

    assert (await client.delete(f"/api/demo/tracking/sources/{source['id']}", headers=tenant_headers)).status_code == 204
    assert (await client.delete(f"/api/demo/tracking/destinations/{dest['id']}", headers=tenant_headers)).status_code == 204


async def test_tracking_is_isolated_between_tenants(client, make_client, headers_for, tenant, tenant_headers):
    other = await make_client("other")
    other_headers = headers_for(other)

    resp = await client.post("/api/other/tracking/datasets", json={"name": "Theirs"}, headers=other_headers)
    theirs = resp.json()
    dest = await add_destination(client, tenant_headers, (await create_dataset(client, tenant_headers))["id"])

    # another tenant's dataset through my own slug is simply not found
    resp = await client.get(f"/api/demo/tracking/datasets/{theirs['id']}", headers=tenant_headers)
    assert resp.status_code == 404

    resp = await client.put(f"/api/other/tracking/destinations/{dest['id']}", json={"enabled": False}, headers=other_headers)
    assert resp.status_code == 404

    resp = await client.get("/api/other/tracking/datasets", headers=tenant_headers)
    assert resp.status_code == 403


# ---------------------------------------------------------
# Collection pipeline
# ---------------------------------------------------------
async def test_collect_validates_input(client, tenant, tenant_headers):
    ds = await create_dataset(client, tenant_headers)

    resp = await client.post(f"/api/public/tracking/collect/{ds['id']}", json={"eventData": {}})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "eventName is required"

    resp = await client.post(
        "/api/public/tracking/collect/00000000-0000-0000-0000-000000000000",
        json={"eventName": "Lead"},
    )
    assert resp.status_code == 404


async def test_collect_fans_out_to_destinations(client, tenant, tenant_headers, outbound, sessionmaker):
    ds = await create_dataset(client, tenant_headers)
    meta = await add_destination(client, tenant_headers, ds["id"])
    broken = await add_destination(client, tenant_headers, ds["id"], config={"pixelId": "px2"})
    google = await add_destination(client, tenant_headers, ds["id"], platform="GOOGLE", config={})
    disabled = await add_destination(client, tenant_headers, ds["id"])
    await client.put(f"/api/demo/tracking/destinations/{disabled['id']}", json={"enabled": False}, headers=tenant_headers)

    pixel = (
        await client.post(
            f"/api/demo/tracking/datasets/{ds['id']}/sources",
            json={"type": "PIXEL_SCRIPT", "name": "Pixel"},
            headers=tenant_headers,
        )
    ).json()
    webhook = (
        await client.post(
            f"/api/demo/tracking/datasets/{ds['id']}/sources",
            json={"type": "WEBHOOK", "name": "Hook"},
            headers=tenant_headers,
        )
    ).json()

    resp = await client.post(
        f"/api/public/tracking/collect/{ds['id']}",
        json={
            "eventName": "Purchase",
            "eventData": {"value": 99.9, "email": " Buyer@Example.com ", "fbp": "fb.1.123"},
            "url": "https://demo.example/thanks",
            "clientIp": "198.51.100.4",
        },
        headers={"user-agent": "pytest-agent"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"status": "received"}

    # only the configured META destination reached the network
    assert len(outbound.requests) == 1
    sent = outbound.requests[0]
    assert sent.url.path.endswith("/px1/events")
    assert sent.url.params["access_token"] == "tk1"
    server_event = json.loads(sent.content)["data"][0]
    assert server_event["user_data"]["em"] == hashlib.sha256(b"buyer@example.com").hexdigest()
    assert server_event["user_data"]["fbp"] == "fb.1.123"
    assert server_event["user_data"]["client_ip_address"] == "198.51.100.4"
    assert server_event["user_data"]["client_user_agent"] == "pytest-agent"
    assert server_event["custom_data"]["currency"] == "BRL"
    assert server_event["custom_data"]["value"] == 99.9

    resp = await client.get(f"/api/demo/tracking/datasets/{ds['id']}/events", headers=tenant_headers)
    page = resp.json()
    assert page["meta"]["total"] == 1
    event = page["data"][0]
    assert event["event_name"] == "Purchase"
    assert event["client_ip"] == "198.51.100.4"
    assert event["event_id"] == server_event["event_id"]

    by_destination = {d["destination_id"]: d for d in event["deliveries"]}
    assert set(by_destination) == {meta["id"], broken["id"], google["id"]}
    assert by_destination[meta["id"]]["status"] == "SUCCESS"
    assert by_destination[meta["id"]]["response_code"] == 200
    assert by_destination[broken["id"]]["status"] == "FAILED"
    assert by_destination[broken["id"]]["response_code"] == 400
    assert by_destination[broken["id"]]["response_body"] == "Missing Pixel ID or API Token"
    assert by_destination[google["id"]]["status"] == "FAILED"
    assert by_destination[google["id"]]["response_code"] == 0
    assert by_destination[google["id"]]["platform"] == "GOOGLE"

    async with sessionmaker() as s:
        statuses = dict(
            (await s.execute(select(TrackingSource.id, TrackingSource.status).where(TrackingSource.dataset_id == uuid.UUID(ds["id"])))).all()
        )
    assert {str(k): v for k, v in statuses.items()} == {pixel["id"]: "ACTIVE", webhook["id"]: "PENDING"}


async def test_rejected_delivery_is_recorded(client, tenant, tenant_headers, outbound):
    ds = await create_dataset(client, tenant_headers)
    meta = await add_destination(client, tenant_headers, ds["id"])
    outbound.respond_with(401, {"error": {"message": "bad token"}})

    resp = await client.post(f"/api/public/tracking/collect/{ds['id']}", json={"eventName": "Lead", "eventId": "lead-1"})
    assert resp.status_code == 200

    event = (await client.get(f"/api/demo/tracking/datasets/{ds['id']}/events", headers=tenant_headers)).json()["data"][0]
    assert event["event_id"] == "lead-1"
    delivery = event["deliveries"][0]
    assert delivery["destination_id"] == meta["id"]
    assert delivery["status"] == "FAILED"
    assert delivery["response_code"] == 401
    assert "bad token" in delivery["response_body"]


async def test_event_without_destinations_is_still_stored(client, tenant, tenant_headers, outbound):
    ds = await create_dataset(client, tenant_headers)

    resp = await client.post(f"/api/public/tracking/collect/{ds['id']}", json={"eventName": "PageView"})
    assert resp.status_code == 200
    assert outbound.requests == []

    page = (await client.get(f"/api/demo/tracking/datasets/{ds['id']}/events", headers=tenant_headers)).json()
    assert page["meta"]["total"] == 1
    assert page["data"][0]["deliveries"] == []


# ---------------------------------------------------------
# Events listing / stats
# ---------------------------------------------------------
async def seed_events(db, dataset_id, ages):
    now = utcnow()
    for i, age in enumerate(ages):
        db.add(
            TrackingEvent(
                dataset_id=uuid.UUID(dataset_id),
                event_id=f"evt-{i}",
                event_name="PageView",
                event_data={},
                url="",
                user_agent="",
                created_at=now - age,
            )
        )
    await db.commit()


async def test_events_are_paginated_newest_first(client, db, tenant, tenant_headers):
    ds = await create_dataset(client, tenant_headers)
    await seed_events(db, ds["id"], [timedelta(minutes=m) for m in (1, 2, 3)])

    resp = await client.get(f"/api/demo/tracking/datasets/{ds['id']}/events?limit=2", headers=tenant_headers)
    page = resp.json()
    assert page["meta"] == {"total": 3, "page": 1, "limit": 2, "total_pages": 2}
    assert [e["event_id"] for e in page["data"]] == ["evt-0", "evt-1"]

    resp = await client.get(f"/api/demo/tracking/datasets/{ds['id']}/events?limit=2&page=2", headers=tenant_headers)
    assert [e["event_id"] for e in resp.json()["data"]] == ["evt-2"]

    resp = await client.get(f"/api/demo/tracking/datasets/{ds['id']}/events?limit=500", headers=tenant_headers)
    assert resp.status_code == 422


async def test_stats_buckets_last_24_hours(client, db, tenant, tenant_headers):
    ds = await create_dataset(client, tenant_headers)
    await seed_events(
        db,
        ds["id"],
        [timedelta(minutes=10), timedelta(minutes=20), timedelta(hours=2, minutes=5), timedelta(hours=30)],
    )

    resp = await client.get(f"/api/demo/tracking/datasets/{ds['id']}/stats", headers=tenant_headers)
    assert resp.status_code == 200, resp.text
    stats = resp.json()
    assert stats["total_events_24h"] == 3
    assert len(stats["events_by_hour"]) == 24
    assert stats["events_by_hour"][23] == 2
    assert stats["events_by_hour"][21] == 1
    assert sum(stats["events_by_hour"]) == 3
    assert stats["last_event_time"] is not None


async def test_stats_for_empty_dataset(client, tenant, tenant_headers):
    ds = await create_dataset(client, tenant_headers)
    stats = (await client.get(f"/api/demo/tracking/datasets/{ds['id']}/stats", headers=tenant_headers)).json()
    assert stats == {"total_events_24h": 0, "events_by_hour": [0] * 24, "last_event_time": None}


async def test_deleting_dataset_removes_its_events(client, db, tenant, tenant_headers, sessionmaker):
    ds = await create_dataset(client, tenant_headers)
    await seed_events(db, ds["id"], [timedelta(minutes=1)])

    await client.delete(f"/api/demo/tracking/datasets/{ds['id']}", headers=tenant_headers)

    async with sessionmaker() as s:
        assert (await s.execute(select(TrackingEvent))).scalars().all() == []
        assert (await s.execute(select(TrackingDataset))).scalars().all() == []
