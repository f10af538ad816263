# tests/test_seo_marketing.py
from __future__ import annotations

import json

import httpx
import pytest

from agency_crm.models.marketing_settings import MarketingSettings

pytestmark = pytest.mark.asyncio(loop_scope="session")


async def configure_pixel(db, client_id, pixel_id="123456", token="EAAB-token"):
    db.add(MarketingSettings(client_id=client_id, meta_pixel_id=pixel_id, meta_api_token=token))
    await db.commit()


# ---------------------------------------------------------
# SEO
# ---------------------------------------------------------
async def test_seo_settings_created_on_first_read(client, tenant, tenant_headers):
    resp = await client.get("/api/demo/seo/settings", headers=tenant_headers)
    assert resp.status_code == 200, resp.text
    first = resp.json()
    assert first["client_id"] == str(tenant.id)
    assert first["target_keywords"] == []

    resp = await client.get("/api/demo/seo/settings", headers=tenant_headers)
    assert resp.json()["id"] == first["id"]


async def test_seo_settings_upsert(client, tenant, tenant_headers):
    resp = await client.put(
        "/api/demo/seo/settings",
        json={
            "global_title": "Demo | Best widgets",
            "google_analytics_id": "G-XYZ",
            "target_keywords": ["widgets", " widgets ", "", "gadgets"],
        },
        headers=tenant_headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["global_title"] == "Demo | Best widgets"
    assert body["target_keywords"] == ["widgets", "gadgets"]

    resp = await client.put("/api/demo/seo/settings", json={"global_title": "Other"}, headers=tenant_headers)
    assert resp.json()["global_title"] == "Other"
    assert resp.json()["google_analytics_id"] is None
    assert resp.json()["target_keywords"] == []


# ---------------------------------------------------------
# Marketing settings
# ---------------------------------------------------------
async def test_marketing_settings_never_return_token(client, tenant, tenant_headers):
    resp = await client.get("/api/demo/marketing/settings", headers=tenant_headers)
    assert resp.status_code == 200
    assert resp.json()["meta_pixel_id"] is None
    assert resp.json()["has_api_token"] is False

    resp = await client.post(
        "/api/demo/marketing/settings",
        json={"meta_pixel_id": " 987 ", "meta_api_token": "secret-token"},
        headers=tenant_headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["meta_pixel_id"] == "987"
    assert body["has_api_token"] is True
    assert "secret-token" not in resp.text

    # omitted token keeps the stored one
    resp = await client.post("/api/demo/marketing/settings", json={"meta_pixel_id": "555"}, headers=tenant_headers)
    assert resp.json()["meta_pixel_id"] == "555"
    assert resp.json()["has_api_token"] is True


# ---------------------------------------------------------
# Pixel script
# ---------------------------------------------------------
async def test_pixel_script_without_pixel(client, tenant):
    resp = await client.get(f"/api/public/marketing/pixel.js/{tenant.id}")
    assert resp.status_code == 404
    assert resp.text == "// No pixel configured"
    assert resp.headers["content-type"].startswith("application/javascript")


async def test_pixel_script_embeds_pixel_and_endpoint(client, db, tenant):
    await configure_pixel(db, tenant.id)

    resp = await client.get(f"/api/public/marketing/pixel.js/{tenant.id}")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/javascript")
    assert "fbq('init', \"123456\");" in resp.text
    assert json.dumps(f"http://test/api/public/marketing/events/{tenant.id}") in resp.text


# ---------------------------------------------------------
# Browser event relay
# ---------------------------------------------------------
def browser_event(**overrides):
    event = {
        "eventName": "Purchase",
        "eventData": {"value": 10, "currency": "USD"},
        "eventId": "evt_abc",
        "url": "https://demo.example/checkout",
        "userAgent": "Mozilla/5.0",
        "timestamp": 1760000000,
    }
    event.update(overrides)
    return event


async def test_event_for_unknown_client_is_404(client):
    resp = await client.post(
        "/api/public/marketing/events/00000000-0000-0000-0000-000000000000",
        json=browser_event(),
    )
    assert resp.status_code == 404


async def test_event_skipped_without_configuration(client, tenant, outbound):
    resp = await client.post(f"/api/public/marketing/events/{tenant.id}", json=browser_event())
    assert resp.status_code == 200
    assert resp.json() == {"status": "skipped", "mode": "async"}
    assert outbound.requests == []


async def test_event_forwarded_in_background(client, db, tenant, outbound):
    await configure_pixel(db, tenant.id)

    resp = await client.post(
        f"/api/public/marketing/events/{tenant.id}",
        json=browser_event(),
        headers={"x-forwarded-for": "203.0.113.7, 10.0.0.1"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"status": "success", "mode": "async"}

    # background tasks finish before the ASGI call returns
    assert len(outbound.requests) == 1
    sent = outbound.requests[0]
    assert sent.url.path.endswith("/123456/events")
    assert sent.url.params["access_token"] == "EAAB-token"

    event = json.loads(sent.content)["data"][0]
    assert event["event_name"] == "Purchase"
    assert event["event_id"] == "evt_abc"
    assert event["event_time"] == 1760000000
    assert event["action_source"] == "website"
    assert event["event_source_url"] == "https://demo.example/checkout"
    assert event["user_data"] == {"client_ip_address": "203.0.113.7", "client_user_agent": "Mozilla/5.0"}
    assert event["custom_data"] == {"value": 10, "currency": "USD"}


async def test_sync_event_reports_upstream_failure(client, db, tenant, outbound):
    await configure_pixel(db, tenant.id)
    outbound.respond_with(400, {"error": {"message": "Invalid parameter"}})

    resp = await client.post(f"/api/public/marketing/events/{tenant.id}?sync=true", json=browser_event())
    assert resp.status_code == 502
    detail = resp.json()["detail"]
    assert detail["error"] == "CAPI_ERROR"
    assert detail["upstream_status"] == 400


async def test_sync_event_network_error(client, db, tenant, outbound):
    await configure_pixel(db, tenant.id)
    outbound.fail_with(httpx.ConnectError("boom"))

    resp = await client.post(f"/api/public/marketing/events/{tenant.id}?sync=true", json=browser_event())
    assert resp.status_code == 502
    assert resp.json()["detail"]["upstream_status"] == 0


async def test_sync_event_success(client, db, tenant, outbound):
    await configure_pixel(db, tenant.id)

    resp = await client.post(f"/api/public/marketing/events/{tenant.id}?sync=true", json=browser_event())
    assert resp.status_code == 200
    assert resp.json() == {"status": "success", "mode": "sync"}
