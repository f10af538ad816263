# tests/test_master.py
from __future__ import annotations

import pytest

pytestmark = pytest.mark.asyncio(loop_scope="session")


async def create_service(client, headers, client_id, **overrides):
    payload = {"title": "Traffic Management", "status": "ACTIVE", "features": ["CAMPAIGNS"]}
    payload.update(overrides)
    resp = await client.post(f"/api/master/users/{client_id}/services", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_master_area_requires_admin(client, tenant_headers):
    resp = await client.get("/api/master/dashboard")
    assert resp.status_code in (401, 403)

    resp = await client.get("/api/master/dashboard", headers=tenant_headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Admin access required"


async def test_dashboard_counts(client, admin_headers, tenant, make_client):
    await make_client("second")
    await create_service(client, admin_headers, tenant.id)
    await create_service(client, admin_headers, tenant.id, status="PAUSED")

    for amount, status in (("100.00", "PENDING"), ("50.50", "PENDING"), ("10.00", "PAID")):
        resp = await client.post(
            f"/api/master/users/{tenant.id}/invoices",
            json={"amount": amount, "status": status, "due_date": "2026-11-01T00:00:00Z"},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text

    resp = await client.get("/api/master/dashboard", headers=admin_headers)
    assert resp.status_code == 200
    stats = resp.json()["stats"]
    assert stats["clients"] == 2
    assert stats["active_services"] == 1
    assert stats["open_tickets"] == 0
    assert stats["pending_invoices_amount"] == pytest.approx(150.5)
    assert len(resp.json()["recent_clients"]) == 2


async def test_create_and_list_clients(client, admin_headers):
    resp = await client.post(
        "/api/master/clients",
        json={"name": "Beta Co", "email": "beta@example.com", "password": "beta-pass-1", "slug": "beta", "plan": "PRO"},
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["plan"] == "PRO"

    resp = await client.get("/api/master/users", headers=admin_headers)
    assert [c["slug"] for c in resp.json()] == ["beta"]


async def test_client_detail_includes_related_rows(client, admin_headers, tenant):
    service = await create_service(client, admin_headers, tenant.id)
    resp = await client.post(
        f"/api/master/users/{tenant.id}/invoices",
        json={"amount": "99.90", "due_date": "2026-11-01T00:00:00Z", "service_id": service["id"]},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["service_title"] == "Traffic Management"
    assert resp.json()["amount"] == "99.90"

    resp = await client.get(f"/api/master/users/{tenant.id}", headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["slug"] == "demo"
    assert [s["title"] for s in body["services"]] == ["Traffic Management"]
    assert len(body["invoices"]) == 1
    assert body["tickets"] == []


async def test_client_detail_unknown_is_404(client, admin_headers):
    resp = await client.get("/api/master/users/00000000-0000-0000-0000-000000000000", headers=admin_headers)
    assert resp.status_code == 404


async def test_update_client(client, admin_headers, tenant, make_client):
    resp = await client.patch(f"/api/master/users/{tenant.id}", json={"plan": "ENTERPRISE", "city": "Recife"}, headers=admin_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["plan"] == "ENTERPRISE"
    assert resp.json()["city"] == "Recife"

    resp = await client.patch(f"/api/master/users/{tenant.id}", json={}, headers=admin_headers)
    assert resp.status_code == 400

    other = await make_client("other")
    resp = await client.patch(f"/api/master/users/{tenant.id}", json={"email": other.email}, headers=admin_headers)
    assert resp.status_code == 409


@pytest.mark.parametrize("field", ["email", "name", "is_active"])
async def test_update_client_rejects_null_required_fields(client, admin_headers, tenant, field):
    resp = await client.patch(f"/api/master/users/{tenant.id}", json={field: None}, headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json()["detail"] == f"{field} cannot be null"

    resp = await client.get(f"/api/master/users/{tenant.id}", headers=admin_headers)
    assert resp.json()["email"] == "demo@example.com"


async def test_service_lifecycle(client, admin_headers, tenant, master_admin):
    service = await create_service(
        client,
        admin_headers,
        tenant.id,
        head_id=str(master_admin.id),
        price="1500.00",
        modules=[{"key": "TRACKING", "name": "Pixel"}],
    )
    assert service["head"]["name"] == "Ana Master"
    assert [m["key"] for m in service["modules"]] == ["TRACKING"]

    resp = await client.put(
        f"/api/master/services/{service['id']}",
        json={"status": "PAUSED", "features": ["SEO", "SEO", " CMS "], "modules": []},
        headers=admin_headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "PAUSED"
    assert resp.json()["features"] == ["SEO", "CMS"]
    assert resp.json()["modules"] == []

    resp = await client.put(f"/api/master/services/{service['id']}", json={"title": None}, headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json()["detail"] == "title cannot be null"

    # clearing optional columns is allowed
    resp = await client.put(
        f"/api/master/services/{service['id']}",
        json={"description": None, "price": None},
        headers=admin_headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["title"] == service["title"]
    assert resp.json()["price"] is None

    resp = await client.delete(f"/api/master/services/{service['id']}", headers=admin_headers)
    assert resp.status_code == 204

    resp = await client.put(f"/api/master/services/{service['id']}", json={"title": "x"}, headers=admin_headers)
    assert resp.status_code == 404


async def test_service_with_unknown_head_is_rejected(client, admin_headers, tenant):
    resp = await client.post(
        f"/api/master/users/{tenant.id}/services",
        json={"title": "SEO", "head_id": "00000000-0000-0000-0000-000000000000"},
        headers=admin_headers,
    )
    assert resp.status_code == 422


async def test_invoice_service_must_belong_to_client(client, admin_headers, tenant, make_client):
    other = await make_client("other")
    foreign = await create_service(client, admin_headers, other.id)

    resp = await client.post(
        f"/api/master/users/{tenant.id}/invoices",
        json={"amount": "10.00", "due_date": "2026-11-01T00:00:00Z", "service_id": foreign["id"]},
        headers=admin_headers,
    )
    assert resp.status_code == 422


async def test_marking_invoice_paid_sets_paid_date(client, admin_headers, tenant):
    resp = await client.post(
        f"/api/master/users/{tenant.id}/invoices",
        json={"amount": "10.00", "due_date": "2026-11-01T00:00:00Z"},
        headers=admin_headers,
    )
    invoice = resp.json()
    assert invoice["status"] == "PENDING"
    assert invoice["paid_date"] is None

    resp = await client.patch(f"/api/master/invoices/{invoice['id']}", json={"status": "PAID"}, headers=admin_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "PAID"
    assert resp.json()["paid_date"] is not None


async def test_update_ticket(client, admin_headers, tenant, tenant_headers):
    resp = await client.post(
        "/api/demo/tickets",
        json={"subject": "Pixel down", "message": "No events since yesterday"},
        headers=tenant_headers,
    )
    ticket = resp.json()

    resp = await client.patch(
        f"/api/master/tickets/{ticket['id']}",
        json={"status": "IN_PROGRESS", "priority": "HIGH"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "IN_PROGRESS"
    assert resp.json()["priority"] == "HIGH"

    resp = await client.patch(f"/api/master/tickets/{ticket['id']}", json={}, headers=admin_headers)
    assert resp.status_code == 400


async def test_only_master_admins_create_admins(client, admin_headers, make_admin, headers_for):
    resp = await client.post(
        "/api/master/admins",
        json={"name": "Dev One", "email": "Dev@Agency.com", "password": "dev-pass-1", "role": "DEV"},
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["email"] == "dev@agency.com"

    resp = await client.post(
        "/api/master/admins",
        json={"name": "Dup", "email": "dev@agency.com", "password": "dev-pass-1"},
        headers=admin_headers,
    )
    assert resp.status_code == 409

    collaborator = await make_admin("COLABORADOR")
    resp = await client.post(
        "/api/master/admins",
        json={"name": "Nope", "email": "nope@agency.com", "password": "nope-pass-1"},
        headers=headers_for(collaborator),
    )
    assert resp.status_code == 403

    resp = await client.get("/api/master/admins", headers=admin_headers)
    assert len(resp.json()) == 3
