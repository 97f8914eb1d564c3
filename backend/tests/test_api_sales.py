# tests/test_api_sales.py
from __future__ import annotations

from datetime import timedelta

import pytest

from salesdesk.api.deps.context import get_snapshot
from salesdesk.core.statuses import SaleStatus

from factories import ADMIN_ID, AFF1_ID, AFF2_ID, BASE_DATE, BLOCKED_ID, CARE_ID, LOGISTICS_ID, make_sale


@pytest.fixture()
def orders(store):
    store.sales = [
        make_sale("S1", customer_name="Mario Rossi"),
        make_sale("S2", affiliate_id=AFF2_ID, status=SaleStatus.CONFERMATO, sale_date=BASE_DATE + timedelta(hours=1)),
        # repeat of S1, not yet persisted as Duplicato
        make_sale("S3", customer_name="Mario Rossi", sale_date=BASE_DATE + timedelta(hours=2)),
    ]
    return store


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(client, orders):
    r = await client.get("/api/v1/sales")

    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "invalid_token"


@pytest.mark.asyncio
async def test_blocked_users_are_rejected(client, orders, auth):
    r = await client.get("/api/v1/sales", headers=auth(BLOCKED_ID))

    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "user_blocked"


@pytest.mark.asyncio
async def test_unknown_user_is_rejected(client, orders, auth):
    r = await client.get("/api/v1/sales", headers=auth("U-GHOST"))

    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "user_not_found"


@pytest.mark.asyncio
async def test_list_is_duplicate_annotated_and_newest_first(client, orders, auth):
    r = await client.get("/api/v1/sales", headers=auth(ADMIN_ID))

    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 3
    assert [s["id"] for s in body["items"]] == ["S3", "S2", "S1"]
    assert body["items"][0]["status"] == "Duplicato"


@pytest.mark.asyncio
async def test_affiliates_only_list_their_own_sales(client, orders, auth):
    r = await client.get("/api/v1/sales", params={"affiliate_id": AFF2_ID}, headers=auth(AFF1_ID))

    assert r.status_code == 200
    assert {s["id"] for s in r.json()["items"]} == {"S1", "S3"}


@pytest.mark.asyncio
async def test_customer_care_confirms_an_order(client, orders, auth):
    r = await client.post(
        "/api/v1/sales/S1/status",
        json={"status": "Confermato", "note": "confermato al telefono"},
        headers=auth(CARE_ID),
    )

    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "Confermato"
    assert body["last_contacted_by"] == CARE_ID
    assert body["contact_history"][0]["note"] == "confermato al telefono"

    stored = orders.sale("S1")
    assert stored.status == SaleStatus.CONFERMATO
    assert stored.notes == "confermato al telefono"


@pytest.mark.asyncio
async def test_shipping_without_tracking_code(client, orders, auth):
    r = await client.post("/api/v1/sales/S2/status", json={"status": "Spedito"}, headers=auth(LOGISTICS_ID))

    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "tracking_code_required"

    ok = await client.post(
        "/api/v1/sales/S2/status",
        json={"status": "Spedito", "tracking_code": "BRT0001"},
        headers=auth(LOGISTICS_ID),
    )
    assert ok.status_code == 200
    assert orders.sale("S2").tracking_code == "BRT0001"


@pytest.mark.asyncio
async def test_affiliate_cannot_change_status(client, orders, auth):
    r = await client.post("/api/v1/sales/S1/status", json={"status": "Confermato"}, headers=auth(AFF1_ID))

    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "status_not_allowed"


@pytest.mark.asyncio
async def test_read_time_duplicate_is_locked(client, orders, auth):
    r = await client.post("/api/v1/sales/S3/status", json={"status": "Confermato"}, headers=auth(ADMIN_ID))

    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "sale_locked"
    assert orders.sale("S3").status == SaleStatus.IN_ATTESA


@pytest.mark.asyncio
async def test_unknown_sale(client, orders, auth):
    r = await client.post("/api/v1/sales/S404/status", json={"status": "Confermato"}, headers=auth(ADMIN_ID))

    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "sale_not_found"


@pytest.mark.asyncio
async def test_sale_locked_after_the_snapshot_was_taken(app, client, orders, auth):
    stale = orders.snapshot()
    orders.sales[0] = orders.sales[0].model_copy(update={"status": SaleStatus.TEST})
    app.dependency_overrides[get_snapshot] = lambda: stale

    r = await client.post("/api/v1/sales/S1/status", json={"status": "Contattato"}, headers=auth(CARE_ID))

    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "sale_changed"


@pytest.mark.asyncio
async def test_duplicate_sync_is_idempotent(client, orders, auth):
    first = await client.post("/api/v1/sales/duplicates/sync", headers=auth(ADMIN_ID))
    assert first.status_code == 200
    assert first.json() == {"flagged": 1, "sale_ids": ["S3"]}
    assert orders.sale("S3").status == SaleStatus.DUPLICATO

    second = await client.post("/api/v1/sales/duplicates/sync", headers=auth(ADMIN_ID))
    assert second.json() == {"flagged": 0, "sale_ids": []}


@pytest.mark.asyncio
async def test_duplicate_sync_is_management_only(client, orders, auth):
    r = await client.post("/api/v1/sales/duplicates/sync", headers=auth(CARE_ID))

    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "role_forbidden"
