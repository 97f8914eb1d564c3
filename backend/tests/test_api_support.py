# tests/test_api_support.py
from __future__ import annotations

import pytest

from salesdesk.api.deps.context import get_snapshot
from salesdesk.core.roles import UserRole
from salesdesk.core.statuses import TicketStatus

from factories import ADMIN_ID, AFF1_ID, AFF2_ID, LOGISTICS_ID, MANAGER_ID, make_notification


# ---------------------------------------------------------
# Notifications
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_publish_and_read_a_notification(client, store, auth):
    created = await client.post(
        "/api/v1/notifications",
        json={
            "title": "Nuovo prodotto",
            "message": "Siero disponibile da oggi",
            "target_roles": ["AFFILIATE"],
            "link_to": "product-detail/P2",
            "event_type": "new-product",
        },
        headers=auth(ADMIN_ID),
    )
    assert created.status_code == 201
    n_id = created.json()["id"]

    feed = await client.get("/api/v1/notifications", headers=auth(AFF1_ID))
    assert feed.json()["unread_count"] == 1
    assert feed.json()["items"][0]["is_read"] is False

    read = await client.post(f"/api/v1/notifications/{n_id}/read", headers=auth(AFF1_ID))
    assert read.json() == {"marked": 1}
    again = await client.post(f"/api/v1/notifications/{n_id}/read", headers=auth(AFF1_ID))
    assert again.json() == {"marked": 0}

    feed = await client.get("/api/v1/notifications", headers=auth(AFF1_ID))
    assert feed.json()["unread_count"] == 0
    assert feed.json()["items"][0]["is_read"] is True

    logistics = await client.get("/api/v1/notifications", headers=auth(LOGISTICS_ID))
    assert logistics.json()["items"] == []


@pytest.mark.asyncio
async def test_affiliates_cannot_publish(client, store, auth):
    r = await client.post(
        "/api/v1/notifications",
        json={"title": "x", "message": "y", "target_roles": ["AFFILIATE"]},
        headers=auth(AFF1_ID),
    )

    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "notifications_admin_only"


@pytest.mark.asyncio
async def test_read_all_and_hidden_notifications(client, store, auth):
    store.notifications = [
        make_notification("N1", [UserRole.AFFILIATE]),
        make_notification("N2", [UserRole.AFFILIATE], minutes=1),
        make_notification("N3", [UserRole.LOGISTICS], minutes=2),
    ]

    hidden = await client.post("/api/v1/notifications/N3/read", headers=auth(AFF1_ID))
    assert hidden.status_code == 404

    r = await client.post("/api/v1/notifications/read-all", headers=auth(AFF1_ID))
    assert r.json() == {"marked": 2}
    assert all(AFF1_ID in n.read_by for n in store.notifications[:2])
    assert store.notifications[2].read_by == []


@pytest.mark.asyncio
async def test_concurrent_readers_are_all_kept(app, client, store, auth):
    store.notifications = [
        make_notification("N1", [UserRole.AFFILIATE]),
        make_notification("N2", [UserRole.AFFILIATE], minutes=1),
    ]
    stale = store.snapshot()
    # another affiliate read N1 after this request loaded its snapshot
    store.notifications[0] = store.notifications[0].model_copy(update={"read_by": [AFF2_ID]})
    app.dependency_overrides[get_snapshot] = lambda: stale

    r = await client.post("/api/v1/notifications/N1/read", headers=auth(AFF1_ID))
    assert r.json() == {"marked": 1}
    assert store.notifications[0].read_by == [AFF2_ID, AFF1_ID]

    everything = await client.post("/api/v1/notifications/read-all", headers=auth(AFF2_ID))
    # N1 already carried AFF2 in storage
    assert everything.json() == {"marked": 1}
    assert store.notifications[0].read_by == [AFF2_ID, AFF1_ID]
    assert store.notifications[1].read_by == [AFF2_ID]


@pytest.mark.asyncio
async def test_delete_notification(client, store, auth):
    store.notifications = [make_notification("N1", [UserRole.AFFILIATE])]

    denied = await client.delete("/api/v1/notifications/N1", headers=auth(AFF1_ID))
    assert denied.status_code == 403

    deleted = await client.delete("/api/v1/notifications/N1", headers=auth(MANAGER_ID))
    assert deleted.status_code == 204
    assert store.notifications == []

    missing = await client.delete("/api/v1/notifications/N1", headers=auth(MANAGER_ID))
    assert missing.status_code == 404


# ---------------------------------------------------------
# Tickets
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_ticket_conversation(client, store, auth):
    opened = await client.post(
        "/api/v1/tickets",
        json={"subject": "Pagamento", "message": "Quando arriva il bonifico?"},
        headers=auth(AFF1_ID),
    )
    assert opened.status_code == 201
    t_id = opened.json()["id"]
    assert opened.json()["status"] == TicketStatus.OPEN.value

    admin_list = await client.get("/api/v1/tickets", headers=auth(ADMIN_ID))
    assert admin_list.json()["attention_count"] == 1

    replied = await client.post(f"/api/v1/tickets/{t_id}/replies", json={"message": "In lavorazione"}, headers=auth(ADMIN_ID))
    assert replied.status_code == 201
    assert replied.json()["status"] == TicketStatus.IN_PROGRESS.value
    assert len(replied.json()["replies"]) == 1

    mine = await client.get("/api/v1/tickets", headers=auth(AFF1_ID))
    assert [t["id"] for t in mine.json()["items"]] == [t_id]
    assert mine.json()["attention_count"] == 1

    closed = await client.patch(f"/api/v1/tickets/{t_id}/status", json={"status": "Chiuso"}, headers=auth(AFF1_ID))
    assert closed.status_code == 200
    assert store.ticket(t_id).status == TicketStatus.CLOSED

    late = await client.post(f"/api/v1/tickets/{t_id}/replies", json={"message": "ancora io"}, headers=auth(AFF1_ID))
    assert late.status_code == 422
    assert late.json()["detail"]["code"] == "ticket_closed"


@pytest.mark.asyncio
async def test_tickets_are_private(client, store, auth):
    opened = await client.post(
        "/api/v1/tickets",
        json={"subject": "Ordine", "message": "Ordine mancante"},
        headers=auth(AFF1_ID),
    )
    t_id = opened.json()["id"]

    other = await client.get("/api/v1/tickets", headers=auth(AFF2_ID))
    assert other.json()["items"] == []

    reply = await client.post(f"/api/v1/tickets/{t_id}/replies", json={"message": "ciao"}, headers=auth(AFF2_ID))
    assert reply.status_code == 403

    reopen = await client.patch(f"/api/v1/tickets/{t_id}/status", json={"status": "In Lavorazione"}, headers=auth(AFF1_ID))
    assert reopen.status_code == 403
    assert reopen.json()["detail"]["code"] == "ticket_status_not_allowed"

    missing = await client.patch("/api/v1/tickets/TICKET404/status", json={"status": "Chiuso"}, headers=auth(ADMIN_ID))
    assert missing.status_code == 404
