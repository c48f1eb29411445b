from datetime import timedelta

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from conftest import CROISSANT, LATTE, order_line, order_payload
from daily_dose_pos.models import StoreSession
from daily_dose_pos.utils import utcnow


def _create(client, *lines, **extra):
    resp = client.post("/orders", json=order_payload(*lines, **extra))
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_status_closed_by_default(client):
    resp = client.get("/admin/status")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "CLOSED"
    assert data["session"] is None
    assert data["maintenance"] is False


def test_second_open_day_is_rejected(client, open_day):
    resp = client.post("/admin/open-day")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Session already open"


def test_close_day_without_open_session(client):
    resp = client.post("/admin/close-day")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "No open session"


def test_single_open_session_enforced_by_index(run_db):
    async def insert_two(db):
        db.add(StoreSession(status="OPEN", opened_at=utcnow()))
        await db.commit()
        db.add(StoreSession(status="OPEN", opened_at=utcnow()))
        await db.commit()

    with pytest.raises(IntegrityError):
        run_db(insert_two)


def test_open_day_clears_maintenance(client, app_state):
    app_state.maintenance = True
    client.post("/admin/open-day")
    assert client.get("/admin/status").json()["maintenance"] is False


def test_counters_skip_test_orders_and_survive_cancellation(client, seed_menu, open_day):
    first = _create(client, order_line(LATTE, flavors=["Large"]))
    _create(client, order_line(CROISSANT, quantity=2))
    _create(client, order_line(CROISSANT), isTest=True)

    client.patch(f"/orders/{first['id']}/status", json={"status": "cancelled"})

    session = client.get("/admin/status").json()["session"]
    assert session["totalOrders"] == 2
    assert session["totalSales"] == 305.0


def test_close_day_closes_every_order(client, seed_menu, open_day):
    a = _create(client, order_line(CROISSANT))
    b = _create(client, order_line(LATTE))
    client.patch(f"/orders/{b['id']}/status", json={"status": "preparing"})

    resp = client.post("/admin/close-day")
    assert resp.status_code == 200
    summary = resp.json()
    assert summary["totalOrders"] == 2
    assert summary["totalSales"] == 205.0
    assert summary["date"] == open_day["openedAt"][:10]

    for order_id in (a["id"], b["id"]):
        order = client.get(f"/orders/{order_id}").json()
        assert order["status"] == "closed"
        assert order["closedAt"] is not None

    assert client.get("/orders").json() == []
    assert client.get("/admin/status").json()["status"] == "CLOSED"


def test_orders_rejected_after_close(client, seed_menu, open_day):
    client.post("/admin/close-day")
    resp = client.post("/orders", json=order_payload(order_line(CROISSANT)))
    assert resp.status_code == 403


def test_history_lists_closed_sessions(client, seed_menu):
    for _ in range(3):
        client.post("/admin/open-day")
        _create(client, order_line(CROISSANT))
        client.post("/admin/close-day")

    resp = client.get("/admin/history", params={"page": 1, "limit": 2})
    assert resp.status_code == 200
    data = resp.json()
    assert data["meta"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}
    assert len(data["items"]) == 2
    assert all(item["totalOrders"] == 1 for item in data["items"])
    assert data["items"][0]["id"] > data["items"][1]["id"]


def test_history_detail_and_retention(client, seed_menu, open_day, run_db):
    order = _create(client, order_line(CROISSANT))
    client.post("/admin/close-day")
    session_id = open_day["id"]

    detail = client.get(f"/admin/history/{session_id}")
    assert detail.status_code == 200
    assert [o["id"] for o in detail.json()["orders"]] == [order["id"]]

    async def age_session(db):
        await db.execute(
            update(StoreSession)
            .where(StoreSession.id == session_id)
            .values(closed_at=utcnow() - timedelta(hours=25))
        )
        await db.commit()

    run_db(age_session)

    resp = client.get(f"/admin/history/{session_id}")
    assert resp.status_code == 410
    assert resp.json()["detail"] == "Detailed receipts expired"

    # итоги остаются в истории
    items = client.get("/admin/history").json()["items"]
    assert [i["id"] for i in items] == [session_id]


def test_history_detail_unknown_session(client):
    assert client.get("/admin/history/999").status_code == 404


def test_flags_toggle_test_mode(client):
    resp = client.patch("/admin/flags", json={"isTest": True})
    assert resp.status_code == 200
    assert resp.json()["isTest"] is True
    assert resp.json()["maintenance"] is False


def test_analytics_excludes_test_and_cancelled(client, seed_menu, open_day):
    _create(client, order_line(LATTE, quantity=2))
    cancelled = _create(client, order_line(LATTE))
    client.patch(f"/orders/{cancelled['id']}/status", json={"status": "cancelled"})
    _create(client, order_line(LATTE), isTest=True)
    _create(client, order_line(CROISSANT))

    resp = client.get("/admin/analytics", params={"period": "today"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["totalCups"] == 2
    assert data["topItems"][0] == {"name": "Latte", "quantity": 2, "sales": 240.0}
    assert len(data["hourlyStats"]) == 24
    assert sum(h["orders"] for h in data["hourlyStats"]) == 2
    assert sum(d["sales"] for d in data["dailyTotals"]) == 325.0
