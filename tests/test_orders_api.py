import pytest

from conftest import CROISSANT, LATTE, order_line, order_payload


def _create(client, *lines, **extra):
    resp = client.post("/orders", json=order_payload(*lines, **extra))
    assert resp.status_code == 201, resp.text
    return resp.json()


def _set_status(client, order_id, status):
    return client.patch(f"/orders/{order_id}/status", json={"status": status})


def test_order_rejected_when_store_closed(client, seed_menu):
    resp = client.post("/orders", json=order_payload(order_line(CROISSANT)))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Store is closed. Please open a session in Admin panel."


def test_order_rejected_in_maintenance_mode(client, seed_menu, open_day, app_state):
    app_state.maintenance = True
    resp = client.post("/orders", json=order_payload(order_line(CROISSANT)))
    assert resp.status_code == 403


def test_test_mode_accepts_orders_without_session(client, seed_menu, app_state):
    app_state.test_mode = True
    order = _create(client, order_line(CROISSANT))
    assert order["isTest"] is True


def test_server_recomputes_total(client, seed_menu, open_day):
    line = order_line(LATTE, quantity=2, flavors=["Large", "Extra Shot"])
    line["menuItem"]["price"] = 1  # цену клиента сервер игнорирует
    order = _create(client, line, order_line(CROISSANT), total=1)

    assert order["id"].startswith("POS-")
    assert order["total"] == 365.0
    assert order["items"][0]["lineTotal"] == 280.0
    assert order["items"][0]["menuItem"]["price"] == 120.0
    assert order["status"] == "new"
    assert order["paymentStatus"] == "paid"


def test_unknown_menu_item_is_rejected(client, seed_menu, open_day):
    ghost = {"id": "ghost", "name": "Ghost", "price": 10}
    resp = client.post("/orders", json=order_payload(order_line(ghost)))
    assert resp.status_code == 400


def test_empty_order_is_rejected(client, open_day):
    resp = client.post("/orders", json={"items": []})
    assert resp.status_code == 422


def test_active_orders_newest_first(client, seed_menu, open_day):
    first = _create(client, order_line(CROISSANT))
    second = _create(client, order_line(LATTE))
    _set_status(client, first["id"], "cancelled")

    resp = client.get("/orders")
    assert resp.status_code == 200
    ids = [o["id"] for o in resp.json()]
    assert ids == [second["id"]]


def test_voided_order_leaves_active_orders(client, seed_menu, open_day):
    voided = _create(client, order_line(CROISSANT))
    kept = _create(client, order_line(CROISSANT))
    assert _set_status(client, voided["id"], "voided").status_code == 200

    ids = [o["id"] for o in client.get("/orders").json()]
    assert ids == [kept["id"]]
    assert client.get(f"/orders/{voided['id']}").json()["status"] == "voided"


def test_status_lifecycle(client, seed_menu, open_day):
    order = _create(client, order_line(CROISSANT))
    for status in ("preparing", "ready", "completed"):
        resp = _set_status(client, order["id"], status)
        assert resp.status_code == 200, resp.text
        assert resp.json()["status"] == status


def test_same_status_is_noop(client, seed_menu, open_day):
    order = _create(client, order_line(CROISSANT))
    resp = _set_status(client, order["id"], "new")
    assert resp.status_code == 200
    assert resp.json()["status"] == "new"


@pytest.mark.parametrize("target", ["ready", "completed", "closed"])
def test_illegal_transition_returns_409(client, seed_menu, open_day, target):
    order = _create(client, order_line(CROISSANT))
    resp = _set_status(client, order["id"], target)
    assert resp.status_code == 409


def test_unknown_order_returns_404(client):
    assert client.get("/orders/POS-1-000").status_code == 404
    assert _set_status(client, "POS-1-000", "preparing").status_code == 404


def test_pay_later_must_be_paid_before_completion(client, seed_menu, open_day):
    order = _create(client, order_line(CROISSANT), paymentMethod="Pay Later")
    assert order["paymentStatus"] == "pending"

    _set_status(client, order["id"], "preparing")
    _set_status(client, order["id"], "ready")
    resp = _set_status(client, order["id"], "completed")
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Order has not been paid"

    resp = client.patch(
        f"/orders/{order['id']}/pay",
        json={"paymentMethod": "Cash", "amountTendered": 100, "changeAmount": 15},
    )
    assert resp.status_code == 200
    assert resp.json()["paymentStatus"] == "paid"
    assert resp.json()["changeAmount"] == 15.0

    assert _set_status(client, order["id"], "completed").status_code == 200


def test_paying_twice_is_rejected(client, seed_menu, open_day):
    order = _create(client, order_line(CROISSANT), paymentMethod="Card")
    resp = client.patch(f"/orders/{order['id']}/pay", json={"paymentMethod": "Cash"})
    assert resp.status_code == 409


def test_pay_later_is_not_a_settlement_method(client, seed_menu, open_day):
    order = _create(client, order_line(CROISSANT), paymentMethod="Pay Later")
    resp = client.patch(f"/orders/{order['id']}/pay", json={"paymentMethod": "Pay Later"})
    assert resp.status_code == 400


def test_gcash_completes_without_payment_step(client, seed_menu, open_day, run_db):
    from sqlalchemy import update

    from daily_dose_pos.models import Order

    order = _create(client, order_line(CROISSANT), paymentMethod="GCash")

    async def mark_pending(db):
        await db.execute(update(Order).where(Order.id == order["id"]).values(payment_status="pending"))
        await db.commit()

    run_db(mark_pending)

    _set_status(client, order["id"], "preparing")
    _set_status(client, order["id"], "ready")
    assert _set_status(client, order["id"], "completed").status_code == 200


def test_drink_tickets_are_independent_of_status(client, seed_menu, open_day):
    first = _create(client, order_line(LATTE))
    second = _create(client, order_line(LATTE, flavors=["Large"]))
    food = _create(client, order_line(CROISSANT))
    assert food["drinkTicket"] is None

    tickets = client.get("/orders/drink-tickets").json()
    assert [t["id"] for t in tickets] == [first["id"], second["id"]]

    resp = client.patch(f"/orders/{first['id']}/drink-ticket")
    assert resp.status_code == 200
    assert resp.json()["drinkTicket"] == "done"
    assert resp.json()["status"] == "new"

    tickets = client.get("/orders/drink-tickets").json()
    assert [t["id"] for t in tickets] == [second["id"]]


def test_drink_ticket_for_food_order_is_rejected(client, seed_menu, open_day):
    food = _create(client, order_line(CROISSANT))
    assert client.patch(f"/orders/{food['id']}/drink-ticket").status_code == 409


def test_cancelled_order_leaves_drink_queue(client, seed_menu, open_day):
    order = _create(client, order_line(LATTE))
    _set_status(client, order["id"], "cancelled")
    assert client.get("/orders/drink-tickets").json() == []


def test_legacy_selected_flavor_field(client, seed_menu, open_day):
    line = order_line(LATTE)
    line.pop("selectedFlavors")
    line["selectedFlavor"] = "Large"
    order = _create(client, line)
    assert order["items"][0]["selectedFlavors"] == ["Large"]
    assert order["total"] == 135.0
