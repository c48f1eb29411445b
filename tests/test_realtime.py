from conftest import LATTE, order_line, order_payload


def test_order_events_are_broadcast(client, seed_menu, open_day):
    with client.websocket_connect("/ws") as ws:
        created = client.post("/orders", json=order_payload(order_line(LATTE))).json()
        msg = ws.receive_json()
        assert msg["event"] == "order:new"
        assert msg["data"]["id"] == created["id"]
        assert msg["data"]["drinkTicket"] == "pending"

        client.patch(f"/orders/{created['id']}/status", json={"status": "preparing"})
        msg = ws.receive_json()
        assert msg["event"] == "order:update"
        assert msg["data"]["status"] == "preparing"


def test_session_and_settings_events(client):
    with client.websocket_connect("/ws") as ws:
        client.post("/admin/open-day")
        assert ws.receive_json() == {"event": "session:update", "data": {"status": "OPEN"}}

        client.post("/settings", json={"key": "store_name", "value": "Daily Dose"})
        assert ws.receive_json() == {
            "event": "settings:update",
            "data": {"key": "store_name", "value": "Daily Dose"},
        }


def test_disconnected_socket_is_dropped(app, client):
    with client.websocket_connect("/ws"):
        pass
    client.post("/admin/open-day")
    assert app.state.realtime.active_sockets == []
