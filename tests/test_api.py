"""Tests for the HTTP and WebSocket surface."""

from fastapi.testclient import TestClient

from conftest import ADMIN, CUSTOMER, OTHER_CUSTOMER, SUB_APPS, auth_headers, order_payload, request_payload
from services.tracking_service.broadcaster import WebSocketBroadcaster
from services.tracking_service.main import tracking_app
from shared.config.database import DatabaseHealth, get_db_health


async def place_order(client, product, user=CUSTOMER, **overrides):
    resp = await client.post("/orders/", json=order_payload(product.id, 3, **overrides), headers=auth_headers(user))
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestHealth:
    async def test_service_health(self, client):
        resp = await client.get("/orders/health")
        assert resp.status_code == 200
        assert resp.json()["database"] == "connected"

    async def test_database_down_returns_503(self, client, engine):
        class DownHealth(DatabaseHealth):
            async def ping(self):
                self.ready = False
                return False

        down = DownHealth(engine)
        for sub_app in SUB_APPS:
            sub_app.dependency_overrides[get_db_health] = lambda: down

        resp = await client.get("/products/")
        assert resp.status_code == 503
        assert "Database not connected" in resp.json()["detail"]


class TestOrderEndpoints:
    async def test_requires_token(self, client, product):
        resp = await client.post("/orders/", json=order_payload(product.id))
        assert resp.status_code == 401

    async def test_checkout(self, client, product, gateway):
        order = await place_order(client, product)
        assert order["final_amount"] == 63.54
        assert order["status"] == "confirmed"
        assert order["payment_status"] == "paid"
        assert order["user_id"] == CUSTOMER.id
        assert len(gateway.calls) == 1

    async def test_empty_cart_is_rejected(self, client, product):
        resp = await client.post("/orders/", json=order_payload(product.id, items=[]), headers=auth_headers(CUSTOMER))
        assert resp.status_code == 422

    async def test_declined_payment(self, client, product, gateway):
        gateway.approved = False
        gateway.reason = "Payment declined. Please check your card details or try a different payment method."
        resp = await client.post("/orders/", json=order_payload(product.id), headers=auth_headers(CUSTOMER))
        assert resp.status_code == 402
        assert resp.json()["code"] == "payment_failed"

        resp = await client.get("/orders/my-orders", headers=auth_headers(CUSTOMER))
        assert resp.json()["pagination"]["total"] == 0

    async def test_insufficient_stock(self, client, product):
        resp = await client.post("/orders/", json=order_payload(product.id, 99), headers=auth_headers(CUSTOMER))
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Insufficient stock for product Yirgacheffe Coffee", "code": "insufficient_stock"}

    async def test_foreign_order_is_not_found(self, client, product):
        order = await place_order(client, product)
        resp = await client.get(f"/orders/{order['id']}", headers=auth_headers(OTHER_CUSTOMER))
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Order not found"

    async def test_customer_cancel(self, client, product, db):
        order = await place_order(client, product)
        resp = await client.put(f"/orders/{order['id']}/cancel", json={"reason": "Duplicate"},
                                headers=auth_headers(CUSTOMER))
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"
        assert resp.json()["payment_status"] == "refunded"

        await db.refresh(product)
        assert product.stock == 10

        resp = await client.put(f"/orders/{order['id']}/cancel", json={}, headers=auth_headers(CUSTOMER))
        assert resp.status_code == 400


class TestAdminOrderEndpoints:
    async def test_status_update_requires_admin(self, client, product):
        order = await place_order(client, product)
        resp = await client.put(f"/orders/{order['id']}/status", json={"status": "shipped"},
                                headers=auth_headers(CUSTOMER))
        assert resp.status_code == 403

    async def test_status_update(self, client, product, broadcaster):
        order = await place_order(client, product)
        resp = await client.put(
            f"/orders/{order['id']}/status",
            json={"status": "shipped", "location": "Bole Airport"},
            headers=auth_headers(ADMIN),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "shipped"
        assert body["tracking_updates"][-1]["location"] == "Bole Airport"
        assert broadcaster.events[-1]["event"] == "orderStatusUpdate"

    async def test_invalid_transition_is_a_conflict(self, client, product):
        order = await place_order(client, product)
        headers = auth_headers(ADMIN)
        await client.put(f"/orders/{order['id']}/status", json={"status": "cancelled"}, headers=headers)

        resp = await client.put(f"/orders/{order['id']}/status", json={"status": "shipped"}, headers=headers)
        assert resp.status_code == 409
        assert resp.json()["code"] == "invalid_status_transition"

    async def test_unknown_status_is_rejected(self, client, product):
        order = await place_order(client, product)
        resp = await client.put(f"/orders/{order['id']}/status", json={"status": "lost"},
                                headers=auth_headers(ADMIN))
        assert resp.status_code == 422

    async def test_list_and_stats(self, client, product):
        await place_order(client, product)
        await place_order(client, product, payment_method="cash_on_delivery", payment_info=None)
        headers = auth_headers(ADMIN)

        resp = await client.get("/orders/", params={"payment_status": "paid"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["pagination"]["total"] == 1

        resp = await client.get("/orders/admin/stats", headers=headers)
        assert resp.json()["total_orders"] == 2
        assert resp.json()["total_revenue"] == 63.54

    async def test_payment_ledger(self, client, product):
        order = await place_order(client, product)
        resp = await client.get(f"/payments/orders/{order['order_number']}", headers=auth_headers(ADMIN))
        assert resp.status_code == 200
        assert [p["status"] for p in resp.json()] == ["paid"]


class TestTrackingLookup:
    async def test_public_lookup_is_camel_case(self, client, product):
        order = await place_order(client, product)
        resp = await client.post("/orders/track", json={"tracking_number": order["order_number"]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["orderNumber"] == order["order_number"]
        assert body["currentLocation"] == "Order Processing Center"
        assert body["tracking"]["trackingNumber"] == order["order_number"]
        assert body["items"][0]["price"] == "€15.00"

    async def test_unknown_number(self, client):
        resp = await client.post("/orders/track", json={"tracking_number": "NOPE"})
        assert resp.status_code == 404


class TestRequestEndpoints:
    async def test_create_and_review(self, client, broadcaster):
        resp = await client.post("/requests/", json=request_payload(), headers=auth_headers(CUSTOMER))
        assert resp.status_code == 201
        created = resp.json()
        assert created["total_cost"] == 170.0

        resp = await client.put(
            f"/requests/{created['id']}/status",
            json={"status": "approved", "admin_notes": "Looks fine"},
            headers=auth_headers(ADMIN),
        )
        assert resp.status_code == 200
        assert resp.json()["approved_at"] is not None
        assert broadcaster.events[-1]["channel"] == f"request_{created['id']}"

        resp = await client.get("/requests/my-requests", headers=auth_headers(CUSTOMER))
        assert resp.json()["pagination"]["total"] == 1

    async def test_cancel_after_approval_fails(self, client):
        created = (await client.post("/requests/", json=request_payload(), headers=auth_headers(CUSTOMER))).json()
        await client.put(f"/requests/{created['id']}/status", json={"status": "approved"}, headers=auth_headers(ADMIN))

        resp = await client.put(f"/requests/{created['id']}/cancel", json={}, headers=auth_headers(CUSTOMER))
        assert resp.status_code == 400
        assert resp.json()["code"] == "business_rule_violation"


class TestTrackingSocket:
    def test_join_and_leave(self):
        client = TestClient(tracking_app)
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "join_order_tracking", "orderId": 42})
            assert ws.receive_json() == {"event": "joined", "data": {"channel": "order_42"}}
            assert client.get("/health").json()["subscribers"] == 1

            ws.send_json({"action": "leave_order_tracking", "orderId": 42})
            assert ws.receive_json() == {"event": "left", "data": {"channel": "order_42"}}

            ws.send_json({"action": "dance"})
            assert ws.receive_json()["event"] == "error"

        assert client.get("/health").json()["subscribers"] == 0

    def test_non_json_frame_keeps_socket_open(self):
        client = TestClient(tracking_app)
        with client.websocket_connect("/ws") as ws:
            ws.send_text("hello?")
            assert ws.receive_json() == {"event": "error", "data": {"message": "Unknown action"}}

            ws.send_json({"action": "join_request_tracking", "requestId": 7})
            assert ws.receive_json() == {"event": "joined", "data": {"channel": "request_7"}}


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("closed")
        self.sent.append(message)


class TestWebSocketBroadcaster:
    async def test_publish_reaches_only_the_room(self):
        hub = WebSocketBroadcaster()
        joined, other = FakeSocket(), FakeSocket()
        hub.join(joined, "order_1")
        hub.join(other, "order_2")

        delivered = await hub.publish("order_1", "trackingUpdate", {"orderId": 1})

        assert delivered == 1
        assert joined.sent == [{"event": "trackingUpdate", "data": {"orderId": 1}}]
        assert other.sent == []

    async def test_dead_socket_is_dropped(self):
        hub = WebSocketBroadcaster()
        hub.join(FakeSocket(fail=True), "order_1")
        assert await hub.publish("order_1", "orderStatusUpdate", {}) == 0
        assert hub.subscriber_count() == 0

    async def test_publish_without_subscribers(self):
        assert await WebSocketBroadcaster().publish("order_9", "trackingUpdate", {}) == 0
