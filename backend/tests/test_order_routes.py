"""
Order API tests.

Verifies:
- Unauthenticated requests return 401
- Users can only place, read and cancel their own orders (403)
- Business failures answer 400 with a message naming the item
- Status changes are admin only
"""

import pytest

from storefront.extensions import db


def _create(client, headers, items, address, **body):
    payload = {"user_id": "user-1", "checkout_mode": "buy-now", "items": items, "address": address}
    payload.update(body)
    return client.post("/api/orders/create", json=payload, headers=headers)


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/orders/create"),
            ("GET", "/api/orders/ORD-1"),
            ("GET", "/api/orders/user/user-1"),
            ("PUT", "/api/orders/ORD-1/cancel"),
            ("PUT", "/api/orders/ORD-1/status"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_tampered_token(self, client, db_session, user_headers):
        headers = {"Authorization": user_headers["Authorization"] + "x"}
        resp = client.get("/api/orders/user/user-1", headers=headers)
        assert resp.status_code == 401


class TestCreateOrder:

    def test_creates_order(self, client, user_headers, make_product, inventory_of, order_item, address):
        product = make_product(price="500.00", stock=10)

        resp = _create(client, user_headers, [order_item(product, 2)], address)

        assert resp.status_code == 201
        order = resp.get_json()["order"]
        assert order["order_id"].startswith("ORD")
        assert order["order_status"] == "pending"
        assert order["items_count"] == 1
        assert order["pricing"]["total"] == 1230.0
        db.session.expire_all()
        assert inventory_of(product).stock == 8

    def test_user_id_defaults_to_caller(self, client, user_headers, make_product, order_item, address):
        product = make_product(stock=5)
        resp = client.post(
            "/api/orders/create",
            json={"items": [order_item(product, 1)], "address": address},
            headers=user_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["order"]["user_id"] == "user-1"

    def test_cannot_order_for_another_user(self, client, other_user_headers, make_product, inventory_of, order_item, address):
        product = make_product(stock=5)

        resp = _create(client, other_user_headers, [order_item(product, 1)], address)

        assert resp.status_code == 403
        db.session.expire_all()
        assert inventory_of(product).stock == 5

    def test_admin_can_order_for_user(self, client, admin_headers, make_product, order_item, address):
        product = make_product(stock=5)
        resp = _create(client, admin_headers, [order_item(product, 1)], address)
        assert resp.status_code == 201

    def test_insufficient_stock_is_400(self, client, user_headers, make_product, inventory_of, order_item, address):
        product = make_product(name="Oud Candle", stock=1)

        resp = _create(client, user_headers, [order_item(product, 2)], address)

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"] == "insufficient_stock"
        assert "Oud Candle (Red)" in body["message"]
        db.session.expire_all()
        assert inventory_of(product).stock == 1

    def test_missing_inventory_is_400(self, client, user_headers, make_product, order_item, address):
        product = make_product(fragrances=["Rose"], stock=3)

        resp = _create(client, user_headers, [order_item(product, 1)], address)

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "inventory_not_found"

    def test_unknown_product_is_400(self, client, user_headers, make_product, order_item, address):
        product = make_product(stock=3)
        item = order_item(product, 1)
        item["product_id"] = "nope"

        resp = _create(client, user_headers, [item], address)

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "product_not_found"

    def test_empty_body_is_400(self, client, db_session, user_headers):
        resp = client.post("/api/orders/create", data="not json", headers=user_headers)
        assert resp.status_code == 400

    def test_unexpected_failure_is_500(self, client, user_headers, make_product, inventory_of, order_item, address, monkeypatch):
        from storefront.services import order_service

        product = make_product(stock=3)

        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(order_service.offer_service, "resolve_offer", broken)

        resp = _create(client, user_headers, [order_item(product, 1)], address)

        assert resp.status_code == 500
        assert resp.get_json()["error"] == "internal_error"
        db.session.expire_all()
        assert inventory_of(product).stock == 3


class TestReadOrders:

    def test_owner_reads_order(self, client, user_headers, other_user_headers, make_product, order_item, address):
        product = make_product(stock=5)
        order_id = _create(client, user_headers, [order_item(product, 1)], address).get_json()["order"]["order_id"]

        assert client.get(f"/api/orders/{order_id}", headers=user_headers).status_code == 200
        assert client.get(f"/api/orders/{order_id}", headers=other_user_headers).status_code == 403

    def test_unknown_order_is_404(self, client, db_session, user_headers):
        resp = client.get("/api/orders/ORD-NOPE", headers=user_headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "order_not_found"

    def test_list_user_orders(self, client, user_headers, other_user_headers, make_product, order_item, address):
        product = make_product(stock=5)
        _create(client, user_headers, [order_item(product, 1)], address)

        resp = client.get("/api/orders/user/user-1?limit=5", headers=user_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert len(body["orders"]) == 1
        assert body["pagination"]["limit"] == 5
        assert body["summary"]["pending"] == 1
        assert client.get("/api/orders/user/user-1", headers=other_user_headers).status_code == 403

    def test_list_rejects_unknown_status(self, client, db_session, user_headers):
        resp = client.get("/api/orders/user/user-1?status=lost", headers=user_headers)
        assert resp.status_code == 400


class TestCancelOrder:

    def test_cancel_restores_stock(self, client, user_headers, make_product, inventory_of, order_item, address):
        product = make_product(stock=10)
        order_id = _create(client, user_headers, [order_item(product, 3)], address).get_json()["order"]["order_id"]

        resp = client.put(f"/api/orders/{order_id}/cancel", json={"reason": "Ordered twice"}, headers=user_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["order"]["order_status"] == "cancelled"
        assert body["restock_failures"] == []
        db.session.expire_all()
        assert inventory_of(product).stock == 10

    def test_second_cancel_is_400(self, client, user_headers, make_product, inventory_of, order_item, address):
        product = make_product(stock=10)
        order_id = _create(client, user_headers, [order_item(product, 3)], address).get_json()["order"]["order_id"]
        client.put(f"/api/orders/{order_id}/cancel", headers=user_headers)

        resp = client.put(f"/api/orders/{order_id}/cancel", headers=user_headers)

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "invalid_transition"
        db.session.expire_all()
        assert inventory_of(product).stock == 10

    def test_cannot_cancel_another_users_order(self, client, user_headers, other_user_headers, make_product, inventory_of, order_item, address):
        product = make_product(stock=10)
        order_id = _create(client, user_headers, [order_item(product, 3)], address).get_json()["order"]["order_id"]

        resp = client.put(f"/api/orders/{order_id}/cancel", headers=other_user_headers)

        assert resp.status_code == 403
        db.session.expire_all()
        assert inventory_of(product).stock == 7

    def test_unknown_order_is_404(self, client, db_session, user_headers):
        assert client.put("/api/orders/ORD-NOPE/cancel", headers=user_headers).status_code == 404


class TestUpdateStatus:

    def _order_id(self, client, headers, product, order_item, address):
        return _create(client, headers, [order_item(product, 1)], address).get_json()["order"]["order_id"]

    def test_user_cannot_change_status(self, client, user_headers, make_product, order_item, address):
        order_id = self._order_id(client, user_headers, make_product(stock=5), order_item, address)
        resp = client.put(f"/api/orders/{order_id}/status", json={"status": "processing"}, headers=user_headers)
        assert resp.status_code == 403

    def test_admin_moves_order_forward(self, client, user_headers, admin_headers, make_product, order_item, address):
        order_id = self._order_id(client, user_headers, make_product(stock=5), order_item, address)

        resp = client.put(f"/api/orders/{order_id}/status", json={"status": "processing"}, headers=admin_headers)

        assert resp.status_code == 200
        order = resp.get_json()["order"]
        assert order["order_status"] == "processing"
        assert order["timeline"]["processed_at"] is not None

    @pytest.mark.parametrize("status,code", [("delivered", 400), ("lost", 400), (None, 400)])
    def test_admin_rejected_moves(self, client, user_headers, admin_headers, make_product, order_item, address, status, code):
        order_id = self._order_id(client, user_headers, make_product(stock=5), order_item, address)
        resp = client.put(f"/api/orders/{order_id}/status", json={"status": status}, headers=admin_headers)
        assert resp.status_code == code

    def test_admin_cancel_via_status_restocks(self, client, user_headers, admin_headers, make_product, inventory_of, order_item, address):
        product = make_product(stock=5)
        order_id = self._order_id(client, user_headers, product, order_item, address)

        resp = client.put(f"/api/orders/{order_id}/status", json={"status": "cancelled"}, headers=admin_headers)

        assert resp.status_code == 200
        db.session.expire_all()
        assert inventory_of(product).stock == 5
