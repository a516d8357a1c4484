# Overview: Pytest coverage for order placement, visibility, status transitions and stats.

import re
from decimal import Decimal

import pytest

from fenceflow.extensions import db
from fenceflow.models import Order, OrderItem, Product, InventoryTransaction


def _stock(product_id):
    db.session.expire_all()
    return db.session.get(Product, product_id).stock_quantity


def _place(client, headers, items, **extra):
    payload = {"items": items}
    payload.update(extra)
    return client.post("/api/orders", headers=headers, json=payload)


class TestCreateOrder:

    def test_create_order_deducts_stock(self, client, agency_headers, agency_user, product, second_product, project):
        resp = _place(
            client, agency_headers,
            [{"product_id": product.id, "quantity": 3}, {"product_id": second_product.id, "quantity": 2}],
            project_id=project.id,
            shipping_address="Sector 7 depot",
            notes="Urgent",
        )
        assert resp.status_code == 201
        assert resp.json["message"] == "Order created successfully"

        order = resp.json["order"]
        assert re.fullmatch(r"ORD-\d+-[0-9A-F]{8}", order["order_number"])
        assert order["status"] == "pending"
        assert order["user_id"] == agency_user.id
        assert order["project_name"] == "Border Security Fence"
        assert order["total_amount"] == 3 * 1500.0 + 2 * 25000.0
        assert [(i["sku"], i["quantity"], i["unit_price"], i["total_price"]) for i in order["items"]] == [
            ("FENCE-001", 3, 1500.0, 4500.0),
            ("GATE-001", 2, 25000.0, 50000.0),
        ]

        assert _stock(product.id) == 97
        assert _stock(second_product.id) == 3

        txns = db.session.query(InventoryTransaction).order_by(InventoryTransaction.id).all()
        assert [(t.transaction_type, t.quantity, t.reference_type) for t in txns] == [
            ("out", 3, "order"),
            ("out", 2, "order"),
        ]
        assert all(t.reference_id == order["id"] for t in txns)
        assert txns[0].notes == f"Order {order['order_number']}"

    def test_duplicate_lines_are_merged(self, client, agency_headers, second_product):
        # 3 + 3 exceeds the 5 on hand even though each line alone fits
        resp = _place(client, agency_headers, [
            {"product_id": second_product.id, "quantity": 3},
            {"product_id": second_product.id, "quantity": 3},
        ])
        assert resp.status_code == 400
        assert resp.json["error"] == "Insufficient stock for Security Gate"

        resp = _place(client, agency_headers, [
            {"product_id": second_product.id, "quantity": 2},
            {"product_id": second_product.id, "quantity": 3},
        ])
        assert resp.status_code == 201
        assert [(i["quantity"], i["total_price"]) for i in resp.json["order"]["items"]] == [(5, 125000.0)]
        assert _stock(second_product.id) == 0

    def test_insufficient_stock_writes_nothing(self, client, agency_headers, product, second_product):
        resp = _place(client, agency_headers, [
            {"product_id": product.id, "quantity": 10},
            {"product_id": second_product.id, "quantity": 6},
        ])
        assert resp.status_code == 400
        assert resp.json["error"] == "Insufficient stock for Security Gate"

        assert _stock(product.id) == 100
        assert _stock(second_product.id) == 5
        assert db.session.query(Order).count() == 0
        assert db.session.query(OrderItem).count() == 0
        assert db.session.query(InventoryTransaction).count() == 0

    def test_inactive_product(self, client, agency_headers, product, db_session):
        product.status = "inactive"
        db_session.commit()

        resp = _place(client, agency_headers, [{"product_id": product.id, "quantity": 1}])
        assert resp.status_code == 400
        assert resp.json["error"] == f"Product {product.id} not found or inactive"

    def test_unknown_product(self, client, agency_headers, db_session):
        resp = _place(client, agency_headers, [{"product_id": 9999, "quantity": 1}])
        assert resp.status_code == 400
        assert resp.json["error"] == "Product 9999 not found or inactive"

    def test_unknown_project(self, client, agency_headers, product):
        resp = _place(client, agency_headers, [{"product_id": product.id, "quantity": 1}], project_id=9999)
        assert resp.status_code == 400
        assert resp.json["error"] == "Project not found"

    def test_order_total_past_column_limit(self, client, agency_headers, category, db_session):
        pricey = Product(
            name="Perimeter Radar", sku="RADAR-001", category_id=category.id,
            price=Decimal("99999999.99"), stock_quantity=1000, status="active",
        )
        db_session.add(pricey)
        db_session.commit()

        resp = _place(client, agency_headers, [{"product_id": pricey.id, "quantity": 101}])
        assert resp.status_code == 400
        assert resp.json["error"] == "Order total is too large"
        assert _stock(pricey.id) == 1000
        assert db.session.query(Order).count() == 0

    @pytest.mark.parametrize("payload", [
        {},
        {"items": []},
        {"items": "FENCE-001"},
        {"items": [{"product_id": 1}]},
        {"items": [{"product_id": 1, "quantity": 0}]},
        {"items": [{"product_id": "x", "quantity": 1}]},
        {"items": [{"product_id": 1, "quantity": 10**20}]},
        ["not", "an", "object"],
        {"items": [{"product_id": 1, "quantity": 1}], "notes": 42},
    ])
    def test_invalid_payload(self, client, agency_headers, payload):
        resp = client.post("/api/orders", headers=agency_headers, json=payload)
        assert resp.status_code == 400
        assert "errors" in resp.json


class TestOrderVisibility:

    @pytest.fixture
    def orders(self, client, agency_headers, other_agency_headers, product):
        mine = _place(client, agency_headers, [{"product_id": product.id, "quantity": 1}]).json["order"]
        theirs = _place(client, other_agency_headers, [{"product_id": product.id, "quantity": 2}]).json["order"]
        return mine, theirs

    def test_agency_sees_only_own_orders(self, client, agency_headers, orders):
        mine, _ = orders
        resp = client.get("/api/orders", headers=agency_headers)
        assert resp.status_code == 200
        assert [o["id"] for o in resp.json["orders"]] == [mine["id"]]
        assert resp.json["orders"][0]["agency_name"] == "Defense Agency 1"

    def test_agency_user_id_filter_is_ignored(self, client, agency_headers, other_agency_user, orders):
        mine, _ = orders
        resp = client.get(f"/api/orders?user_id={other_agency_user.id}", headers=agency_headers)
        assert [o["id"] for o in resp.json["orders"]] == [mine["id"]]

    def test_admin_sees_all_orders(self, client, admin_headers, orders):
        resp = client.get("/api/orders", headers=admin_headers)
        assert resp.json["pagination"]["total"] == 2

    def test_admin_filters_by_user(self, client, admin_headers, other_agency_user, orders):
        _, theirs = orders
        resp = client.get(f"/api/orders?user_id={other_agency_user.id}", headers=admin_headers)
        assert [o["id"] for o in resp.json["orders"]] == [theirs["id"]]

    def test_get_own_order_with_items(self, client, agency_headers, orders):
        mine, _ = orders
        resp = client.get(f"/api/orders/{mine['id']}", headers=agency_headers)
        assert resp.status_code == 200
        [item] = resp.json["order"]["items"]
        assert item["product_name"] == "Barbed Wire Fence"
        assert item["sku"] == "FENCE-001"

    def test_get_other_agency_order_denied(self, client, agency_headers, orders):
        _, theirs = orders
        resp = client.get(f"/api/orders/{theirs['id']}", headers=agency_headers)
        assert resp.status_code == 403
        assert resp.json["error"] == "Access denied"

    def test_get_missing_order(self, client, admin_headers):
        resp = client.get("/api/orders/9999", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json["error"] == "Order not found"

    def test_stats_scoped_to_agency(self, client, agency_headers, admin_headers, orders):
        resp = client.get("/api/orders/stats/overview", headers=agency_headers)
        assert resp.json["total_orders"] == 1
        assert resp.json["pending_orders"] == 1
        assert resp.json["total_value"] == 1500.0

        resp = client.get("/api/orders/stats/overview", headers=admin_headers)
        assert resp.json["total_orders"] == 2
        assert resp.json["total_value"] == 4500.0
        assert resp.json["cancelled_orders"] == 0


class TestOrderStatus:

    @pytest.fixture
    def order(self, client, agency_headers, product):
        return _place(client, agency_headers, [{"product_id": product.id, "quantity": 10}]).json["order"]

    def test_advance_status(self, client, admin_headers, order):
        resp = client.patch(f"/api/orders/{order['id']}/status", headers=admin_headers,
                            json={"status": "approved", "notes": "Approved by HQ"})
        assert resp.status_code == 200
        assert resp.json["order"]["status"] == "approved"
        assert resp.json["order"]["notes"] == "Approved by HQ"

    def test_cancel_restores_stock(self, client, admin_headers, order, product):
        assert _stock(product.id) == 90

        resp = client.patch(f"/api/orders/{order['id']}/status", headers=admin_headers,
                            json={"status": "cancelled"})
        assert resp.status_code == 200
        assert _stock(product.id) == 100

        restore = db.session.query(InventoryTransaction).filter_by(transaction_type="in").one()
        assert restore.quantity == 10
        assert restore.reference_id == order["id"]
        assert restore.notes == "Order cancellation - stock restored"

    def test_cancel_twice_restores_once(self, client, admin_headers, order, product):
        for _ in range(2):
            resp = client.patch(f"/api/orders/{order['id']}/status", headers=admin_headers,
                                json={"status": "cancelled"})
            assert resp.status_code == 200
        assert _stock(product.id) == 100

    def test_cancelled_is_terminal(self, client, admin_headers, order, product):
        client.patch(f"/api/orders/{order['id']}/status", headers=admin_headers, json={"status": "cancelled"})

        resp = client.patch(f"/api/orders/{order['id']}/status", headers=admin_headers, json={"status": "pending"})
        assert resp.status_code == 400
        assert resp.json["error"] == "Cancelled orders cannot be reopened"
        assert _stock(product.id) == 100

    def test_invalid_status(self, client, admin_headers, order):
        resp = client.patch(f"/api/orders/{order['id']}/status", headers=admin_headers, json={"status": "lost"})
        assert resp.status_code == 400

    @pytest.mark.parametrize("payload", [
        ["approved"],
        {"status": "approved", "notes": 7},
    ])
    def test_malformed_status_body(self, client, admin_headers, order, payload):
        resp = client.patch(f"/api/orders/{order['id']}/status", headers=admin_headers, json=payload)
        assert resp.status_code == 400
        assert "errors" in resp.json

    def test_missing_order(self, client, admin_headers):
        resp = client.patch("/api/orders/9999/status", headers=admin_headers, json={"status": "approved"})
        assert resp.status_code == 404
