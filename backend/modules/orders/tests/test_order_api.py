# backend/modules/orders/tests/test_order_api.py

"""
HTTP tests for the order and kitchen endpoints.
"""

import pytest
from decimal import Decimal

from .factories import MenuCategoryFactory, MenuItemFactory, TableFactory


@pytest.fixture
def menu(db_session):
    starters = MenuCategoryFactory(name="Starters")
    return {
        "samosa": MenuItemFactory(name="Samosa", price=Decimal("40.00"), category=starters),
        "chai": MenuItemFactory(name="Chai", price=Decimal("20.00"), category=None),
    }


@pytest.fixture
def table(db_session):
    return TableFactory(table_number=3)


@pytest.fixture
def configure(client, admin_headers):
    def _configure(**changes):
        response = client.put("/api/v1/settings/workflow", json=changes, headers=admin_headers)
        assert response.status_code == 200
        return response.json()
    return _configure


def place_dine_in(client, headers, table, *items):
    response = client.post(
        "/api/v1/orders",
        json={
            "order_type": "dine_in",
            "table_id": table.id,
            "items": [{"menu_item_id": item.id, "quantity": 2} for item in items],
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["order"]


@pytest.mark.integration
class TestOrderEndpoints:
    def test_create_dine_in_order(self, client, waiter_headers, menu, table, kot_dispatcher,
                                  notifier):
        response = client.post(
            "/api/v1/orders",
            json={
                "order_type": "dine_in",
                "table_id": table.id,
                "notes": "window seat",
                "items": [
                    {"menu_item_id": menu["samosa"].id, "quantity": 2},
                    {"menu_item_id": menu["chai"].id, "notes": "no sugar"},
                ],
            },
            headers=waiter_headers,
        )

        assert response.status_code == 201
        body = response.json()
        order = body["order"]
        assert body["side_effect_errors"] == []
        assert order["order_number"] == "ORD-0001"
        assert order["status"] == "pending"
        assert Decimal(order["total"]) == Decimal("100.00")
        assert order["table_number"] == 3
        assert order["created_by_name"] == "Asha"
        assert order["payment_status"] == "unpaid"
        assert [i["name"] for i in order["order_items"]] == ["Samosa", "Chai"]
        assert kot_dispatcher.dispatched == [(order["id"], 0)]
        assert notifier.subjects() == ["new_order"]

        table_view = client.get(f"/api/v1/tables/{table.id}", headers=waiter_headers).json()
        assert table_view["status"] == "occupied"
        assert [o["id"] for o in table_view["active_orders"]] == [order["id"]]

    def test_missing_actor_headers(self, client, menu):
        response = client.get("/api/v1/orders")

        assert response.status_code == 401
        assert response.json()["error_code"] == "AUTH_FAILED"

    def test_invalid_quantity_is_rejected_by_schema(self, client, waiter_headers, menu):
        response = client.post(
            "/api/v1/orders",
            json={
                "order_type": "takeaway",
                "customer": {"name": "Meera"},
                "items": [{"menu_item_id": menu["chai"].id, "quantity": 0}],
            },
            headers=waiter_headers,
        )

        assert response.status_code == 422

    def test_customer_info_error_shape(self, client, waiter_headers, menu):
        response = client.post(
            "/api/v1/orders",
            json={
                "order_type": "delivery",
                "customer": {"name": "Meera"},
                "items": [{"menu_item_id": menu["chai"].id}],
            },
            headers=waiter_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "INVALID_CUSTOMER_INFO"
        assert body["details"]["missing_fields"] == ["address"]
        assert body["path"] == "/api/v1/orders"

    def test_table_unavailable(self, client, waiter_headers, menu, table):
        place_dine_in(client, waiter_headers, table, menu["chai"])

        response = client.post(
            "/api/v1/orders",
            json={"order_type": "dine_in", "table_id": table.id,
                  "items": [{"menu_item_id": menu["samosa"].id}]},
            headers=waiter_headers,
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "TABLE_UNAVAILABLE"

    def test_unknown_order(self, client, waiter_headers):
        response = client.get("/api/v1/orders/999", headers=waiter_headers)

        assert response.status_code == 404
        assert response.json()["details"] == {"resource": "Order", "id": 999}

    def test_illegal_transition(self, client, waiter_headers, menu, table):
        order = place_dine_in(client, waiter_headers, table, menu["chai"])

        response = client.put(f"/api/v1/orders/{order['id']}/status",
                              json={"status": "completed"}, headers=waiter_headers)

        assert response.status_code == 409
        body = response.json()
        assert body["error_code"] == "ILLEGAL_TRANSITION"
        assert body["details"]["allowed_next_statuses"] == ["cancelled", "preparing"]

    def test_served_blocked_until_paid(self, client, waiter_headers, cashier_headers,
                                       configure, menu, table):
        configure(require_payment_for_served=True)
        order = place_dine_in(client, waiter_headers, table, menu["samosa"])
        client.put(f"/api/v1/orders/{order['id']}/status",
                   json={"status": "preparing"}, headers=waiter_headers)

        response = client.put(f"/api/v1/orders/{order['id']}/status",
                              json={"status": "served"}, headers=waiter_headers)
        assert response.status_code == 402
        assert response.json()["details"]["amount_remaining"] == "80.00"

        paid = client.post(f"/api/v1/orders/{order['id']}/payments",
                           json={"amount": "80.00", "method": "card"},
                           headers=cashier_headers)
        assert paid.status_code == 201
        assert paid.json()["order"]["payment_status"] == "paid"
        assert paid.json()["payments"][0]["received_by_id"] == 8

        response = client.put(f"/api/v1/orders/{order['id']}/status",
                              json={"status": "served"}, headers=waiter_headers)
        assert response.status_code == 200
        assert response.json()["order"]["status"] == "served"

    def test_partial_payment_not_allowed(self, client, waiter_headers, cashier_headers,
                                         configure, menu, table):
        configure(allow_partial_payment=False)
        order = place_dine_in(client, waiter_headers, table, menu["samosa"])

        response = client.post(f"/api/v1/orders/{order['id']}/payments",
                               json={"amount": "50.00"}, headers=cashier_headers)

        assert response.status_code == 400
        assert response.json()["error_code"] == "PARTIAL_PAYMENT_NOT_ALLOWED"

    def test_overpayment(self, client, waiter_headers, cashier_headers, menu, table):
        order = place_dine_in(client, waiter_headers, table, menu["chai"])

        response = client.post(f"/api/v1/orders/{order['id']}/payments",
                               json={"amount": "1000"}, headers=cashier_headers)

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_AMOUNT"

    def test_split_payments(self, client, waiter_headers, cashier_headers, menu, table):
        order = place_dine_in(client, waiter_headers, table, menu["samosa"])

        response = client.post(
            f"/api/v1/orders/{order['id']}/payments/split",
            json={"parts": [{"amount": "30", "method": "cash"},
                            {"amount": "50", "method": "upi"}]},
            headers=cashier_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert [p["split_number"] for p in body["payments"]] == [1, 2]
        assert body["order"]["settled_at"] is not None

        payments = client.get(f"/api/v1/orders/{order['id']}/payments",
                              headers=cashier_headers).json()
        assert [p["method"] for p in payments] == ["cash", "upi"]

        table_view = client.get(f"/api/v1/tables/{table.id}", headers=waiter_headers).json()
        assert table_view["status"] == "available"

    def test_item_prepared_advances_order(self, client, waiter_headers, menu, table):
        order = place_dine_in(client, waiter_headers, table, menu["samosa"], menu["chai"])
        first, second = order["order_items"]

        response = client.put(
            f"/api/v1/orders/{order['id']}/items/{first['id']}/prepared",
            json={"prepared": True}, headers=waiter_headers,
        )
        assert response.status_code == 200
        assert response.json()["item"]["prepared"] is True
        assert response.json()["order"]["status"] == "pending"

        response = client.put(f"/api/v1/kitchen/items/{second['id']}/prepared",
                              json={}, headers=waiter_headers)
        assert response.status_code == 200
        assert response.json()["order"]["status"] == "served"

    def test_item_must_belong_to_order(self, client, waiter_headers, menu, table):
        order = place_dine_in(client, waiter_headers, table, menu["samosa"])

        response = client.put(f"/api/v1/orders/{order['id']}/items/999/prepared",
                              json={"prepared": True}, headers=waiter_headers)

        assert response.status_code == 404

    def test_update_items(self, client, waiter_headers, menu, table):
        order = place_dine_in(client, waiter_headers, table, menu["samosa"])
        line = order["order_items"][0]

        response = client.put(
            f"/api/v1/orders/{order['id']}/items",
            json={"items": [
                {"id": line["id"], "menu_item_id": line["menu_item_id"], "quantity": 1},
                {"menu_item_id": menu["chai"].id, "quantity": 3},
            ]},
            headers=waiter_headers,
        )

        assert response.status_code == 200
        updated = response.json()["order"]
        assert Decimal(updated["total"]) == Decimal("100.00")
        assert len(updated["order_items"]) == 2

    def test_allowed_actions(self, client, waiter_headers, menu, table):
        order = place_dine_in(client, waiter_headers, table, menu["samosa"])

        actions = client.get(f"/api/v1/orders/{order['id']}/allowed-actions",
                             headers=waiter_headers).json()

        assert actions["next_statuses"] == ["preparing", "cancelled"]
        assert actions["primary_next_status"] == "preparing"
        assert actions["can_record_payment"] is True

    def test_list_filters(self, client, waiter_headers, menu, table):
        dine_in = place_dine_in(client, waiter_headers, table, menu["samosa"])
        client.post(
            "/api/v1/orders",
            json={"order_type": "takeaway", "customer": {"name": "Meera"},
                  "items": [{"menu_item_id": menu["chai"].id}]},
            headers=waiter_headers,
        )

        response = client.get("/api/v1/orders", params={"order_type": "dine_in"},
                              headers=waiter_headers)
        assert [o["id"] for o in response.json()] == [dine_in["id"]]

        response = client.get("/api/v1/orders", params={"status": ["pending"]},
                              headers=waiter_headers)
        assert len(response.json()) == 2

    def test_failed_notification_is_reported(self, client, waiter_headers, menu, notifier):
        notifier.fail = True

        response = client.post(
            "/api/v1/orders",
            json={"order_type": "takeaway", "customer": {"name": "Meera"},
                  "items": [{"menu_item_id": menu["chai"].id}]},
            headers=waiter_headers,
        )

        assert response.status_code == 201
        errors = response.json()["side_effect_errors"]
        assert errors[0]["effect"] == "notify_kitchen"
        assert "unreachable" in errors[0]["error"]

        order_id = response.json()["order"]["id"]
        assert client.get(f"/api/v1/orders/{order_id}", headers=waiter_headers).status_code == 200


@pytest.mark.integration
class TestKitchenTicketEndpoints:
    def test_ticket_print_and_queue(self, client, waiter_headers, menu, table):
        order = place_dine_in(client, waiter_headers, table, menu["samosa"], menu["chai"])

        ticket = client.get(f"/api/v1/orders/{order['id']}/kot", headers=waiter_headers).json()
        assert ticket["banner"] == "Table 3"
        assert [s["category"] for s in ticket["sections"]] == ["Starters", "Other"]
        assert ticket["total_items"] == 4

        queue = client.get("/api/v1/kitchen/kot-queue", headers=waiter_headers).json()
        assert [e["order_id"] for e in queue] == [order["id"]]

        result = client.post(f"/api/v1/orders/{order['id']}/kot/print",
                             json={"printer_name": "Tandoor"}, headers=waiter_headers).json()
        assert result["printed"] is True
        assert result["printer"] == "Tandoor"

        queue = client.get("/api/v1/kitchen/kot-queue", headers=waiter_headers).json()
        assert queue == []

    def test_manual_confirmation(self, client, waiter_headers, configure, menu, table,
                                 kot_dispatcher):
        configure(require_kot_print_confirmation=True)
        order = place_dine_in(client, waiter_headers, table, menu["chai"])
        assert kot_dispatcher.dispatched == []

        response = client.post(f"/api/v1/orders/{order['id']}/kot/printed",
                               headers=waiter_headers)

        assert response.status_code == 200
        assert response.json()["kot_printed"] is True

    def test_kitchen_views(self, client, waiter_headers, menu, table):
        order = place_dine_in(client, waiter_headers, table, menu["chai"])
        client.put(f"/api/v1/orders/{order['id']}/status",
                   json={"status": "preparing"}, headers=waiter_headers)

        orders = client.get("/api/v1/kitchen/orders", headers=waiter_headers).json()
        stats = client.get("/api/v1/kitchen/stats", headers=waiter_headers).json()

        assert [o["id"] for o in orders] == [order["id"]]
        assert stats["preparing"] == 1
        assert stats["total_active"] == 1

    def test_receipt(self, client, waiter_headers, cashier_headers, menu, table):
        order = place_dine_in(client, waiter_headers, table, menu["samosa"])
        client.post(f"/api/v1/orders/{order['id']}/payments",
                    json={"amount": "50"}, headers=cashier_headers)

        receipt = client.get(f"/api/v1/orders/{order['id']}/receipt",
                             headers=cashier_headers).json()

        assert receipt["cashier"] == "Ravi"
        assert Decimal(receipt["paid"]) == Decimal("50.00")
        assert Decimal(receipt["balance"]) == Decimal("30.00")


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
