"""Tests for purchase order endpoints and goods receipt."""
import uuid

import pytest


@pytest.fixture()
def draft_order(client, admin_headers, seed_store, seed_item, seed_supplier):
    store = seed_store()
    bolts = seed_item(store["store_id"], sku="BOLT-M8", quantity=5)
    nuts = seed_item(store["store_id"], sku="NUT-M8", quantity=0)
    supplier = seed_supplier()

    response = client.post(
        "/v1/purchases/orders",
        json={
            "supplier_id": supplier["supplier_id"],
            "order_date": "2026-10-01",
            "notes": "Monthly fasteners",
            "items": [
                {"item_id": bolts["item_id"], "quantity": 100, "unit_cost_cents": 12},
                {"item_id": nuts["item_id"], "quantity": 40, "unit_cost_cents": 5},
            ],
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return {"order": response.json(), "bolts": bolts, "nuts": nuts, "supplier": supplier}


def _set_status(client, headers, po_id, new_status):
    return client.put(f"/v1/purchases/orders/{po_id}/status", json={"status": new_status}, headers=headers)


def _item(client, headers, item):
    return client.get(f"/v1/stores/{item['store_id']}/inventory/{item['item_id']}", headers=headers).json()


def test_create_order_computes_lines_and_total(draft_order):
    order = draft_order["order"]

    assert order["status"] == "DRAFT"
    assert order["po_number"].startswith("PO-")
    assert order["total_cents"] == 100 * 12 + 40 * 5
    assert [line["line_number"] for line in order["items"]] == [1, 2]
    assert order["items"][0]["line_total_cents"] == 1200
    assert all(line["received_quantity"] == 0 for line in order["items"])


def test_create_order_with_unknown_item_is_rejected(client, admin_headers, seed_supplier):
    supplier = seed_supplier()

    response = client.post(
        "/v1/purchases/orders",
        json={
            "supplier_id": supplier["supplier_id"],
            "order_date": "2026-10-01",
            "items": [{"item_id": str(uuid.uuid4()), "quantity": 1}],
        },
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_argument"
    assert response.json()["errors"]


def test_create_order_with_unknown_supplier_is_not_found(client, admin_headers, seed_item):
    item = seed_item()

    response = client.post(
        "/v1/purchases/orders",
        json={
            "supplier_id": str(uuid.uuid4()),
            "order_date": "2026-10-01",
            "items": [{"item_id": item["item_id"], "quantity": 1}],
        },
        headers=admin_headers,
    )

    assert response.status_code == 404


def test_create_order_requires_lines(client, admin_headers, seed_supplier):
    supplier = seed_supplier()

    response = client.post(
        "/v1/purchases/orders",
        json={"supplier_id": supplier["supplier_id"], "order_date": "2026-10-01", "items": []},
        headers=admin_headers,
    )

    assert response.status_code == 422


def test_status_transitions(client, admin_headers, draft_order):
    po_id = draft_order["order"]["po_id"]

    response = _set_status(client, admin_headers, po_id, "PENDING")
    assert response.status_code == 200
    assert response.json()["status"] == "PENDING"

    response = _set_status(client, admin_headers, po_id, "CONFIRMED")
    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"

    response = _set_status(client, admin_headers, po_id, "DRAFT")
    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_argument"


def test_received_cannot_be_set_through_status_update(client, admin_headers, draft_order):
    po_id = draft_order["order"]["po_id"]
    _set_status(client, admin_headers, po_id, "PENDING")

    response = _set_status(client, admin_headers, po_id, "RECEIVED")

    assert response.status_code == 400
    assert "receive" in response.json()["detail"]
    assert _item(client, admin_headers, draft_order["bolts"])["on_hand_quantity"] == 5


def test_filter_orders_by_status(client, admin_headers, draft_order):
    po_id = draft_order["order"]["po_id"]
    _set_status(client, admin_headers, po_id, "PENDING")

    pending = client.get("/v1/purchases/orders", params={"status": "PENDING"}, headers=admin_headers)
    drafts = client.get("/v1/purchases/orders", params={"status": "DRAFT"}, headers=admin_headers)

    assert [order["po_id"] for order in pending.json()["items"]] == [po_id]
    assert drafts.json()["total"] == 0


def test_receive_posts_in_entries_referencing_order(client, admin_headers, draft_order):
    order = draft_order["order"]
    po_id = order["po_id"]
    _set_status(client, admin_headers, po_id, "PENDING")

    response = client.post(f"/v1/purchases/orders/{po_id}/receive", headers=admin_headers)

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "RECEIVED"
    assert {line["received_quantity"] for line in body["lines"]} == {100, 40}

    assert _item(client, admin_headers, draft_order["bolts"])["on_hand_quantity"] == 105
    assert _item(client, admin_headers, draft_order["nuts"])["on_hand_quantity"] == 40

    history = client.get(
        f"/v1/inventory/items/{draft_order['bolts']['item_id']}/transactions", headers=admin_headers
    )
    newest = history.json()["items"][0]
    assert newest["transaction_type"] == "IN"
    assert newest["quantity"] == 100
    assert newest["reference_type"] == "PURCHASE_ORDER"
    assert newest["reference_id"] == po_id
    assert newest["notes"] == f"Received from PO {order['po_number']}"

    detail = client.get(f"/v1/purchases/orders/{po_id}", headers=admin_headers).json()
    assert detail["status"] == "RECEIVED"
    assert detail["received_by"] == "admin"
    assert detail["received_at"] is not None
    assert [line["received_quantity"] for line in detail["items"]] == [100, 40]


def test_order_cannot_be_received_twice(client, admin_headers, draft_order):
    po_id = draft_order["order"]["po_id"]
    _set_status(client, admin_headers, po_id, "PENDING")
    first = client.post(f"/v1/purchases/orders/{po_id}/receive", headers=admin_headers)
    assert first.status_code == 200

    second = client.post(f"/v1/purchases/orders/{po_id}/receive", headers=admin_headers)

    assert second.status_code == 400
    assert second.json()["kind"] == "invalid_argument"
    assert _item(client, admin_headers, draft_order["bolts"])["on_hand_quantity"] == 105


def test_draft_order_cannot_be_received(client, admin_headers, draft_order):
    po_id = draft_order["order"]["po_id"]

    response = client.post(f"/v1/purchases/orders/{po_id}/receive", headers=admin_headers)

    assert response.status_code == 400
    assert "DRAFT" in response.json()["detail"]
    assert _item(client, admin_headers, draft_order["nuts"])["on_hand_quantity"] == 0


def test_partial_receive_only_posts_listed_lines(client, admin_headers, draft_order):
    order = draft_order["order"]
    po_id = order["po_id"]
    bolt_line, nut_line = order["items"]
    _set_status(client, admin_headers, po_id, "PENDING")
    _set_status(client, admin_headers, po_id, "CONFIRMED")

    response = client.post(
        f"/v1/purchases/orders/{po_id}/receive",
        json={
            "received_items": [
                {"po_item_id": bolt_line["po_item_id"], "received_quantity": 60},
                {"po_item_id": nut_line["po_item_id"], "received_quantity": 0},
            ]
        },
        headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    lines = response.json()["lines"]
    assert len(lines) == 1
    assert lines[0]["received_quantity"] == 60
    assert lines[0]["new_quantity"] == 65
    assert _item(client, admin_headers, draft_order["nuts"])["on_hand_quantity"] == 0

    history = client.get(
        f"/v1/inventory/items/{draft_order['nuts']['item_id']}/transactions", headers=admin_headers
    )
    assert history.json()["total"] == 0


def test_receive_with_foreign_line_rolls_back(client, admin_headers, draft_order):
    po_id = draft_order["order"]["po_id"]
    _set_status(client, admin_headers, po_id, "PENDING")

    response = client.post(
        f"/v1/purchases/orders/{po_id}/receive",
        json={"received_items": [{"po_item_id": str(uuid.uuid4()), "received_quantity": 1}]},
        headers=admin_headers,
    )

    assert response.status_code == 400
    detail = client.get(f"/v1/purchases/orders/{po_id}", headers=admin_headers).json()
    assert detail["status"] == "PENDING"


def test_receive_unknown_order_is_not_found(client, admin_headers):
    response = client.post(f"/v1/purchases/orders/{uuid.uuid4()}/receive", headers=admin_headers)

    assert response.status_code == 404


def test_purchaser_can_receive_but_viewer_cannot(client, role_headers, draft_order):
    po_id = draft_order["order"]["po_id"]
    purchaser = role_headers("purchaser")
    _set_status(client, purchaser, po_id, "PENDING")

    denied = client.post(f"/v1/purchases/orders/{po_id}/receive", headers=role_headers("viewer"))
    assert denied.status_code == 403

    allowed = client.post(f"/v1/purchases/orders/{po_id}/receive", headers=purchaser)
    assert allowed.status_code == 200


def _create_order(client, headers, supplier_id, item_id, quantity, unit_cost_cents):
    response = client.post(
        "/v1/purchases/orders",
        json={
            "supplier_id": supplier_id,
            "order_date": "2026-10-02",
            "items": [{"item_id": item_id, "quantity": quantity, "unit_cost_cents": unit_cost_cents}],
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_summary_groups_orders_by_status(client, admin_headers, draft_order, seed_supplier):
    supplier_id = draft_order["supplier"]["supplier_id"]
    bolts = draft_order["bolts"]["item_id"]
    nuts = draft_order["nuts"]["item_id"]

    confirmed = _create_order(client, admin_headers, supplier_id, bolts, 10, 100)
    _set_status(client, admin_headers, confirmed["po_id"], "PENDING")
    _set_status(client, admin_headers, confirmed["po_id"], "CONFIRMED")

    received = _create_order(client, admin_headers, supplier_id, nuts, 20, 100)
    _set_status(client, admin_headers, received["po_id"], "PENDING")
    receipt = client.post(f"/v1/purchases/orders/{received['po_id']}/receive", headers=admin_headers)
    assert receipt.status_code == 200, receipt.text

    cancelled = _create_order(client, admin_headers, supplier_id, bolts, 1, 50)
    _set_status(client, admin_headers, cancelled["po_id"], "CANCELLED")

    idle = seed_supplier("Idle Supplies")
    client.patch(
        f"/v1/purchases/suppliers/{idle['supplier_id']}",
        json={"active": False},
        headers=admin_headers,
    )

    response = client.get("/v1/purchases/orders/summary", headers=admin_headers)

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["by_status"] == [
        {"status": "CANCELLED", "count": 1, "total_cents": 50},
        {"status": "CONFIRMED", "count": 1, "total_cents": 1000},
        {"status": "DRAFT", "count": 1, "total_cents": 1400},
        {"status": "RECEIVED", "count": 1, "total_cents": 2000},
    ]
    assert body["active_suppliers"] == 1
    assert body["average_order_value_cents"] == 1500


def test_summary_without_orders_is_empty(client, admin_headers):
    response = client.get("/v1/purchases/orders/summary", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"by_status": [], "active_suppliers": 0, "average_order_value_cents": 0}


def test_summary_requires_purchases_view(client, role_headers):
    assert client.get("/v1/purchases/orders/summary", headers=role_headers("viewer")).status_code == 200
    assert client.get("/v1/purchases/orders/summary", headers=role_headers("operator")).status_code == 403
