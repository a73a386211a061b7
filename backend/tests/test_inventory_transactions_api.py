"""Tests for the inventory ledger HTTP endpoints."""
import uuid

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession


def _post(client, headers, **payload):
    return client.post("/v1/inventory/transactions", json=payload, headers=headers)


def test_transaction_returns_new_quantity(client, admin_headers, seed_item):
    item = seed_item(quantity=10)

    response = _post(
        client,
        admin_headers,
        item_id=item["item_id"],
        transaction_type="OUT",
        quantity=4,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["new_quantity"] == 6
    assert isinstance(body["transaction_id"], int)

    history = client.get(f"/v1/inventory/items/{item['item_id']}/transactions", headers=admin_headers)
    assert history.status_code == 200
    entries = history.json()["items"]
    assert history.json()["total"] == 2
    assert entries[0]["transaction_id"] == body["transaction_id"]
    assert entries[0]["resulting_quantity"] == 6
    assert entries[1]["notes"] == "Initial stock"


def test_overdraw_returns_insufficient_stock_problem(client, admin_headers, seed_item):
    item = seed_item(quantity=6)

    response = _post(
        client,
        admin_headers,
        item_id=item["item_id"],
        transaction_type="OUT",
        quantity=10,
    )

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["kind"] == "insufficient_stock"
    assert body["title"] == "Insufficient Stock"
    assert body["type"].endswith("/insufficient-stock")

    current = client.get(
        f"/v1/stores/{item['store_id']}/inventory/{item['item_id']}", headers=admin_headers
    )
    assert current.json()["on_hand_quantity"] == 6
    history = client.get(f"/v1/inventory/items/{item['item_id']}/transactions", headers=admin_headers)
    assert history.json()["total"] == 1


def test_unknown_item_returns_not_found(client, admin_headers):
    response = _post(
        client,
        admin_headers,
        item_id=str(uuid.uuid4()),
        transaction_type="IN",
        quantity=1,
    )

    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_unknown_transaction_type_is_invalid_argument(client, admin_headers, seed_item):
    item = seed_item(quantity=1)

    response = _post(
        client,
        admin_headers,
        item_id=item["item_id"],
        transaction_type="TRANSFER",
        quantity=1,
    )

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_argument"


def test_non_positive_quantity_is_invalid_argument(client, admin_headers, seed_item):
    item = seed_item(quantity=1)

    response = _post(
        client,
        admin_headers,
        item_id=item["item_id"],
        transaction_type="IN",
        quantity=0,
    )

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_argument"


def test_non_integer_quantity_fails_validation(client, admin_headers, seed_item):
    item = seed_item(quantity=1)

    response = _post(
        client,
        admin_headers,
        item_id=item["item_id"],
        transaction_type="IN",
        quantity="3",
    )

    assert response.status_code == 422
    body = response.json()
    assert body["kind"] == "validation_error"
    assert any(error["field"] == "quantity" for error in body["errors"])


@pytest.mark.parametrize("quantity", [2**31, 2**63])
def test_oversized_quantity_fails_validation(client, admin_headers, seed_item, quantity):
    item = seed_item(quantity=5)

    response = _post(
        client,
        admin_headers,
        item_id=item["item_id"],
        transaction_type="IN",
        quantity=quantity,
    )

    assert response.status_code == 422
    assert any(error["field"] == "quantity" for error in response.json()["errors"])
    history = client.get(f"/v1/inventory/items/{item['item_id']}/transactions", headers=admin_headers)
    assert history.json()["total"] == 1


def test_numeric_reference_id_is_stored_as_string(client, admin_headers, seed_item):
    item = seed_item()

    response = _post(
        client,
        admin_headers,
        item_id=item["item_id"],
        transaction_type="IN",
        quantity=20,
        reference_type="PURCHASE_ORDER",
        reference_id=77,
    )

    assert response.status_code == 201
    assert response.json()["new_quantity"] == 20

    history = client.get(f"/v1/inventory/items/{item['item_id']}/transactions", headers=admin_headers)
    entry = history.json()["items"][0]
    assert entry["reference_type"] == "PURCHASE_ORDER"
    assert entry["reference_id"] == "77"
    assert entry["transaction_type"] == "IN"
    assert entry["actor_id"] == "admin"


def test_operator_can_post_transactions(client, role_headers, seed_item):
    item = seed_item(quantity=2)

    response = _post(
        client,
        role_headers("operator"),
        item_id=item["item_id"],
        transaction_type="RETURN",
        quantity=1,
    )

    assert response.status_code == 201
    assert response.json()["new_quantity"] == 3


def test_viewer_cannot_post_transactions(client, role_headers, seed_item):
    item = seed_item(quantity=2)

    response = _post(
        client,
        role_headers("viewer"),
        item_id=item["item_id"],
        transaction_type="OUT",
        quantity=1,
    )

    assert response.status_code == 403
    assert response.json()["kind"] == "forbidden"


def test_history_for_unknown_item_is_not_found(client, admin_headers):
    response = client.get(f"/v1/inventory/items/{uuid.uuid4()}/transactions", headers=admin_headers)

    assert response.status_code == 404


def test_history_is_paginated(client, admin_headers, seed_item):
    item = seed_item(quantity=10)
    for _ in range(3):
        _post(client, admin_headers, item_id=item["item_id"], transaction_type="OUT", quantity=1)

    response = client.get(
        f"/v1/inventory/items/{item['item_id']}/transactions",
        params={"page": 2, "page_size": 3},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 4
    assert body["page"] == 2
    assert body["page_size"] == 3
    assert [entry["resulting_quantity"] for entry in body["items"]] == [10]


def test_ledger_verification_reports_consistency(client, admin_headers, seed_item):
    item = seed_item(quantity=9)
    _post(client, admin_headers, item_id=item["item_id"], transaction_type="ADJUST", quantity=2)

    response = client.get(f"/v1/inventory/items/{item['item_id']}/ledger/verify", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["entries"] == 2
    assert body["replayed_quantity"] == 7
    assert body["on_hand_quantity"] == 7
    assert body["consistent"] is True
    assert body["first_mismatch_transaction_id"] is None


def test_storage_failure_returns_storage_error_problem(client, admin_headers, seed_item, monkeypatch):
    item = seed_item(quantity=10)

    async def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)
    response = _post(
        client,
        admin_headers,
        item_id=item["item_id"],
        transaction_type="OUT",
        quantity=4,
    )
    monkeypatch.undo()

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["kind"] == "storage_error"
    assert body["title"] == "Storage Error"

    verify = client.get(f"/v1/inventory/items/{item['item_id']}/ledger/verify", headers=admin_headers)
    assert verify.json()["on_hand_quantity"] == 10
    assert verify.json()["entries"] == 1
