"""Tests for supplier endpoints."""
import uuid


def test_create_get_and_list_suppliers(client, admin_headers):
    created = client.post(
        "/v1/purchases/suppliers",
        json={"name": "Fastener Supply Co", "contact_person": "Dana", "payment_terms": "NET30"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    supplier = created.json()
    assert supplier["active"] is True

    fetched = client.get(f"/v1/purchases/suppliers/{supplier['supplier_id']}", headers=admin_headers)
    assert fetched.status_code == 200
    assert fetched.json()["payment_terms"] == "NET30"

    listed = client.get("/v1/purchases/suppliers", params={"query": "fastener"}, headers=admin_headers)
    assert listed.json()["total"] == 1


def test_deactivated_supplier_is_hidden_by_default(client, admin_headers, seed_supplier):
    supplier = seed_supplier()

    response = client.patch(
        f"/v1/purchases/suppliers/{supplier['supplier_id']}",
        json={"active": False},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["active"] is False

    assert client.get("/v1/purchases/suppliers", headers=admin_headers).json()["total"] == 0
    everything = client.get(
        "/v1/purchases/suppliers",
        params={"include_inactive": "true"},
        headers=admin_headers,
    )
    assert everything.json()["total"] == 1


def test_unknown_supplier_is_not_found(client, admin_headers):
    missing = uuid.uuid4()

    assert client.get(f"/v1/purchases/suppliers/{missing}", headers=admin_headers).status_code == 404
    response = client.patch(
        f"/v1/purchases/suppliers/{missing}",
        json={"name": "Nobody"},
        headers=admin_headers,
    )
    assert response.status_code == 404


def test_operator_cannot_view_suppliers(client, role_headers):
    response = client.get("/v1/purchases/suppliers", headers=role_headers("operator"))

    assert response.status_code == 403
