"""Tests for store and store location endpoints."""
import uuid


def test_create_and_list_stores(client, admin_headers):
    created = client.post(
        "/v1/stores",
        json={"name": "Tool Crib", "location": "Building B", "capacity_units": 400},
        headers=admin_headers,
    )
    assert created.status_code == 201
    store = created.json()
    assert store["active"] is True
    assert store["created_by"] == "admin"

    listed = client.get("/v1/stores", params={"query": "crib"}, headers=admin_headers)
    assert listed.status_code == 200
    body = listed.json()
    assert body["total"] == 1
    assert body["items"][0]["store_id"] == store["store_id"]


def test_store_detail_includes_locations_and_stats(client, admin_headers, seed_store, seed_item):
    store = seed_store()
    store_id = store["store_id"]
    for section in ("Bay 2", "Bay 1"):
        response = client.post(
            f"/v1/stores/{store_id}/locations",
            json={"section_name": section, "shelf_position": "A"},
            headers=admin_headers,
        )
        assert response.status_code == 201
    seed_item(store_id, quantity=10, reorder_level=2, unit_cost_cents=150)
    seed_item(store_id, quantity=1, reorder_level=5, unit_cost_cents=1000)

    response = client.get(f"/v1/stores/{store_id}", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert [loc["section_name"] for loc in body["locations"]] == ["Bay 1", "Bay 2"]
    assert body["stats"] == {
        "total_items": 2,
        "low_stock_items": 1,
        "total_value_cents": 10 * 150 + 1 * 1000,
    }


def test_update_store(client, admin_headers, seed_store):
    store = seed_store()

    response = client.patch(
        f"/v1/stores/{store['store_id']}",
        json={"description": "Consumables and fasteners"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["description"] == "Consumables and fasteners"
    assert response.json()["name"] == store["name"]


def test_unknown_store_is_not_found(client, admin_headers):
    missing = uuid.uuid4()

    assert client.get(f"/v1/stores/{missing}", headers=admin_headers).status_code == 404
    assert client.get(f"/v1/stores/{missing}/locations", headers=admin_headers).status_code == 404
    assert client.get(f"/v1/stores/{missing}/inventory", headers=admin_headers).status_code == 404
    response = client.post(
        f"/v1/stores/{missing}/locations",
        json={"section_name": "Nowhere"},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_list_locations(client, admin_headers, seed_store):
    store = seed_store()
    client.post(
        f"/v1/stores/{store['store_id']}/locations",
        json={"section_name": "Cage", "capacity": 12},
        headers=admin_headers,
    )

    response = client.get(f"/v1/stores/{store['store_id']}/locations", headers=admin_headers)

    assert response.status_code == 200
    locations = response.json()
    assert len(locations) == 1
    assert locations[0]["capacity"] == 12
    assert locations[0]["store_id"] == store["store_id"]


def test_operator_cannot_create_store(client, role_headers):
    response = client.post("/v1/stores", json={"name": "Shadow"}, headers=role_headers("operator"))

    assert response.status_code == 403


def test_store_manager_can_create_store(client, role_headers):
    response = client.post("/v1/stores", json={"name": "Line 3"}, headers=role_headers("store_manager"))

    assert response.status_code == 201
    assert response.json()["created_by"] == "manager"
