import pytest
from fastapi.testclient import TestClient

from mfgops.infra.metrics import Metrics
from mfgops.main import create_app
from mfgops.settings import settings


@pytest.fixture()
def metrics_app(test_database):
    settings.metrics_enabled = True
    settings.metrics_token = None
    settings.app_env = "dev"
    metrics_app = create_app(settings)
    metrics_app.state.database = test_database
    return metrics_app


def _samples(counter) -> list:
    samples = []
    for metric in counter.collect():
        samples.extend(metric.samples)
    return samples


def test_metrics_endpoint_requires_token_when_configured(metrics_app):
    settings.metrics_token = "secret-token"

    with TestClient(metrics_app) as client:
        unauthorized = client.get("/metrics")
        assert unauthorized.status_code == 401

        wrong = client.get("/metrics", headers={"Authorization": "Bearer nope"})
        assert wrong.status_code == 401

        authorized = client.get("/metrics", headers={"Authorization": "Bearer secret-token"})
        assert authorized.status_code == 200

        query_token = client.get("/metrics?token=secret-token")
        assert query_token.status_code == 200


def test_metrics_endpoint_absent_when_metrics_off(client):
    response = client.get("/metrics")

    assert response.status_code == 404


def test_metrics_endpoint_exports_http_and_ledger_series(metrics_app, admin_headers):
    with TestClient(metrics_app) as client:
        store = client.post("/v1/stores", json={"name": "Main Stores"}, headers=admin_headers).json()
        item = client.post(
            f"/v1/stores/{store['store_id']}/inventory",
            json={"sku": "M-1", "name": "Rivet", "quantity": 0},
            headers=admin_headers,
        ).json()
        client.post(
            "/v1/inventory/transactions",
            json={"item_id": item["item_id"], "transaction_type": "IN", "quantity": 3},
            headers=admin_headers,
        )
        client.post(
            "/v1/inventory/transactions",
            json={"item_id": item["item_id"], "transaction_type": "OUT", "quantity": 9},
            headers=admin_headers,
        )
        client.post(
            "/v1/inventory/transactions",
            json={"item_id": item["item_id"], "transaction_type": "SHRED", "quantity": 1},
            headers=admin_headers,
        )

        response = client.get("/metrics")

    assert response.status_code == 200
    body = response.text
    assert "http_requests_total" in body
    assert 'inventory_ledger_transactions_total{transaction_type="IN",outcome="applied"} 1.0' in body
    assert (
        'inventory_ledger_transactions_total{transaction_type="OUT",outcome="insufficient_stock"} 1.0'
        in body
    )
    assert 'inventory_ledger_transactions_total{transaction_type="invalid",outcome="invalid_argument"} 1.0' in body


def test_metrics_path_label_uses_route_template(metrics_app):
    async def boom_handler(item_id: str):  # pragma: no cover - handler executed in request
        raise RuntimeError("boom")

    metrics_app.router.add_api_route("/boom/{item_id}", boom_handler, methods=["GET"])

    with TestClient(metrics_app, raise_server_exceptions=False) as client:
        response = client.get("/boom/123")
        assert response.status_code == 500
        assert response.json()["kind"] == "server_error"

    samples = _samples(metrics_app.state.metrics.http_5xx)
    assert any(sample.labels.get("path") == "/boom/{item_id}" for sample in samples)


def test_metrics_unmatched_path_uses_placeholder(metrics_app):
    with TestClient(metrics_app) as client:
        response = client.get("/does-not-exist/12345/abc")
        assert response.status_code == 404

    samples = _samples(metrics_app.state.metrics.http_latency)
    assert any(sample.labels.get("path") == "unmatched" for sample in samples)


def test_purchase_order_receipts_are_counted():
    client_metrics = Metrics(enabled=True)

    client_metrics.record_purchase_order_received("received")
    client_metrics.record_purchase_order_received("invalid_argument")
    client_metrics.record_purchase_order_received("received")

    payload, content_type = client_metrics.render()
    assert b'purchase_orders_received_total{outcome="received"} 2.0' in payload
    assert content_type.startswith("text/plain")


def test_disabled_metrics_render_placeholder():
    payload, _ = Metrics(enabled=False).render()

    assert payload == b"metrics_disabled 1\n"
