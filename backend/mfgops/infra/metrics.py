import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)


class Metrics:
    def __init__(self, enabled: bool = False) -> None:
        self._configure(enabled)

    def _configure(self, enabled: bool) -> None:
        self.enabled = enabled
        self.registry = CollectorRegistry(auto_describe=True)
        if not enabled:
            self.http_requests = None
            self.http_5xx = None
            self.http_latency = None
            self.ledger_transactions = None
            self.purchase_orders_received = None
            return

        self.http_requests = Counter(
            "http_requests_total",
            "HTTP requests by method, route template and status class.",
            ["method", "path", "status_class"],
            registry=self.registry,
        )
        self.http_5xx = Counter(
            "http_5xx_total",
            "HTTP responses with status >= 500.",
            ["method", "path"],
            registry=self.registry,
        )
        self.http_latency = Histogram(
            "http_request_latency_seconds",
            "HTTP request latency in seconds.",
            ["method", "path", "status_class"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10),
            registry=self.registry,
        )
        self.ledger_transactions = Counter(
            "inventory_ledger_transactions_total",
            "Inventory ledger transactions by type and outcome.",
            ["transaction_type", "outcome"],
            registry=self.registry,
        )
        self.purchase_orders_received = Counter(
            "purchase_orders_received_total",
            "Purchase orders received into stock by outcome.",
            ["outcome"],
            registry=self.registry,
        )

    def record_http_request(self, method: str, path: str, status_code: int) -> None:
        if not self.enabled or self.http_requests is None:
            return
        status_class = f"{status_code // 100}xx" if status_code else "unknown"
        self.http_requests.labels(method=method, path=path, status_class=status_class).inc()

    def record_http_5xx(self, method: str, path: str) -> None:
        if not self.enabled or self.http_5xx is None:
            return
        self.http_5xx.labels(method=method, path=path).inc()

    def record_http_latency(self, method: str, path: str, status_code: int, duration_seconds: float) -> None:
        if not self.enabled or self.http_latency is None:
            return
        status_class = f"{status_code // 100}xx" if status_code else "unknown"
        duration_seconds = max(0.0, float(duration_seconds))
        self.http_latency.labels(method=method, path=path, status_class=status_class).observe(
            duration_seconds
        )

    def record_ledger_transaction(self, transaction_type: str, outcome: str) -> None:
        if not self.enabled or self.ledger_transactions is None:
            return
        # Unknown types come straight from request bodies; keep label cardinality bounded.
        safe_type = transaction_type if transaction_type in {"IN", "OUT", "ADJUST", "RETURN"} else "invalid"
        self.ledger_transactions.labels(transaction_type=safe_type, outcome=outcome or "unknown").inc()

    def record_purchase_order_received(self, outcome: str) -> None:
        if not self.enabled or self.purchase_orders_received is None:
            return
        self.purchase_orders_received.labels(outcome=outcome or "unknown").inc()

    def render(self) -> tuple[bytes, str]:
        if not self.enabled:
            return b"metrics_disabled 1\n", "text/plain; version=0.0.4"
        try:
            return generate_latest(self.registry), CONTENT_TYPE_LATEST
        except Exception:  # noqa: BLE001
            logger.exception("metrics_render_failed")
            return b"metrics_render_failed 1\n", "text/plain; version=0.0.4"


metrics = Metrics(enabled=False)


def configure_metrics(enabled: bool) -> Metrics:
    metrics._configure(enabled)
    return metrics
