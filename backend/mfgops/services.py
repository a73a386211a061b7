from __future__ import annotations

from dataclasses import dataclass

from mfgops.infra.db import Database
from mfgops.infra.metrics import Metrics, configure_metrics


@dataclass
class AppServices:
    """Typed container for runtime services stored on `app.state.services`."""

    database: Database
    metrics: Metrics


def build_app_services(
    app_settings,
    *,
    metrics: Metrics | None = None,
    database: Database | None = None,
) -> AppServices:
    metrics_client = metrics or configure_metrics(app_settings.metrics_enabled)
    return AppServices(
        database=database or Database.from_settings(app_settings),
        metrics=metrics_client,
    )
