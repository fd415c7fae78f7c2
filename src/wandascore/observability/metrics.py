"""
Defines and manages Prometheus metrics for the application.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

if TYPE_CHECKING:
    from wandascore.config.config import MonitoringConfig


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race, reuse the collector that won.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "chat_requests": Counter(
            "wandascore_chat_requests_total",
            "Factor queries sent to the chat service",
            ["factor", "status"],
        ),
        "chat_latency": Histogram(
            "wandascore_chat_latency_seconds",
            "Latency of factor queries to the chat service",
            ["factor"],
            buckets=(0.5, 1, 2.5, 5, 10, 20, 30, 60, 120),
        ),
        "cache_lookups": Counter(
            "wandascore_cache_lookups_total",
            "Score cache lookups",
            ["result"],
        ),
        "reports_generated": Counter(
            "wandascore_reports_generated_total",
            "Score reports produced by the aggregator",
            ["outcome"],
        ),
        "jobs": Counter(
            "wandascore_jobs_total",
            "Background recompute jobs",
            ["status"],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def start_metrics_server(config: MonitoringConfig) -> bool:
    """Start the Prometheus exporter when a port is configured."""
    if config.prometheus_port is None:
        return False
    start_http_server(config.prometheus_port)
    return True
