"""Prometheus metrics.

Every metric lives in the default registry so ``start_metrics_server``
exposes them without further wiring. Label values are kept to small closed
sets (kind names, outcome strings) to bound cardinality.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server

from fluxscope.observability.logging import get_logger

_log = get_logger("metrics")

api_reads_total = Counter(
    "fluxscope_api_reads_total",
    "Object reads issued against the Kubernetes API",
    ["kind", "outcome"],
)

traces_total = Counter(
    "fluxscope_traces_total",
    "Ownership traces by outcome",
    ["outcome"],
)

inventory_entries_total = Counter(
    "fluxscope_inventory_entries_total",
    "Inventory entries classified per bucket",
    ["bucket"],
)

release_decode_failures_total = Counter(
    "fluxscope_release_decode_failures_total",
    "Helm release records that could not be decoded",
)

graph_build_seconds = Histogram(
    "fluxscope_graph_build_seconds",
    "Wall time spent building one resource graph",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


def start_metrics_server(port: int) -> bool:
    """Expose /metrics on *port*. A port of 0 leaves metrics unexposed."""
    if port <= 0:
        return False
    start_http_server(port)
    _log.info("metrics server started", port=port)
    return True
