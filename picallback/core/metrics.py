"""Prometheus counters for callback ingestion."""
from __future__ import annotations

from prometheus_client import Counter

CALLBACKS_TOTAL = Counter(
    "picallback_callbacks_total",
    "Pi callbacks by terminal pipeline outcome.",
    ["outcome"],
)

STORE_ERRORS_TOTAL = Counter(
    "picallback_store_errors_total",
    "Notification writes that did not complete (unavailable, write_failed, timeout).",
    ["kind"],
)


def record_outcome(outcome: str) -> None:
    CALLBACKS_TOTAL.labels(outcome=outcome).inc()


def record_store_error(kind: str) -> None:
    STORE_ERRORS_TOTAL.labels(kind=kind).inc()


__all__ = ["CALLBACKS_TOTAL", "STORE_ERRORS_TOTAL", "record_outcome", "record_store_error"]
