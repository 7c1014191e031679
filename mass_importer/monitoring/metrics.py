"""Prometheus metrics definitions for the mass importer."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

ITEMS_PROCESSED = Counter(
    "mass_import_items_total",
    "Total import items processed grouped by checkpoint status and outcome.",
    labelnames=("status", "outcome"),
)

DUPLICATE_DECISIONS = Counter(
    "mass_import_duplicate_decisions_total",
    "Duplicate policy decisions by verdict.",
    labelnames=("verdict",),
)

PHOTO_FETCHES = Counter(
    "mass_import_photo_fetches_total",
    "Photo fetch attempts by result (downloaded, cached, failed).",
    labelnames=("result",),
)

HTTP_RETRIES = Counter(
    "mass_import_http_retries_total",
    "HTTP retries scheduled by operation.",
    labelnames=("operation",),
)

ARTIST_RESOLUTIONS = Counter(
    "mass_import_artist_resolutions_total",
    "Artist resolutions by result (matched, created, failed).",
    labelnames=("result",),
)

ITEM_DURATION = Histogram(
    "mass_import_item_duration_seconds",
    "Distribution of per-item processing durations in seconds.",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60, 120),
)


def record_item_processed(status: str, outcome: str) -> None:
    """Increment the processed-items counter with the supplied labels."""

    ITEMS_PROCESSED.labels(status=status, outcome=outcome).inc()


def record_duplicate_decision(verdict: str) -> None:
    """Increment the duplicate-decision counter for a verdict."""

    DUPLICATE_DECISIONS.labels(verdict=verdict).inc()


def record_photo_fetch(result: str) -> None:
    PHOTO_FETCHES.labels(result=result).inc()


def record_http_retry(operation: str) -> None:
    """Record that a retry was scheduled for an HTTP operation."""

    HTTP_RETRIES.labels(operation=operation).inc()


def record_artist_resolution(result: str) -> None:
    ARTIST_RESOLUTIONS.labels(result=result).inc()


def observe_item_duration(duration_seconds: float) -> None:
    """Record a per-item processing duration in seconds."""

    ITEM_DURATION.observe(max(duration_seconds, 0.0))
