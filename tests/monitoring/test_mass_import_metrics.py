"""Tests for mass import Prometheus metrics."""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from mass_importer.monitoring.metrics import (
    observe_item_duration,
    record_artist_resolution,
    record_duplicate_decision,
    record_http_retry,
    record_item_processed,
    record_photo_fetch,
)


def _get_metric_value(metric_name: str, labels: dict[str, str] | None = None) -> float:
    """Helper to retrieve current metric value from registry."""
    labels = labels or {}
    value = REGISTRY.get_sample_value(metric_name, labels)
    return float(value) if value is not None else 0.0


class TestCounters:
    """Labelled counters increment once per call."""

    @pytest.mark.parametrize(
        ("record", "metric_name", "labels"),
        [
            (
                lambda: record_item_processed("succeeded", "created"),
                "mass_import_items_total",
                {"status": "succeeded", "outcome": "created"},
            ),
            (
                lambda: record_duplicate_decision("possible_duplicate"),
                "mass_import_duplicate_decisions_total",
                {"verdict": "possible_duplicate"},
            ),
            (
                lambda: record_photo_fetch("cached"),
                "mass_import_photo_fetches_total",
                {"result": "cached"},
            ),
            (
                lambda: record_http_retry("submit"),
                "mass_import_http_retries_total",
                {"operation": "submit"},
            ),
            (
                lambda: record_artist_resolution("created"),
                "mass_import_artist_resolutions_total",
                {"result": "created"},
            ),
        ],
    )
    def test_counter_increments(self, record, metric_name, labels) -> None:
        before = _get_metric_value(metric_name, labels)
        record()
        after = _get_metric_value(metric_name, labels)
        assert after == pytest.approx(before + 1)


class TestItemDuration:
    def test_observation_recorded(self) -> None:
        """Durations land in the histogram count and sum."""
        count_before = _get_metric_value("mass_import_item_duration_seconds_count")
        sum_before = _get_metric_value("mass_import_item_duration_seconds_sum")

        observe_item_duration(0.2)

        assert _get_metric_value("mass_import_item_duration_seconds_count") == pytest.approx(
            count_before + 1
        )
        assert _get_metric_value("mass_import_item_duration_seconds_sum") == pytest.approx(
            sum_before + 0.2
        )

    def test_negative_duration_clamped(self) -> None:
        sum_before = _get_metric_value("mass_import_item_duration_seconds_sum")
        observe_item_duration(-5.0)
        assert _get_metric_value("mass_import_item_duration_seconds_sum") == pytest.approx(sum_before)
