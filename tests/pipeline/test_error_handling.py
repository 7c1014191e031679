"""Tests for per-item error classification."""

from __future__ import annotations

import httpx
import pytest

from mass_importer.exceptions import (
    ArtistNotFoundError,
    AuthenticationError,
    CorpusQueryError,
    GeocodingError,
    MassImportError,
    PhotoFetchError,
    RecordValidationError,
    RetriesExhaustedError,
    SubmissionValidationError,
)
from mass_importer.pipeline.error_handling import build_error_report, classify_exception


@pytest.mark.parametrize(
    ("exc", "category", "retryable"),
    [
        (AuthenticationError("denied"), "fatal", False),
        (RetriesExhaustedError("gave up", attempts=4, last_status=503), "retries_exhausted", True),
        (SubmissionValidationError("bad", status_code=422), "validation", False),
        (RecordValidationError("lat: missing"), "validation", False),
        (ArtistNotFoundError("J. Doe", 0.62), "artist_resolution", False),
        (PhotoFetchError("https://x/a.jpg", "HTTP 404"), "photo", False),
        (PhotoFetchError("https://x/a.jpg", "timeout", retryable=True), "photo", True),
        (CorpusQueryError("down"), "corpus", True),
        (GeocodingError("down"), "geocoding", True),
        (httpx.ConnectError("refused"), "network", True),
        (MassImportError("other"), "application", False),
        (KeyError("oops"), "unexpected", False),
    ],
)
def test_classify_exception(exc, category, retryable):
    assert classify_exception(exc) == (category, retryable)


class TestBuildErrorReport:
    """Structured failure payloads."""

    def test_retries_exhausted_details(self):
        exc = RetriesExhaustedError("submission failed after 4 attempts", attempts=4, last_status=503)

        report = build_error_report(exc, index=3, source_id="node/3")

        assert report.category == "retries_exhausted"
        assert report.details["status_code"] == 503
        assert report.details["attempts"] == 4
        assert report.to_dict()["error_type"] == "RetriesExhaustedError"

    def test_empty_message_uses_type_name(self):
        report = build_error_report(ValueError(), index=0, source_id="a", extra_details={"stage": "x"})

        assert report.message == "ValueError"
        assert report.details["stage"] == "x"
        assert report.to_dict()["details"]["exception_module"] == "builtins"
