"""Structured failure reports for items that could not be imported."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from ..exceptions import (
    ArtistNotFoundError,
    CorpusQueryError,
    GeocodingError,
    MassImportError,
    PhotoFetchError,
    RecordValidationError,
    RetriesExhaustedError,
    RunAbortedError,
    SubmissionValidationError,
)


@dataclass(slots=True)
class ItemErrorReport:
    """Structured payload describing why one item failed."""

    index: int
    source_id: str
    error_type: str
    message: str
    category: str
    retryable: bool
    timestamp: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "index": self.index,
            "source_id": self.source_id,
            "error_type": self.error_type,
            "message": self.message,
            "category": self.category,
            "retryable": self.retryable,
            "timestamp": self.timestamp,
        }
        if self.details:
            payload["details"] = self.details
        return payload


def build_error_report(
    exc: Exception,
    *,
    index: int,
    source_id: str,
    extra_details: dict[str, Any] | None = None,
) -> ItemErrorReport:
    """Construct an :class:`ItemErrorReport` describing the supplied exception."""

    category, retryable = classify_exception(exc)
    details: dict[str, Any] = {"exception_module": exc.__class__.__module__}
    status_code = getattr(exc, "status_code", None) or getattr(exc, "last_status", None)
    if status_code is not None:
        details["status_code"] = status_code
    if isinstance(exc, RetriesExhaustedError):
        details["attempts"] = exc.attempts
    if extra_details:
        details.update(extra_details)

    return ItemErrorReport(
        index=index,
        source_id=source_id,
        error_type=exc.__class__.__name__,
        message=str(exc) if str(exc) else exc.__class__.__name__,
        category=category,
        retryable=retryable,
        timestamp=datetime.now(timezone.utc).isoformat(),
        details=details,
    )


def classify_exception(exc: BaseException) -> tuple[str, bool]:
    """Return a tuple of (category, retryable) for a given exception.

    ``retryable`` tells an operator whether re-running the item later may help.
    """

    if isinstance(exc, RunAbortedError):
        return "fatal", False
    if isinstance(exc, RetriesExhaustedError):
        return "retries_exhausted", True
    if isinstance(exc, (SubmissionValidationError, RecordValidationError)):
        return "validation", False
    if isinstance(exc, ArtistNotFoundError):
        return "artist_resolution", False
    if isinstance(exc, PhotoFetchError):
        return "photo", exc.retryable
    if isinstance(exc, CorpusQueryError):
        return "corpus", True
    if isinstance(exc, GeocodingError):
        return "geocoding", True
    if isinstance(exc, httpx.HTTPError):
        return "network", True
    if isinstance(exc, MassImportError):
        return "application", False
    return "unexpected", False
