"""Custom exceptions for the mass import pipeline."""

from __future__ import annotations


class MassImportError(Exception):
    """Base exception for all mass import errors."""

    pass


class ConfigurationError(MassImportError):
    """Raised when configuration is invalid or missing."""

    pass


class ImporterNotFoundError(MassImportError):
    """Raised when requested importer is not registered."""

    pass


class ExporterNotFoundError(MassImportError):
    """Raised when requested report exporter is not registered."""

    pass


class RecordValidationError(MassImportError):
    """Raised when a source record cannot be mapped to a valid import record."""

    def __init__(self, message: str, *, index: int | None = None, source_id: str | None = None):
        super().__init__(message)
        self.index = index
        self.source_id = source_id


class RunAbortedError(MassImportError):
    """Base class for failures that stop the whole import run."""

    def __init__(self, message: str, *, item_index: int | None = None) -> None:
        super().__init__(message)
        self.item_index = item_index

    def describe(self) -> str:
        """Return an operator-facing message including the in-progress item."""

        if self.item_index is None:
            return str(self)
        return f"{self} (while processing item #{self.item_index})"


class InputLoadError(RunAbortedError):
    """Raised when the input file cannot be read, parsed or validated."""

    pass


class AuthenticationError(RunAbortedError):
    """Raised when the ingestion endpoint rejects our credentials."""

    pass


class CheckpointCorruptedError(RunAbortedError):
    """Raised when a checkpoint file exists but cannot be decoded."""

    pass


class CheckpointExistsError(RunAbortedError):
    """Raised when a new session would overwrite an existing checkpoint."""

    pass


class CheckpointMismatchError(RunAbortedError):
    """Raised when a resumed session no longer matches its input file."""

    pass


class CheckpointNotFoundError(RunAbortedError):
    """Raised when an explicitly requested session has no checkpoint."""

    pass


class RunInterruptedError(RunAbortedError):
    """Raised when an operator stop request ends the run at an item boundary."""

    pass


class InvalidTransitionError(MassImportError):
    """Raised when a checkpoint item would move out of a terminal status."""

    pass


class SubmissionValidationError(MassImportError):
    """Raised when the ingestion endpoint rejects a record as invalid."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RetriesExhaustedError(MassImportError):
    """Raised when an operation kept failing after every permitted retry."""

    def __init__(self, message: str, *, attempts: int, last_status: int | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_status = last_status


class ArtistNotFoundError(MassImportError):
    """Raised when an artist name has no match and auto-creation is disabled."""

    def __init__(self, name: str, best_score: float | None = None) -> None:
        detail = f" (best match score {best_score:.2f})" if best_score is not None else ""
        super().__init__(f"Artist not found: '{name}'{detail}")
        self.name = name
        self.best_score = best_score


class CorpusQueryError(MassImportError):
    """Raised when the corpus backend cannot answer a read or write request."""

    pass


class PhotoFetchError(MassImportError):
    """Raised when a photo cannot be downloaded or fails validation."""

    def __init__(self, url: str, reason: str, *, retryable: bool = False) -> None:
        super().__init__(f"{reason}: {url}")
        self.url = url
        self.reason = reason
        self.retryable = retryable


class GeocodingError(MassImportError):
    """Raised when a reverse geocoding lookup fails."""

    pass
