"""Base exporter abstract class for run reports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar

from ..exceptions import ConfigurationError
from ..schemas.report import ImportRunReport


class BaseExporter(ABC):
    """
    Abstract base class for report exporters.

    Exporters are configured once, validate a report before writing, and
    export it to files under a target directory.
    """

    name: ClassVar[str] = "base"

    def __init__(self, options: dict[str, Any] | None = None):
        self.options: dict[str, Any] = {}
        self.configure(options or {})

    def configure(self, options: dict[str, Any]) -> None:
        """Apply exporter options.

        Raises:
            ConfigurationError: If an option is not recognised.
        """
        unknown = set(options) - self.supported_options()
        if unknown:
            raise ConfigurationError(
                f"Unknown options for exporter '{self.name}': {', '.join(sorted(unknown))}"
            )
        self.options.update(options)

    def supported_options(self) -> set[str]:
        return set()

    def validate(self, report: ImportRunReport) -> list[str]:
        """Return problems that would make the export misleading."""

        problems: list[str] = []
        counts = report.counts
        accounted = counts.succeeded + counts.failed + counts.skipped + counts.pending
        if accounted != counts.total:
            problems.append(
                f"counts do not add up: {accounted} accounted for, {counts.total} total"
            )
        if len(report.failed_records()) != counts.failed:
            problems.append("failed count does not match failed records")
        return problems

    @abstractmethod
    def export(self, report: ImportRunReport, directory: Path) -> list[Path]:
        """Write the report under ``directory`` and return the files written."""
