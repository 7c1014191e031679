"""JSON report and error-list exporter."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, ClassVar

from ..schemas.report import ImportRunReport
from ..utils.file_io import atomic_write_text
from .base import BaseExporter


def error_entries(report: ImportRunReport) -> list[dict[str, Any]]:
    return [
        {
            "index": record.index,
            "source_id": record.source_id,
            "error_category": record.error_category,
            "error": record.error,
        }
        for record in report.failed_records()
    ]


class JSONExporter(BaseExporter):
    """Writes ``<session>-report.json`` and, on failures, ``<session>-errors.json``."""

    name: ClassVar[str] = "json"

    def supported_options(self) -> set[str]:
        return {"indent", "include_records"}

    def export(self, report: ImportRunReport, directory: Path) -> list[Path]:
        indent = self.options.get("indent", 2)
        exclude = None if self.options.get("include_records", True) else {"records"}

        report_path = directory / f"{report.session_id}-report.json"
        atomic_write_text(report_path, report.model_dump_json(indent=indent, exclude=exclude))
        written = [report_path]

        errors = error_entries(report)
        if errors:
            errors_path = directory / f"{report.session_id}-errors.json"
            document = {
                "session_id": report.session_id,
                "input_file": report.input_file,
                "failed": len(errors),
                "errors": errors,
            }
            atomic_write_text(errors_path, json.dumps(document, indent=indent))
            written.append(errors_path)
        return written
