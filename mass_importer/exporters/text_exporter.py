"""Human readable run summary exporter."""

from __future__ import annotations

from pathlib import Path
from typing import ClassVar

from ..schemas.checkpoint import ItemStatus
from ..schemas.report import ImportRunReport
from ..utils.file_io import atomic_write_text
from .base import BaseExporter

RULE = "=" * 70
SUBRULE = "-" * 70


def render_summary(report: ImportRunReport, *, max_failures: int = 50) -> str:
    """Render the operator-facing summary shown by the CLI and saved to disk."""

    counts = report.counts
    lines = [
        RULE,
        "MASS IMPORT SUMMARY" + (" (DRY RUN)" if report.dry_run else ""),
        RULE,
        f"  Session:      {report.session_id}",
        f"  Input:        {report.input_file}",
        f"  Importer:     {report.importer}",
        f"  Source:       {report.source or 'N/A'}",
        f"  State:        {report.state.value.upper()}",
    ]
    if report.abort_reason:
        lines.append(f"  Abort reason: {report.abort_reason}")
    lines.append(f"  Duration:     {report.timing.duration_seconds:.1f}s")

    lines += [
        "",
        "RESULTS",
        SUBRULE,
        f"  Total:                {counts.total}",
        f"  Succeeded:            {counts.succeeded}",
        f"    of which duplicates: {counts.duplicates}",
        f"  Possible duplicates:  {counts.possible_duplicates}",
        f"  Failed:               {counts.failed}",
        f"  Skipped:              {counts.skipped}",
        f"  Pending:              {counts.pending}",
        "",
        "ENTITIES",
        SUBRULE,
        f"  Artworks created:     {len(report.created_artwork_ids)}",
        f"  Artists linked:       {len(report.linked_artist_ids)}",
        f"  Artists auto-created: {len(report.auto_created_artist_ids)}",
        "",
        "PHOTOS & TAGS",
        SUBRULE,
        f"  Photos: {report.photo_stats.total} total, {report.photo_stats.downloaded} downloaded, "
        f"{report.photo_stats.cached} cached, {report.photo_stats.failed} failed",
        f"  Tags:   {report.tag_stats.total} submitted, {report.tag_stats.merged} merged",
    ]

    bounds = report.geographic_bounds
    if bounds is not None and not bounds.is_empty():
        lines += [
            "",
            "GEOGRAPHIC BOUNDS",
            SUBRULE,
            f"  North {bounds.north:.5f}  South {bounds.south:.5f}  "
            f"East {bounds.east:.5f}  West {bounds.west:.5f}",
        ]

    failed = [record for record in report.records if record.status is ItemStatus.FAILED]
    if failed:
        lines += ["", "FAILURES", SUBRULE]
        for record in failed[:max_failures]:
            lines.append(
                f"  #{record.index} {record.source_id} [{record.error_category}]: {record.error}"
            )
        if len(failed) > max_failures:
            lines.append(f"  ... {len(failed) - max_failures} more in the errors report")

    if report.warnings:
        lines += ["", "WARNINGS", SUBRULE]
        for warning in report.warnings[:max_failures]:
            lines.append(f"  #{warning.index} {warning.source_id}: {warning.message}")
        if len(report.warnings) > max_failures:
            lines.append(f"  ... {len(report.warnings) - max_failures} more in the JSON report")

    lines += [RULE, ""]
    return "\n".join(lines)


class TextExporter(BaseExporter):
    """Writes ``<session>-summary.txt``."""

    name: ClassVar[str] = "text"

    def supported_options(self) -> set[str]:
        return {"max_failures"}

    def export(self, report: ImportRunReport, directory: Path) -> list[Path]:
        path = directory / f"{report.session_id}-summary.txt"
        text = render_summary(report, max_failures=self.options.get("max_failures", 50))
        atomic_write_text(path, text)
        return [path]
