"""Build and export the end-of-run import report."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from ..exceptions import MassImportError
from ..exporters import get_exporter
from ..schemas.checkpoint import ImportSessionState, ItemOutcome, ItemStatus
from ..schemas.report import (
    GeographicBounds,
    ImportRunReport,
    PhotoStatistics,
    ReportCounts,
    ReportTiming,
    ReportWarning,
    RunState,
    TagStatistics,
)
from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"stage": "finalizing"})

DUPLICATE_OUTCOMES = frozenset({ItemOutcome.DUPLICATE, ItemOutcome.MERGED})


@dataclass(slots=True)
class RunStatistics:
    """Counters accumulated by the orchestrator while items are processed."""

    photos: PhotoStatistics = field(default_factory=PhotoStatistics)
    tags: TagStatistics = field(default_factory=TagStatistics)
    bounds: GeographicBounds = field(default_factory=GeographicBounds)
    warnings: list[ReportWarning] = field(default_factory=list)
    created_artwork_ids: list[str] = field(default_factory=list)
    linked_artist_ids: list[str] = field(default_factory=list)
    auto_created_artist_ids: list[str] = field(default_factory=list)

    def warn(self, index: int, source_id: str, message: str) -> None:
        self.warnings.append(ReportWarning(index=index, source_id=source_id, message=message))

    def add_unique(self, target: list[str], values: list[str]) -> None:
        for value in values:
            if value not in target:
                target.append(value)


def build_counts(state: ImportSessionState) -> ReportCounts:
    items = state.items
    return ReportCounts(
        total=len(items),
        succeeded=state.count(ItemStatus.SUCCEEDED),
        failed=state.count(ItemStatus.FAILED),
        duplicates=sum(1 for item in items if item.outcome in DUPLICATE_OUTCOMES),
        possible_duplicates=sum(
            1
            for item in items
            if item.outcome is ItemOutcome.POSSIBLE_DUPLICATE
            or item.details.get("possible_duplicate_of")
        ),
        skipped=state.count(ItemStatus.SKIPPED),
        pending=state.count(ItemStatus.PENDING),
    )


class ReportGenerator:
    """Turns a session state plus run statistics into an ImportRunReport."""

    def __init__(self, report_dir: str | Path, *, formats: list[str] | None = None) -> None:
        self.report_dir = Path(report_dir)
        self.formats = formats or ["json", "text"]
        # Resolve exporters up front so an unknown format fails before the run.
        self._exporters = [get_exporter(name)() for name in self.formats]

    def build(
        self,
        state: ImportSessionState,
        stats: RunStatistics,
        *,
        importer: str,
        started_at: datetime,
        finished_at: datetime | None = None,
        dry_run: bool = False,
        error: MassImportError | None = None,
        aborted_at_index: int | None = None,
    ) -> ImportRunReport:
        finished = finished_at or datetime.now(timezone.utc)
        counts = build_counts(state)
        aborted = error is not None or counts.pending > 0

        abort_reason = None
        if error is not None:
            abort_reason = str(error)
        elif aborted:
            abort_reason = f"{counts.pending} items still pending"

        # Artworks merged into an existing entity were not created by this run.
        created = [
            item.artwork_id
            for item in state.items
            if item.artwork_id and item.outcome is ItemOutcome.CREATED
        ]
        stats.add_unique(stats.created_artwork_ids, created)

        return ImportRunReport(
            session_id=state.session_id,
            source=state.source,
            input_file=state.input_file,
            importer=importer,
            dry_run=dry_run,
            state=RunState.ABORTED if aborted else RunState.COMPLETED,
            abort_reason=abort_reason,
            aborted_at_index=aborted_at_index,
            counts=counts,
            timing=ReportTiming(
                started_at=started_at,
                finished_at=finished,
                duration_seconds=max(0.0, (finished - started_at).total_seconds()),
            ),
            records=list(state.items),
            created_artwork_ids=list(stats.created_artwork_ids),
            linked_artist_ids=list(stats.linked_artist_ids),
            auto_created_artist_ids=list(stats.auto_created_artist_ids),
            photo_stats=stats.photos,
            tag_stats=stats.tags,
            geographic_bounds=None if stats.bounds.is_empty() else stats.bounds,
            warnings=list(stats.warnings),
        )

    def write(self, report: ImportRunReport) -> list[Path]:
        """Export ``report`` in every configured format; returns the files written."""

        self.report_dir.mkdir(parents=True, exist_ok=True)
        written: list[Path] = []
        for exporter in self._exporters:
            for problem in exporter.validate(report):
                logger.warning(
                    "Report check failed (%s): %s",
                    exporter.name,
                    problem,
                    extra={"session_id": report.session_id},
                )
            written.extend(exporter.export(report, self.report_dir))

        logger.info(
            "Wrote %d report files to %s",
            len(written),
            self.report_dir,
            extra={"session_id": report.session_id},
        )
        return written
