"""Pydantic schemas for the end-of-run import report."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .checkpoint import CheckpointItem


class RunState(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"


class ReportCounts(BaseModel):
    """Aggregate item counts. ``duplicates`` is a subset of ``succeeded``."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    duplicates: int = 0
    possible_duplicates: int = 0
    skipped: int = 0
    pending: int = 0


class ReportTiming(BaseModel):
    started_at: datetime
    finished_at: datetime
    duration_seconds: float = Field(..., ge=0)


class PhotoStatistics(BaseModel):
    total: int = 0
    downloaded: int = 0
    cached: int = 0
    failed: int = 0


class TagStatistics(BaseModel):
    total: int = 0
    merged: int = 0


class GeographicBounds(BaseModel):
    """Bounding box of the records that were processed."""

    north: float = -90.0
    south: float = 90.0
    east: float = -180.0
    west: float = 180.0

    def include(self, lat: float, lon: float) -> None:
        self.north = max(self.north, lat)
        self.south = min(self.south, lat)
        self.east = max(self.east, lon)
        self.west = min(self.west, lon)

    def is_empty(self) -> bool:
        return self.north < self.south


class ReportWarning(BaseModel):
    index: int
    source_id: str
    message: str


class ImportRunReport(BaseModel):
    """Structured summary of one import run."""

    session_id: str
    source: str | None = None
    input_file: str
    importer: str
    dry_run: bool = False
    state: RunState
    abort_reason: str | None = None
    aborted_at_index: int | None = None
    counts: ReportCounts
    timing: ReportTiming
    records: list[CheckpointItem] = Field(default_factory=list)
    created_artwork_ids: list[str] = Field(default_factory=list)
    linked_artist_ids: list[str] = Field(default_factory=list)
    auto_created_artist_ids: list[str] = Field(default_factory=list)
    photo_stats: PhotoStatistics = Field(default_factory=PhotoStatistics)
    tag_stats: TagStatistics = Field(default_factory=TagStatistics)
    geographic_bounds: GeographicBounds | None = None
    warnings: list[ReportWarning] = Field(default_factory=list)

    def failed_records(self) -> list[CheckpointItem]:
        return [record for record in self.records if record.status.value == "failed"]
