"""Pydantic schemas for resumable import session state."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .outcomes import SimilarityScore


class ItemStatus(str, Enum):
    """Processing status of one checkpointed item."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self is not ItemStatus.PENDING


class ItemOutcome(str, Enum):
    """What the pipeline did with an item that reached a terminal status."""

    CREATED = "created"
    DUPLICATE = "duplicate"
    MERGED = "merged"
    POSSIBLE_DUPLICATE = "possible_duplicate"
    VALIDATED = "validated"
    INVALID = "invalid"
    OUT_OF_BOUNDS = "out_of_bounds"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckpointItem(BaseModel):
    """Checkpoint record for one item of the (sliced) input."""

    index: int = Field(..., ge=0)
    source_id: str
    status: ItemStatus = ItemStatus.PENDING
    outcome: ItemOutcome | None = None
    error: str | None = None
    error_category: str | None = None
    artwork_id: str | None = None
    matched_id: str | None = None
    score: SimilarityScore | None = None
    artist_ids: list[str] = Field(default_factory=list)
    created_artist_ids: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)
    updated_at: datetime | None = None


class ImportSessionState(BaseModel):
    """The resumable checkpoint of one import run."""

    version: int = 1
    session_id: str
    input_file: str
    input_sha256: str | None = None
    source: str | None = None
    offset: int = 0
    limit: int | None = None
    total_items: int = Field(..., ge=0)
    items: list[CheckpointItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def pending_indexes(self) -> list[int]:
        return [item.index for item in self.items if item.status is ItemStatus.PENDING]

    def count(self, status: ItemStatus) -> int:
        return sum(1 for item in self.items if item.status is status)

    @property
    def processed_count(self) -> int:
        return sum(1 for item in self.items if item.status.is_terminal)
