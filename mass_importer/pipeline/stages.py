"""Explicit per-stage outcomes returned by the orchestrator's item stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from ..schemas.checkpoint import ItemOutcome
from ..schemas.outcomes import SimilarityScore
from ..schemas.records import RawImportRecord


@dataclass(slots=True)
class Continue:
    """The item proceeds to the next stage, possibly with an enriched record."""

    record: RawImportRecord


@dataclass(slots=True)
class Duplicate:
    """The item matched an existing entity; it is done and counted as success."""

    matched_id: str | None
    score: SimilarityScore | None = None
    outcome: ItemOutcome = ItemOutcome.DUPLICATE
    merged_keys: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Completed:
    """The record was submitted (or validated in a dry run)."""

    artwork_id: str | None
    outcome: ItemOutcome = ItemOutcome.CREATED
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Failed:
    category: str
    error: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Skipped:
    outcome: ItemOutcome
    reason: str
    score: SimilarityScore | None = None
    matched_id: str | None = None


ItemResult = Union[Completed, Duplicate, Failed, Skipped]
