"""Schemas package initialization."""
from .checkpoint import CheckpointItem, ImportSessionState, ItemOutcome, ItemStatus
from .outcomes import (
    ArtistMatch,
    DuplicateDecision,
    DuplicateVerdict,
    SignalScores,
    SimilarityScore,
    SimilarityWeights,
)
from .records import (
    CandidateEntity,
    LifecycleStatus,
    LocationDetails,
    PhotoReference,
    RawImportRecord,
)
from .report import ImportRunReport, ReportCounts, RunState

__all__ = [
    "ArtistMatch",
    "CandidateEntity",
    "CheckpointItem",
    "DuplicateDecision",
    "DuplicateVerdict",
    "ImportRunReport",
    "ImportSessionState",
    "ItemOutcome",
    "ItemStatus",
    "LifecycleStatus",
    "LocationDetails",
    "PhotoReference",
    "RawImportRecord",
    "ReportCounts",
    "RunState",
    "SignalScores",
    "SimilarityScore",
    "SimilarityWeights",
]
