"""Pydantic schemas for matching and resolution outcomes."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SimilarityWeights(BaseModel):
    """Per-signal weights used to build an aggregate similarity score.

    The weights do not have to sum to 1.0; the total is capped instead.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    geographic: float = Field(default=0.6, ge=0)
    title: float = Field(default=0.25, ge=0)
    artist: float = Field(default=0.2, ge=0)
    reference_id: float = Field(default=0.5, ge=0)
    tag_overlap: float = Field(default=0.05, ge=0)


class SignalScores(BaseModel):
    """Individual sub-scores; ``None`` means the signal was absent."""

    model_config = ConfigDict(frozen=True)

    geographic: float | None = Field(None, ge=0, le=1)
    title: float | None = Field(None, ge=0, le=1)
    artist: float | None = Field(None, ge=0, le=1)
    reference_id: float | None = Field(None, ge=0, le=1)
    tag_overlap: float | None = Field(None, ge=0, le=1)

    def present(self) -> dict[str, float]:
        return {name: value for name, value in self.model_dump().items() if value is not None}


class SimilarityScore(BaseModel):
    """Outcome of comparing one import record with one candidate entity."""

    model_config = ConfigDict(frozen=True)

    candidate_id: str
    signals: SignalScores
    weights: SimilarityWeights
    total: float = Field(..., ge=0, le=1)
    distance_m: float | None = Field(None, ge=0)


class DuplicateVerdict(str, Enum):
    """Decision taken by the duplicate policy for one record."""

    DUPLICATE = "duplicate"
    POSSIBLE_DUPLICATE = "possible_duplicate"
    DISTINCT = "distinct"


class DuplicateDecision(BaseModel):
    """Verdict plus the winning candidate score (when any candidate was scored)."""

    model_config = ConfigDict(frozen=True)

    verdict: DuplicateVerdict
    best: SimilarityScore | None = None
    candidates_considered: int = 0

    @property
    def matched_id(self) -> str | None:
        return self.best.candidate_id if self.best is not None else None


class ArtistMatch(BaseModel):
    """Outcome of resolving one raw artist name.

    Exactly one of ``matched_id`` and ``created_id`` is set.
    """

    model_config = ConfigDict(frozen=True)

    raw_name: str
    matched_id: str | None = None
    created_id: str | None = None
    confidence: float = Field(..., ge=0, le=1)
    role: str = "primary"

    @model_validator(mode="after")
    def _exactly_one_id(self) -> ArtistMatch:
        if (self.matched_id is None) == (self.created_id is None):
            raise ValueError("exactly one of matched_id or created_id must be set")
        return self

    @property
    def artist_id(self) -> str:
        return self.matched_id if self.matched_id is not None else self.created_id  # type: ignore[return-value]

    @property
    def was_created(self) -> bool:
        return self.created_id is not None
