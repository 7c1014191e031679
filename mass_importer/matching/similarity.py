"""Weighted multi-signal similarity scoring for duplicate detection.

Ranks how likely an incoming record and a stored entity describe the same
real-world artwork. The score is a capped weighted sum of independent signals:

1. Geographic proximity (linear decay to zero at the configured radius)
2. Title similarity (normalised Levenshtein, RapidFuzz)
3. Artist similarity (best pairwise name match)
4. Reference-ID equality (exact match on any external identifier)
5. Tag overlap (fraction of the record's tags matched exactly)

A signal only counts when both sides carry a usable value. Weights of absent
signals are not redistributed, so sparse records score lower.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable

from rapidfuzz.distance import Levenshtein

from ..schemas.outcomes import SignalScores, SimilarityScore, SimilarityWeights
from ..schemas.records import CandidateEntity, RawImportRecord
from .geo import haversine_m

_PUNCTUATION = re.compile(r"[^\w\s]", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


def normalize_text(value: str) -> str:
    """Lower-case, strip accents and punctuation and collapse whitespace."""

    decomposed = unicodedata.normalize("NFKD", value)
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _PUNCTUATION.sub(" ", without_marks.casefold())
    return _WHITESPACE.sub(" ", stripped).strip()


def text_similarity(left: str, right: str) -> float:
    """Normalised edit-distance similarity in [0, 1]."""

    a = normalize_text(left)
    b = normalize_text(right)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return float(Levenshtein.normalized_similarity(a, b))


def best_pairwise_similarity(left: Iterable[str], right: Iterable[str]) -> float | None:
    """Maximum similarity over every pair of names, or ``None`` if a side is empty."""

    left_names = [name for name in left if normalize_text(name)]
    right_names = [name for name in right if normalize_text(name)]
    if not left_names or not right_names:
        return None
    return max(text_similarity(a, b) for a in left_names for b in right_names)


def geographic_similarity(distance_m: float, max_radius_m: float) -> float:
    """Linear decay: 1.0 at zero distance, 0.0 at and beyond ``max_radius_m``."""

    if distance_m <= 0:
        return 1.0
    if distance_m >= max_radius_m:
        return 0.0
    return 1.0 - (distance_m / max_radius_m)


class SimilarityScorer:
    """Pure scorer comparing import records with candidate entities."""

    def __init__(
        self,
        weights: SimilarityWeights | None = None,
        *,
        max_radius_m: float = 100.0,
    ) -> None:
        if max_radius_m <= 0:
            raise ValueError("max_radius_m must be greater than zero")
        self.weights = weights or SimilarityWeights()
        self.max_radius_m = max_radius_m

    def score(self, record: RawImportRecord, candidate: CandidateEntity) -> SimilarityScore:
        """Score one record against one candidate.

        Args:
            record: Validated import record
            candidate: Stored entity retrieved by the prefilter

        Returns:
            SimilarityScore with per-signal values and the capped weighted total
        """
        distance_m: float | None = None
        geographic: float | None = None
        if candidate.has_coordinates():
            distance_m = haversine_m(record.lat, record.lon, candidate.lat, candidate.lon)  # type: ignore[arg-type]
            geographic = geographic_similarity(distance_m, self.max_radius_m)

        title: float | None = None
        if normalize_text(record.title) and normalize_text(candidate.title):
            title = text_similarity(record.title, candidate.title)

        signals = SignalScores(
            geographic=geographic,
            title=title,
            artist=best_pairwise_similarity(record.artists, candidate.artists),
            reference_id=self._reference_signal(record, candidate),
            tag_overlap=self._tag_overlap(record.tags, candidate.tags),
        )

        return SimilarityScore(
            candidate_id=candidate.id,
            signals=signals,
            weights=self.weights,
            total=self.total(signals),
            distance_m=distance_m,
        )

    def score_names(self, left: str, right: str) -> float:
        """Apply the title-signal algorithm to two names."""

        return text_similarity(left, right)

    def total(self, signals: SignalScores) -> float:
        """Weighted sum of the present signals, capped at 1.0."""

        weights = self.weights.model_dump()
        raw = sum(weights[name] * value for name, value in signals.present().items())
        return round(min(1.0, max(0.0, raw)), 10)

    @staticmethod
    def _reference_signal(record: RawImportRecord, candidate: CandidateEntity) -> float | None:
        candidate_ids = {ref.strip() for ref in candidate.reference_ids if ref and ref.strip()}
        record_ids = record.reference_ids()
        if not candidate_ids or not record_ids:
            return None
        return 1.0 if record_ids & candidate_ids else 0.0

    @staticmethod
    def _tag_overlap(record_tags: dict[str, str], candidate_tags: dict[str, str]) -> float | None:
        if not record_tags or not candidate_tags:
            return None
        matched = sum(
            1
            for key, value in record_tags.items()
            if key in candidate_tags and candidate_tags[key] == value
        )
        return matched / len(record_tags)
