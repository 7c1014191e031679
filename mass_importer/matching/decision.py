"""Duplicate decision policy, deterministic tie-breaking and tag merging."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone

from ..schemas.outcomes import DuplicateDecision, DuplicateVerdict, SimilarityScore
from ..schemas.records import CandidateEntity

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class DuplicatePolicy:
    """Map similarity totals to duplicate verdicts.

    Boundaries are inclusive: a total equal to ``high_threshold`` is a duplicate
    and a total equal to ``warn_threshold`` is a possible duplicate.
    """

    def __init__(self, *, high_threshold: float = 0.80, warn_threshold: float = 0.65) -> None:
        if warn_threshold > high_threshold:
            raise ValueError("warn_threshold must not exceed high_threshold")
        self.high_threshold = high_threshold
        self.warn_threshold = warn_threshold

    def classify(self, total: float) -> DuplicateVerdict:
        if total >= self.high_threshold:
            return DuplicateVerdict.DUPLICATE
        if total >= self.warn_threshold:
            return DuplicateVerdict.POSSIBLE_DUPLICATE
        return DuplicateVerdict.DISTINCT

    def decide(
        self,
        scores: Sequence[SimilarityScore],
        candidates: Sequence[CandidateEntity],
    ) -> DuplicateDecision:
        """Pick the best candidate and classify its total.

        No candidates (or no comparable signal at all) means DISTINCT.
        """
        if not scores:
            return DuplicateDecision(verdict=DuplicateVerdict.DISTINCT)

        best = select_best(scores, candidates)
        return DuplicateDecision(
            verdict=self.classify(best.total),
            best=best,
            candidates_considered=len(scores),
        )


def select_best(
    scores: Sequence[SimilarityScore],
    candidates: Sequence[CandidateEntity],
) -> SimilarityScore:
    """Return the winning score.

    Order: highest total, then smallest distance (unknown distance last), then
    earliest-created candidate, then candidate id.
    """
    if not scores:
        raise ValueError("select_best requires at least one score")

    created = {candidate.id: candidate.created_at for candidate in candidates}

    def sort_key(score: SimilarityScore) -> tuple[float, int, float, datetime, str]:
        has_distance = 0 if score.distance_m is not None else 1
        distance = score.distance_m if score.distance_m is not None else 0.0
        return (
            -score.total,
            has_distance,
            distance,
            created.get(score.candidate_id, _EPOCH),
            score.candidate_id,
        )

    return min(scores, key=sort_key)


def merge_tags(existing: Mapping[str, str], incoming: Mapping[str, str]) -> dict[str, str]:
    """Merge ``incoming`` into ``existing``; existing values always win."""

    merged = dict(existing)
    for key, value in incoming.items():
        if key not in merged:
            merged[key] = value
    return merged


def new_tag_keys(existing: Mapping[str, str], incoming: Mapping[str, str]) -> dict[str, str]:
    """Return only the incoming tags whose keys the existing entity lacks."""

    return {key: value for key, value in incoming.items() if key not in existing}
