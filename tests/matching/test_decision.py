"""Tests for duplicate verdicts, tie-breaking and tag merging."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from mass_importer.matching.decision import DuplicatePolicy, merge_tags, new_tag_keys, select_best
from mass_importer.matching.similarity import SimilarityScorer
from mass_importer.schemas.outcomes import (
    DuplicateVerdict,
    SignalScores,
    SimilarityScore,
    SimilarityWeights,
)


def _score(candidate_id: str, total: float, distance_m: float | None = 10.0) -> SimilarityScore:
    return SimilarityScore(
        candidate_id=candidate_id,
        signals=SignalScores(geographic=total),
        weights=SimilarityWeights(),
        total=total,
        distance_m=distance_m,
    )


class TestDuplicatePolicy:
    """Threshold classification."""

    def test_high_threshold_boundary_is_inclusive(self):
        policy = DuplicatePolicy(high_threshold=0.80, warn_threshold=0.65)

        assert policy.classify(0.80) is DuplicateVerdict.DUPLICATE
        assert policy.classify(0.80 - 1e-9) is DuplicateVerdict.POSSIBLE_DUPLICATE

    def test_warn_threshold_boundary_is_inclusive(self):
        policy = DuplicatePolicy(high_threshold=0.80, warn_threshold=0.65)

        assert policy.classify(0.65) is DuplicateVerdict.POSSIBLE_DUPLICATE
        assert policy.classify(0.65 - 1e-9) is DuplicateVerdict.DISTINCT

    def test_scored_pair_exactly_at_threshold(self, make_record, make_candidate):
        """A scorer total landing exactly on the threshold counts as a duplicate."""
        scorer = SimilarityScorer(
            SimilarityWeights(geographic=0.8, title=0.0, artist=0.0, reference_id=0.0, tag_overlap=0.0)
        )
        record = make_record()
        candidate = make_candidate(title="")

        score = scorer.score(record, candidate)

        assert score.total == 0.8
        assert DuplicatePolicy().classify(score.total) is DuplicateVerdict.DUPLICATE

    def test_inverted_thresholds_rejected(self):
        with pytest.raises(ValueError):
            DuplicatePolicy(high_threshold=0.5, warn_threshold=0.7)

    def test_decide_without_scores_is_distinct(self):
        decision = DuplicatePolicy().decide([], [])
        assert decision.verdict is DuplicateVerdict.DISTINCT
        assert decision.matched_id is None

    def test_decide_reports_best_candidate(self, make_candidate):
        scores = [_score("a", 0.7), _score("b", 0.9)]
        decision = DuplicatePolicy().decide(scores, [make_candidate("a"), make_candidate("b")])

        assert decision.verdict is DuplicateVerdict.DUPLICATE
        assert decision.matched_id == "b"
        assert decision.candidates_considered == 2


class TestSelectBest:
    """Deterministic tie-breaking."""

    def test_highest_total_wins(self):
        assert select_best([_score("a", 0.7), _score("b", 0.75)], []).candidate_id == "b"

    def test_tie_broken_by_distance(self):
        scores = [_score("far", 0.9, 40.0), _score("near", 0.9, 5.0), _score("unknown", 0.9, None)]
        assert select_best(scores, []).candidate_id == "near"

    def test_tie_broken_by_creation_then_id(self, make_candidate):
        early = datetime(2020, 1, 1, tzinfo=timezone.utc)
        late = datetime(2023, 1, 1, tzinfo=timezone.utc)
        candidates = [
            make_candidate("z-old", created_at=early),
            make_candidate("a-new", created_at=late),
        ]
        scores = [_score("a-new", 0.9), _score("z-old", 0.9)]

        assert select_best(scores, candidates).candidate_id == "z-old"
        assert select_best([_score("b", 0.9), _score("a", 0.9)], []).candidate_id == "a"

    def test_order_of_input_does_not_matter(self):
        scores = [_score("a", 0.9, 5.0), _score("b", 0.9, 5.0), _score("c", 0.8, 1.0)]
        assert select_best(scores, []).candidate_id == select_best(scores[::-1], []).candidate_id

    def test_requires_scores(self):
        with pytest.raises(ValueError):
            select_best([], [])


class TestTagMerging:
    """Additive, existing-wins tag merge."""

    def test_existing_values_win(self):
        merged = merge_tags({"material": "bronze"}, {"material": "steel", "colour": "green"})
        assert merged == {"material": "bronze", "colour": "green"}

    def test_merge_is_idempotent(self):
        existing = {"tourism": "artwork", "material": "bronze"}
        incoming = {"material": "steel", "start_date": "1922", "wikidata": "Q1"}

        once = merge_tags(existing, incoming)
        twice = merge_tags(once, incoming)

        assert twice == once
        assert once["material"] == "bronze"

    def test_new_tag_keys_only_lists_missing_keys(self):
        existing = {"tourism": "artwork"}
        incoming = {"tourism": "attraction", "material": "bronze"}

        assert new_tag_keys(existing, incoming) == {"material": "bronze"}
        assert new_tag_keys(merge_tags(existing, incoming), incoming) == {}

    def test_inputs_not_mutated(self):
        existing = {"a": "1"}
        merge_tags(existing, {"b": "2"})
        assert existing == {"a": "1"}
