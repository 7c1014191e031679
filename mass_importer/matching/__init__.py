"""Duplicate detection: spatial prefiltering, similarity scoring and decisions."""
from .decision import DuplicatePolicy, merge_tags, select_best
from .similarity import SimilarityScorer, normalize_text, text_similarity
from .spatial import PrefilterResult, SpatialPrefilter

__all__ = [
    "DuplicatePolicy",
    "PrefilterResult",
    "SimilarityScorer",
    "SpatialPrefilter",
    "merge_tags",
    "normalize_text",
    "select_best",
    "text_similarity",
]
