"""Tests for the bounding-box spatial prefilter."""

from __future__ import annotations

import asyncio

import pytest

from mass_importer.matching.spatial import SpatialPrefilter
from mass_importer.testing import InMemoryCorpus


class _SlowCorpus(InMemoryCorpus):
    async def find_artworks_in_bbox(self, box, *, limit):
        await asyncio.sleep(5)
        return []


@pytest.mark.asyncio
class TestSpatialPrefilter:
    """Candidate retrieval and degradation."""

    async def test_returns_candidates_within_radius_ordered_by_distance(self, make_candidate):
        corpus = InMemoryCorpus(
            [
                make_candidate("far", lon=-123.1215),
                make_candidate("near", lon=-123.1208),
                make_candidate("outside", lon=-123.1250),
                make_candidate("no-coords", lat=None, lon=None),
            ]
        )
        prefilter = SpatialPrefilter(corpus, radius_m=100.0)

        result = await prefilter.find_candidates(49.2827, -123.1207)

        assert not result.degraded
        assert [c.id for c in result.candidates] == ["near", "far"]
        assert result.distances_m["near"] < result.distances_m["far"] <= 100.0
        assert len(corpus.bbox_queries) == 1

    async def test_caps_candidate_count(self, make_candidate):
        corpus = InMemoryCorpus(
            [make_candidate(f"c{i}", lon=-123.1207 + i * 0.00001) for i in range(10)]
        )
        prefilter = SpatialPrefilter(corpus, max_candidates=3)

        result = await prefilter.find_candidates(49.2827, -123.1207)

        assert [c.id for c in result.candidates] == ["c0", "c1", "c2"]

    async def test_backend_failure_is_reported_not_raised(self):
        corpus = InMemoryCorpus()
        corpus.fail_spatial_queries = True

        result = await SpatialPrefilter(corpus).find_candidates(49.28, -123.12)

        assert result.degraded
        assert result.candidates == []
        assert "spatial index unavailable" in result.error

    async def test_timeout_is_reported(self):
        prefilter = SpatialPrefilter(_SlowCorpus(), timeout_seconds=0.01)

        result = await prefilter.find_candidates(49.28, -123.12)

        assert result.degraded
        assert "timed out" in result.error

    async def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            SpatialPrefilter(InMemoryCorpus(), radius_m=0)
        with pytest.raises(ValueError):
            SpatialPrefilter(InMemoryCorpus(), max_candidates=0)
