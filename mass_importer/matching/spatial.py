"""Spatial candidate prefiltering ahead of similarity scoring."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from ..clients.corpus import CorpusClient
from ..exceptions import CorpusQueryError
from ..schemas.records import CandidateEntity
from ..utils.logging import setup_logger
from .geo import BoundingBox, bounding_box, haversine_m

logger = setup_logger(__name__, context={"stage": "deduplicating"})


@dataclass(slots=True)
class PrefilterResult:
    """Candidates ordered by distance plus an optional recoverable error."""

    candidates: list[CandidateEntity] = field(default_factory=list)
    distances_m: dict[str, float] = field(default_factory=dict)
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.error is not None


class SpatialPrefilter:
    """Narrow the corpus to nearby artworks using a bounding-box query.

    The backend query is index friendly (``lat BETWEEN`` / ``lon BETWEEN``); the
    exact radius filter and ordering happen here.
    """

    def __init__(
        self,
        corpus: CorpusClient,
        *,
        radius_m: float = 100.0,
        max_candidates: int = 50,
        timeout_seconds: float = 10.0,
    ) -> None:
        if radius_m <= 0:
            raise ValueError("radius_m must be greater than zero")
        if max_candidates < 1:
            raise ValueError("max_candidates must be at least 1")
        self.corpus = corpus
        self.radius_m = radius_m
        self.max_candidates = max_candidates
        self.timeout_seconds = timeout_seconds

    def bounding_box(self, lat: float, lon: float) -> BoundingBox:
        return bounding_box(lat, lon, self.radius_m)

    async def find_candidates(self, lat: float, lon: float) -> PrefilterResult:
        """Return nearby artworks ordered by distance, capped at ``max_candidates``.

        Backend failures and timeouts are reported through ``PrefilterResult.error``
        with an empty candidate list; the caller decides how to degrade.
        """
        box = self.bounding_box(lat, lon)
        try:
            # Over-fetch so the exact radius filter still leaves enough candidates.
            raw = await asyncio.wait_for(
                self.corpus.find_artworks_in_bbox(box, limit=self.max_candidates * 2),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            message = f"Spatial query timed out after {self.timeout_seconds}s"
            logger.warning(message, extra={"status": "degraded"})
            return PrefilterResult(error=message)
        except CorpusQueryError as exc:
            message = f"Spatial query failed: {exc}"
            logger.warning(message, extra={"status": "degraded"})
            return PrefilterResult(error=message)

        scored: list[tuple[float, CandidateEntity]] = []
        for candidate in raw:
            if not candidate.has_coordinates():
                continue
            distance = haversine_m(lat, lon, candidate.lat, candidate.lon)  # type: ignore[arg-type]
            if distance <= self.radius_m:
                scored.append((distance, candidate))

        scored.sort(key=lambda pair: (pair[0], pair[1].created_at, pair[1].id))
        selected = scored[: self.max_candidates]
        return PrefilterResult(
            candidates=[candidate for _, candidate in selected],
            distances_m={candidate.id: distance for distance, candidate in selected},
        )
