"""In-memory collaborators for exercising the pipeline without a backend."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import Any

from ..clients.ingestion import SubmissionResult
from ..exceptions import CorpusQueryError, GeocodingError
from ..matching.geo import BoundingBox
from ..schemas.records import CandidateEntity, LocationDetails


class InMemoryCorpus:
    """Corpus collaborator backed by lists, recording every write."""

    def __init__(
        self,
        artworks: Iterable[CandidateEntity] = (),
        artists: Iterable[CandidateEntity] = (),
    ) -> None:
        self.artworks: dict[str, CandidateEntity] = {a.id: a for a in artworks}
        self.artists: dict[str, CandidateEntity] = {a.id: a for a in artists}
        self.created_artists: list[tuple[str, dict[str, Any]]] = []
        self.links: list[tuple[str, str, str]] = []
        self.tag_merges: list[tuple[str, dict[str, str]]] = []
        self.bbox_queries: list[BoundingBox] = []
        self.fail_spatial_queries = False
        self.fail_artist_queries = False
        self.fail_artist_creation = False

    async def find_artworks_in_bbox(self, box: BoundingBox, *, limit: int) -> list[CandidateEntity]:
        self.bbox_queries.append(box)
        if self.fail_spatial_queries:
            raise CorpusQueryError("spatial index unavailable")
        found = [
            artwork
            for artwork in self.artworks.values()
            if artwork.has_coordinates() and box.contains(artwork.lat, artwork.lon)  # type: ignore[arg-type]
        ]
        return found[:limit]

    async def search_artists(self, name: str, *, limit: int) -> list[CandidateEntity]:
        if self.fail_artist_queries:
            raise CorpusQueryError("artist search unavailable")
        return list(self.artists.values())[:limit]

    async def create_artist(self, name: str, provenance: dict[str, Any]) -> str:
        if self.fail_artist_creation:
            raise CorpusQueryError(f"artist '{name}' could not be created")
        artist_id = f"artist-{len(self.artists) + 1}"
        self.artists[artist_id] = CandidateEntity(id=artist_id, kind="artist", title=name)
        self.created_artists.append((name, provenance))
        return artist_id

    async def link_artist(self, artwork_id: str, artist_id: str, role: str) -> None:
        self.links.append((artwork_id, artist_id, role))

    async def merge_artwork_tags(self, artwork_id: str, tags: dict[str, str]) -> None:
        artwork = self.artworks.get(artwork_id)
        if artwork is None:
            raise CorpusQueryError(f"artwork {artwork_id} not found")
        merged = dict(artwork.tags)
        for key, value in tags.items():
            merged.setdefault(key, value)
        self.artworks[artwork_id] = artwork.model_copy(update={"tags": merged})
        self.tag_merges.append((artwork_id, dict(tags)))


class ScriptedIngestion:
    """Ingestion collaborator returning queued results or raising queued errors.

    When the script is exhausted every submission succeeds with a fresh id.
    """

    def __init__(self, script: Iterable[SubmissionResult | Exception] = ()) -> None:
        self.script: deque[SubmissionResult | Exception] = deque(script)
        self.submitted: list[dict[str, Any]] = []

    async def submit(self, payload: dict[str, Any]) -> SubmissionResult:
        self.submitted.append(payload)
        if self.script:
            step = self.script.popleft()
            if isinstance(step, Exception):
                raise step
            return step
        return SubmissionResult(artwork_id=f"artwork-{len(self.submitted)}", status_code=201)


class StaticGeocoder:
    """Geocoder returning a fixed location, or failing when ``error`` is set."""

    def __init__(
        self,
        location: LocationDetails | None = None,
        *,
        error: str | None = None,
    ) -> None:
        self.location = location or LocationDetails(city="Vancouver", country="Canada")
        self.error = error
        self.calls: list[tuple[float, float]] = []

    async def reverse(self, lat: float, lon: float) -> LocationDetails:
        self.calls.append((lat, lon))
        if self.error is not None:
            raise GeocodingError(self.error)
        return self.location
