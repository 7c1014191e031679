"""Read/write access to the stored artwork and artist corpus."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import CorpusQueryError
from ..schemas.records import CandidateEntity
from .base import BaseApiClient, unwrap_data

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from ..matching.geo import BoundingBox


class CorpusClient(Protocol):
    """Operations the pipeline needs from the corpus backend."""

    async def find_artworks_in_bbox(
        self, box: BoundingBox, *, limit: int
    ) -> list[CandidateEntity]: ...

    async def search_artists(self, name: str, *, limit: int) -> list[CandidateEntity]: ...

    async def create_artist(self, name: str, provenance: dict[str, Any]) -> str: ...

    async def link_artist(self, artwork_id: str, artist_id: str, role: str) -> None: ...

    async def merge_artwork_tags(self, artwork_id: str, tags: dict[str, str]) -> None: ...


def candidate_from_payload(payload: dict[str, Any], *, kind: str = "artwork") -> CandidateEntity:
    """Build a :class:`CandidateEntity` from a loosely shaped API object.

    Raises:
        CorpusQueryError: If the object lacks an identifier or has invalid fields.
    """
    entity_id = payload.get("id")
    if entity_id is None:
        raise CorpusQueryError("Corpus entity is missing an 'id'")

    tags = payload.get("tags") or {}
    if isinstance(tags, str):
        try:
            tags = json.loads(tags)
        except json.JSONDecodeError:
            tags = {}

    artists = payload.get("artists") or payload.get("artist_names") or []
    if isinstance(artists, str):
        artists = [name.strip() for name in artists.split(",") if name.strip()]
    artists = [item.get("name", "") if isinstance(item, dict) else str(item) for item in artists]

    reference_ids = list(payload.get("reference_ids") or [])
    for key in ("external_id", "registry_id"):
        value = payload.get(key)
        if value not in (None, ""):
            reference_ids.append(str(value))
            if payload.get("source"):
                reference_ids.append(f"{payload['source']}:{value}")
    if isinstance(tags, dict):
        for key in ("external_id", "registry_id"):
            if tags.get(key) not in (None, ""):
                reference_ids.append(str(tags[key]))

    try:
        return CandidateEntity(
            id=str(entity_id),
            kind=kind,  # type: ignore[arg-type]
            title=str(payload.get("title") or payload.get("name") or ""),
            lat=payload.get("lat"),
            lon=payload.get("lon"),
            artists=artists,
            tags=tags if isinstance(tags, dict) else {},
            reference_ids=sorted(set(reference_ids)),
            created_at=payload.get("created_at") or "1970-01-01T00:00:00+00:00",
        )
    except PydanticValidationError as exc:
        raise CorpusQueryError(f"Invalid corpus entity '{entity_id}': {exc}") from exc


class HttpCorpusClient(BaseApiClient):
    """Corpus collaborator backed by the catalogue's mass-import API."""

    ARTWORKS_PATH = "/api/mass-import/artworks"
    ARTISTS_PATH = "/api/mass-import/artists"

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self.http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise CorpusQueryError(f"{method} {path} failed: {exc}") from exc
        if response.status_code >= 400:
            raise CorpusQueryError(
                f"{method} {path} returned HTTP {response.status_code}: {response.text[:200]}"
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise CorpusQueryError(f"{method} {path} returned invalid JSON") from exc

    async def find_artworks_in_bbox(
        self, box: BoundingBox, *, limit: int
    ) -> list[CandidateEntity]:
        params: dict[str, Any] = {**box.as_params(), "limit": limit}
        payload = await self._call("GET", self.ARTWORKS_PATH, params=params)
        return [candidate_from_payload(item) for item in unwrap_data(payload, "artworks")]

    async def search_artists(self, name: str, *, limit: int) -> list[CandidateEntity]:
        payload = await self._call(
            "GET", self.ARTISTS_PATH, params={"q": name, "limit": limit}
        )
        return [
            candidate_from_payload(item, kind="artist")
            for item in unwrap_data(payload, "artists")
        ]

    async def create_artist(self, name: str, provenance: dict[str, Any]) -> str:
        payload = await self._call(
            "POST",
            self.ARTISTS_PATH,
            json={"name": name, "tags": provenance},
        )
        data = unwrap_data(payload)
        artist_id = data.get("id") if isinstance(data, dict) else None
        if not artist_id:
            raise CorpusQueryError(f"Artist creation for '{name}' returned no id")
        return str(artist_id)

    async def link_artist(self, artwork_id: str, artist_id: str, role: str) -> None:
        await self._call(
            "POST",
            f"{self.ARTWORKS_PATH}/{artwork_id}/artists",
            json={"artist_id": artist_id, "role": role},
        )

    async def merge_artwork_tags(self, artwork_id: str, tags: dict[str, str]) -> None:
        await self._call(
            "PATCH",
            f"{self.ARTWORKS_PATH}/{artwork_id}/tags",
            json={"tags": tags, "mode": "add_missing"},
        )
