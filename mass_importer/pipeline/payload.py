"""Build the ingestion request body for one finalized record."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ..artists.resolver import ArtistResolution
from ..photos.fetcher import FetchedPhoto
from ..schemas.outcomes import ArtistMatch
from ..schemas.records import RawImportRecord


def build_note(record: RawImportRecord) -> str:
    """Assemble the free-text submission note shown to moderators."""

    parts = [f"Title: {record.title}"]
    if record.description:
        parts.append(f"Description: {record.description}")
    if record.artists:
        parts.append(f"Created by: {', '.join(record.artists)}")
    parts.append(f"Source: {record.source}")
    parts.append(f"External ID: {record.external_id}")
    return "\n\n".join(parts)


def prepare_tags(record: RawImportRecord) -> tuple[dict[str, str], list[str]]:
    """Return submission tags with provenance filled in, plus tag warnings."""

    tags = dict(record.tags)
    warnings: list[str] = []
    tags.setdefault("source", record.source)
    if record.registry_id:
        tags.setdefault("registry_id", record.registry_id)
    if "tourism" not in tags:
        warnings.append('Missing "tourism" tag; defaulting to tourism=artwork')
        tags["tourism"] = "artwork"
    return tags, warnings


def build_submission_payload(
    record: RawImportRecord,
    *,
    tags: dict[str, str],
    photos: list[FetchedPhoto],
    artists: list[ArtistMatch],
    pending_artists: Sequence[ArtistResolution] = (),
    possible_duplicate_of: str | None = None,
) -> dict[str, Any]:
    """Assemble the ingestion body; ``pending_artists`` are listed by name without an id."""

    payload: dict[str, Any] = {
        "external_id": record.external_id,
        "source": record.source,
        "lat": record.lat,
        "lon": record.lon,
        "title": record.title,
        "description": record.description,
        "note": build_note(record),
        "material": record.material,
        "artwork_type": record.artwork_type,
        "installation_year": record.installation_year,
        "address": record.address,
        "neighborhood": record.neighborhood,
        "site_name": record.site_name,
        "status": record.status.value,
        "tags": tags,
        "photos": [photo.as_submission() for photo in photos],
        "artists": [
            {"name": match.raw_name, "artist_id": match.artist_id, "role": match.role}
            for match in artists
        ]
        + [
            {"name": pending.raw_name, "artist_id": None, "role": pending.role}
            for pending in pending_artists
        ],
    }
    if record.location is not None:
        payload["location"] = record.location.model_dump(exclude_none=True)
    if possible_duplicate_of:
        payload["possible_duplicate_of"] = possible_duplicate_of
    return {key: value for key, value in payload.items() if value is not None}
