"""Importer for GeoJSON FeatureCollections (OSM and scraper exports)."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import Field

from ..exceptions import InputLoadError
from .base import BaseImporter, ImporterOptions, extract_coordinates, photo_entries

TITLE_KEYS = ("title", "name", "title_of_work")
ARTIST_KEYS = ("artists", "artist", "artist_name", "created_by")
DESCRIPTION_KEYS = ("description", "inscription")
PHOTO_KEYS = ("photos", "photo_urls", "photo", "image")

# Properties mapped to dedicated record fields, never copied into tags.
_CONSUMED_KEYS = frozenset(
    TITLE_KEYS
    + ARTIST_KEYS
    + DESCRIPTION_KEYS
    + PHOTO_KEYS
    + ("id", "@id", "external_id", "registry_id", "lat", "lon", "latitude", "longitude", "tags")
)


class GeoJSONOptions(ImporterOptions):
    id_property: str | None = Field(None, description="Property holding the source identifier")
    copy_properties_as_tags: bool = True


class GeoJSONImporter(BaseImporter):
    """Maps Point features; feature properties become record fields and tags."""

    name: ClassVar[str] = "geojson"
    default_source: ClassVar[str] = "geojson"
    options_model: ClassVar[type[ImporterOptions]] = GeoJSONOptions

    def extract_items(self, payload: Any) -> list[Any]:
        if isinstance(payload, dict) and payload.get("type") == "FeatureCollection":
            features = payload.get("features")
            if not isinstance(features, list):
                raise InputLoadError("FeatureCollection has no 'features' array")
            return features
        return super().extract_items(payload)

    def generate_id(self, item: dict[str, Any], index: int) -> str | None:
        properties = _properties(item)
        id_property = getattr(self.options, "id_property", None)
        candidates = [properties.get(id_property)] if id_property else []
        candidates += [
            item.get("id"),
            properties.get("external_id"),
            properties.get("id"),
            properties.get("@id"),
        ]
        for candidate in candidates:
            if candidate not in (None, ""):
                return str(candidate)
        return None

    def map_data(self, item: dict[str, Any]) -> dict[str, Any]:
        properties = dict(_properties(item))
        lat, lon = extract_coordinates(item)

        tags: dict[str, Any] = {}
        if isinstance(properties.get("tags"), dict):
            tags.update(properties["tags"])
        if getattr(self.options, "copy_properties_as_tags", True):
            for key, value in properties.items():
                if key in _CONSUMED_KEYS or isinstance(value, (dict, list)):
                    continue
                tags.setdefault(key, value)

        return {
            "lat": lat,
            "lon": lon,
            "title": _first(properties, TITLE_KEYS),
            "description": _first(properties, DESCRIPTION_KEYS),
            "artists": _split_artists(_first(properties, ARTIST_KEYS)),
            "material": properties.get("material"),
            "artwork_type": properties.get("artwork_type"),
            "installation_year": properties.get("start_date") or properties.get("year"),
            "registry_id": properties.get("registry_id"),
            "photos": photo_entries(_first(properties, PHOTO_KEYS)),
            "tags": tags,
        }


def _properties(item: dict[str, Any]) -> dict[str, Any]:
    properties = item.get("properties")
    if properties is None:
        return {}
    if not isinstance(properties, dict):
        raise ValueError(f"feature properties must be an object, not {type(properties).__name__}")
    return properties


def _first(properties: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = properties.get(key)
        if value not in (None, "", []):
            return value
    return None


def _split_artists(value: Any) -> Any:
    # OSM stores multiple values separated by semicolons.
    if isinstance(value, str) and ";" in value:
        return [part.strip() for part in value.split(";") if part.strip()]
    return value
