"""Importer for plain JSON arrays of records already in the import shape."""

from __future__ import annotations

from typing import Any, ClassVar

from .base import BaseImporter, extract_coordinates, photo_entries

_PASSTHROUGH_FIELDS = (
    "title",
    "description",
    "artists",
    "material",
    "artwork_type",
    "installation_year",
    "address",
    "neighborhood",
    "site_name",
    "registry_id",
    "tags",
    "status",
)


class JSONArrayImporter(BaseImporter):
    """Accepts ``[...]`` or ``{"records": [...]}`` with RawImportRecord-like keys."""

    name: ClassVar[str] = "json"
    default_source: ClassVar[str] = "json-import"

    def generate_id(self, item: dict[str, Any], index: int) -> str | None:
        for key in ("external_id", "externalId", "id"):
            value = item.get(key)
            if value not in (None, ""):
                return str(value)
        return None

    def map_data(self, item: dict[str, Any]) -> dict[str, Any]:
        lat, lon = extract_coordinates(item)
        mapped: dict[str, Any] = {
            field: item[field] for field in _PASSTHROUGH_FIELDS if item.get(field) is not None
        }
        mapped["lat"] = lat
        mapped["lon"] = lon
        mapped["photos"] = photo_entries(item.get("photos") or item.get("photoUrls"))
        if item.get("source"):
            mapped["source"] = item["source"]
        if "artists" not in mapped and item.get("artist"):
            mapped["artists"] = item["artist"]
        return mapped
