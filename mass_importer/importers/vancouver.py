"""Importer for the City of Vancouver public-art open data export."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, ClassVar

from pydantic import Field

from .base import BaseImporter, ImporterOptions, photo_entries

DATASET_URL = "https://opendata.vancouver.ca/explore/dataset/public-art/table/"

ARTWORK_TYPES: dict[str, str] = {
    "sculpture": "sculpture",
    "mural": "mural",
    "installation": "installation",
    "monument": "monument",
    "mosaic": "mosaic",
    "painting": "mural",
    "fountain": "sculpture",
    "statue": "statue",
    "relief": "sculpture",
    "memorial": "monument",
}

CONDITIONS: dict[str, str] = {
    "in place": "good",
    "installed": "good",
    "active": "good",
    "removed": "poor",
    "damaged": "poor",
    "missing": "poor",
    "relocated": "good",
    "restored": "excellent",
}

_LIFECYCLE: dict[str, str] = {
    "in place": "active",
    "installed": "active",
    "active": "active",
    "relocated": "active",
    "restored": "active",
    "removed": "removed",
    "missing": "inactive",
    "damaged": "inactive",
}


class VancouverOptions(ImporterOptions):
    source: str | None = "vancouver-opendata"
    artist_names: dict[str, str] = Field(
        default_factory=dict,
        description="Artist id -> display name lookup; unmapped ids are kept as-is",
    )


def normalize_tag_value(text: str) -> str:
    """Lower-case, strip punctuation and join words with underscores."""

    value = re.sub(r"[^a-z0-9\s-]", "", text.lower().strip())
    value = re.sub(r"[\s-]+", "_", value)
    return re.sub(r"_+", "_", value).strip("_")


def map_artwork_type(raw: str) -> str:
    normalized = normalize_tag_value(raw).replace("_", " ")
    if normalized in ARTWORK_TYPES:
        return ARTWORK_TYPES[normalized]
    for key, value in ARTWORK_TYPES.items():
        if key in normalized or (normalized and normalized in key):
            return value
    return "sculpture"


class VancouverImporter(BaseImporter):
    """Maps ``registryid``/``title_of_work``/``geo_point_2d`` records."""

    name: ClassVar[str] = "vancouver"
    default_source: ClassVar[str] = "vancouver-opendata"
    options_model: ClassVar[type[ImporterOptions]] = VancouverOptions

    def generate_id(self, item: dict[str, Any], index: int) -> str | None:
        registry_id = item.get("registryid")
        if registry_id in (None, ""):
            return None
        return f"vancouver-{registry_id}"

    def fallback_id(self, index: int) -> str:
        return f"vancouver-item-{index}"

    def map_data(self, item: dict[str, Any]) -> dict[str, Any]:
        point = item.get("geo_point_2d") or {}
        registry_id = item.get("registryid")
        status_text = str(item.get("status") or "").strip().lower()

        photos = photo_entries(item.get("photourl"))
        if photos and item.get("photocredits"):
            photos[0]["credit"] = item["photocredits"]

        return {
            "lat": point.get("lat"),
            "lon": point.get("lon"),
            "title": item.get("title_of_work") or f"Artwork #{registry_id}",
            "description": self._description(item),
            "artists": self._artists(item.get("artists")),
            "material": item.get("primarymaterial"),
            "artwork_type": item.get("type"),
            "installation_year": item.get("yearofinstallation"),
            "address": item.get("siteaddress"),
            "neighborhood": item.get("neighbourhood"),
            "site_name": item.get("sitename"),
            "registry_id": registry_id,
            "status": _LIFECYCLE.get(status_text, "unknown"),
            "photos": photos,
            "tags": self._tags(item),
        }

    def _artists(self, value: Any) -> list[str]:
        if value in (None, ""):
            return []
        if not isinstance(value, list):
            value = [value]
        lookup = getattr(self.options, "artist_names", {})
        return [lookup.get(str(artist), str(artist)) for artist in value if artist is not None]

    @staticmethod
    def _description(item: dict[str, Any]) -> str | None:
        parts: list[str] = []
        if item.get("descriptionofwork"):
            parts.append(item["descriptionofwork"])
        for key, label in (
            ("artistprojectstatement", "Artist Statement"),
            ("sitename", "Location"),
            ("siteaddress", "Address"),
            ("locationonsite", "Site Details"),
        ):
            if item.get(key):
                parts.append(f"{label}: {item[key]}")
        return "\n\n".join(parts) if parts else None

    def _tags(self, item: dict[str, Any]) -> dict[str, Any]:
        tags: dict[str, Any] = {"tourism": "artwork"}
        if item.get("type"):
            tags["artwork_type"] = map_artwork_type(item["type"])
        if item.get("primarymaterial"):
            tags["material"] = normalize_tag_value(item["primarymaterial"])
        if item.get("neighbourhood"):
            tags["addr_neighbourhood"] = normalize_tag_value(item["neighbourhood"])
        if item.get("geo_local_area"):
            tags["addr_city"] = normalize_tag_value(item["geo_local_area"])
        if item.get("ownership"):
            tags["operator"] = normalize_tag_value(item["ownership"])

        year_text = str(item.get("yearofinstallation") or "").strip()
        if year_text.isdigit() and 1800 < int(year_text) <= datetime.now(timezone.utc).year:
            tags["start_date"] = int(year_text)

        if item.get("status"):
            tags["condition"] = CONDITIONS.get(str(item["status"]).strip().lower(), "unknown")

        registry_id = item.get("registryid")
        tags["source"] = self.source
        tags["source_ref"] = f"{DATASET_URL}?refine.registryid={registry_id}"
        tags["source_license"] = "Open Data License"
        if registry_id is not None:
            tags["registry_id"] = registry_id
        return tags
