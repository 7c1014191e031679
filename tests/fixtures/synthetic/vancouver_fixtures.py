"""Synthetic City of Vancouver public-art open data records."""

from __future__ import annotations

from typing import Any

PUBLIC_ART_RECORD: dict[str, Any] = {
    "registryid": 94,
    "title_of_work": "Gate to the Northwest Passage",
    "artists": ["27"],
    "type": "Sculpture",
    "status": "In place",
    "sitename": "Vanier Park",
    "siteaddress": "1000 Chestnut Street",
    "primarymaterial": "Cor-ten Steel",
    "neighbourhood": "Kitsilano",
    "geo_local_area": "Kitsilano",
    "ownership": "City of Vancouver",
    "yearofinstallation": "1980",
    "descriptionofwork": "A large square steel frame facing English Bay.",
    "artistprojectstatement": "Commemorates the voyage of Captain Vancouver.",
    "locationonsite": "Near the Maritime Museum",
    "photourl": "https://opendata.vancouver.ca/photos/94.jpg",
    "photocredits": "City of Vancouver",
    "geo_point_2d": {"lat": 49.2771, "lon": -123.1446},
}

MURAL_RECORD: dict[str, Any] = {
    "registryid": 512,
    "title_of_work": None,
    "artists": None,
    "type": "Mural painting",
    "status": "Removed",
    "primarymaterial": "Acrylic paint",
    "yearofinstallation": "1750",
    "geo_point_2d": {"lat": 49.2633, "lon": -123.1007},
}

MISSING_POINT_RECORD: dict[str, Any] = {
    "registryid": 77,
    "title_of_work": "Lost Object",
}

ARTIST_NAMES: dict[str, str] = {"27": "Alan Chung Hung"}


def dataset(*records: dict[str, Any]) -> list[dict[str, Any]]:
    return list(records) or [PUBLIC_ART_RECORD, MURAL_RECORD]
