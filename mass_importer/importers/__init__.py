"""Importer registry for the supported source formats."""

from ..exceptions import ImporterNotFoundError
from .base import BaseImporter, ImportBatch, ImporterOptions, LoadedEntry
from .geojson import GeoJSONImporter
from .json_array import JSONArrayImporter
from .vancouver import VancouverImporter

# Importer registry - register new importers here
_IMPORTER_REGISTRY: dict[str, type[BaseImporter]] = {}


def register_importer(name: str, importer_class: type[BaseImporter]) -> None:
    """
    Register a new importer class.

    Args:
        name: Unique identifier for the importer
        importer_class: Importer class to register
    """
    _IMPORTER_REGISTRY[name.lower()] = importer_class


def get_importer(name: str) -> type[BaseImporter]:
    """
    Get an importer class by name.

    Raises:
        ImporterNotFoundError: If importer is not registered
    """
    key = name.lower()
    if key not in _IMPORTER_REGISTRY:
        available = sorted(_IMPORTER_REGISTRY.keys())
        available_display = ", ".join(available) if available else "none"
        raise ImporterNotFoundError(
            f"Importer '{name}' is not registered. Available importers: {available_display}."
        )
    return _IMPORTER_REGISTRY[key]


def list_importers() -> list[str]:
    """Return list of registered importer names."""
    return sorted(_IMPORTER_REGISTRY.keys())


register_importer("geojson", GeoJSONImporter)
register_importer("json", JSONArrayImporter)
register_importer("vancouver", VancouverImporter)

__all__ = [
    "BaseImporter",
    "GeoJSONImporter",
    "ImportBatch",
    "ImporterOptions",
    "JSONArrayImporter",
    "LoadedEntry",
    "VancouverImporter",
    "get_importer",
    "list_importers",
    "register_importer",
]
