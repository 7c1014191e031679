"""Exporter registry for run report formats."""

from ..exceptions import ExporterNotFoundError
from .base import BaseExporter
from .json_exporter import JSONExporter
from .text_exporter import TextExporter, render_summary

# Exporter registry - register new exporters here
_EXPORTER_REGISTRY: dict[str, type[BaseExporter]] = {}


def register_exporter(name: str, exporter_class: type[BaseExporter]) -> None:
    """Register a new exporter class under ``name``."""
    _EXPORTER_REGISTRY[name.lower()] = exporter_class


def get_exporter(name: str) -> type[BaseExporter]:
    """
    Get an exporter class by name.

    Raises:
        ExporterNotFoundError: If exporter is not registered
    """
    key = name.lower()
    if key not in _EXPORTER_REGISTRY:
        available = sorted(_EXPORTER_REGISTRY.keys())
        available_display = ", ".join(available) if available else "none"
        raise ExporterNotFoundError(
            f"Exporter '{name}' is not registered. Available exporters: {available_display}."
        )
    return _EXPORTER_REGISTRY[key]


def list_exporters() -> list[str]:
    """Return list of registered exporter names."""
    return sorted(_EXPORTER_REGISTRY.keys())


register_exporter("json", JSONExporter)
register_exporter("text", TextExporter)

__all__ = [
    "BaseExporter",
    "JSONExporter",
    "TextExporter",
    "get_exporter",
    "list_exporters",
    "register_exporter",
    "render_summary",
]
