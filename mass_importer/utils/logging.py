"""Logging configuration for the mass import pipeline."""

from __future__ import annotations

import json
import logging
import sys
from threading import Lock
from typing import Any, Final

from .config import get_settings

# Define log format with structured context placeholders.
LOG_FORMAT: Final[str] = (
    "%(asctime)s | %(levelname)s | %(name)s | "
    "session_id=%(session_id)s | item=%(item_index)s | source_id=%(source_id)s | "
    "stage=%(stage)s | status=%(status)s | duration_ms=%(duration_ms)s | %(message)s"
)

DEFAULT_CONTEXT: Final[dict[str, str]] = {
    "session_id": "-",
    "item_index": "-",
    "source_id": "-",
    "stage": "-",
    "status": "-",
    "duration_ms": "-",
}

_LOG_CONFIGURED = False
_CONFIG_LOCK: Final = Lock()


class ContextualFormatter(logging.Formatter):
    """Formatter that injects default structured context fields when absent."""

    def __init__(self, fmt: str, defaults: dict[str, str] | None = None) -> None:
        super().__init__(fmt)
        self._defaults = defaults or {}

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        for key, value in self._defaults.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return super().format(record)


def _configure_root_logger() -> None:
    """Configure the root logger exactly once based on global settings."""

    global _LOG_CONFIGURED
    with _CONFIG_LOCK:
        if _LOG_CONFIGURED:
            return

        settings = get_settings()
        resolved_level = getattr(logging, settings.log_level.upper(), logging.INFO)

        root_logger = logging.getLogger()
        root_logger.setLevel(resolved_level)

        formatter = ContextualFormatter(LOG_FORMAT, DEFAULT_CONTEXT)

        if not root_logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(resolved_level)
            handler.setFormatter(formatter)
            root_logger.addHandler(handler)
        else:
            for handler in root_logger.handlers:
                handler.setFormatter(formatter)

        _LOG_CONFIGURED = True


def set_log_level(level: str) -> None:
    """Change the root log level after configuration (used by ``--verbose``)."""

    _configure_root_logger()
    resolved = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)
    for handler in root_logger.handlers:
        handler.setLevel(resolved)


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that lets per-call extras override defaults."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:  # type: ignore[override]
        base_extra = self.extra or {}
        extra = dict(base_extra)
        provided_extra = kwargs.get("extra") or {}
        extra.update(provided_extra)
        kwargs["extra"] = extra
        return msg, kwargs

    def bind(self, **context: Any) -> StructuredLoggerAdapter:
        """Return a new adapter with additional default context."""

        merged = dict(self.extra or {})
        merged.update(context)
        return StructuredLoggerAdapter(self.logger, merged)


def setup_logger(
    name: str,
    *,
    level: str | None = None,
    context: dict[str, Any] | None = None,
) -> StructuredLoggerAdapter:
    """Return a logger configured with the global logging defaults.

    Args:
        name: Logger name to retrieve.
        level: Optional log level override (primarily for tests).
        context: Optional default structured context to include with every entry.

    Returns:
        LoggerAdapter injecting structured defaults for consistent formatting.
    """

    _configure_root_logger()
    logger = logging.getLogger(name)

    if level is not None:
        resolved_value = getattr(logging, level.upper(), logging.INFO)
        logger.setLevel(resolved_value)
    else:
        logger.setLevel(logging.NOTSET)

    adapter_context: dict[str, Any] = dict(DEFAULT_CONTEXT)
    if context:
        for key, value in context.items():
            adapter_context[key] = value

    return StructuredLoggerAdapter(logger, adapter_context)


def log_item_outcome(
    logger: logging.Logger | logging.LoggerAdapter,
    *,
    item_index: int,
    source_id: str,
    status: str,
    outcome: str,
    duration_ms: int,
    **extra_context: Any,
) -> None:
    """
    Log the terminal outcome of one processed record with structured context.

    Args:
        logger: Logger instance
        item_index: Index of the record within the (sliced) input
        source_id: External identifier of the record
        status: Checkpoint status (succeeded, failed, skipped)
        outcome: Pipeline outcome (created, duplicate, merged, ...)
        duration_ms: Processing duration in milliseconds
        **extra_context: Additional context to log
    """
    structured_context: dict[str, Any] = {
        "item_index": item_index,
        "source_id": source_id,
        "status": status,
        "duration_ms": duration_ms,
        "stage": "recording",
    }
    message = f"Item {status} ({outcome})"
    if extra_context:
        message = f"{message} | context={json.dumps(extra_context, default=str, sort_keys=True)}"

    if status == "failed":
        logger.error(message, extra=structured_context)
    elif status == "skipped":
        logger.warning(message, extra=structured_context)
    else:
        logger.info(message, extra=structured_context)
