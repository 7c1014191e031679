"""Tests for structured logging helpers."""

from __future__ import annotations

import logging

from mass_importer.utils.logging import (
    DEFAULT_CONTEXT,
    ContextualFormatter,
    LOG_FORMAT,
    log_item_outcome,
    setup_logger,
)


class TestSetupLogger:
    """Adapter defaults and binding."""

    def test_context_defaults(self):
        logger = setup_logger("mass_importer.tests.context", context={"stage": "loading"})

        assert logger.extra["stage"] == "loading"
        assert logger.extra["session_id"] == "-"

    def test_bind_adds_context_without_mutating(self):
        logger = setup_logger("mass_importer.tests.bind")
        bound = logger.bind(session_id="public-art-20240101T000000Z")

        assert bound.extra["session_id"] == "public-art-20240101T000000Z"
        assert logger.extra["session_id"] == "-"

    def test_per_call_extra_overrides_defaults(self, caplog):
        logger = setup_logger("mass_importer.tests.extra", context={"stage": "loading"})

        with caplog.at_level(logging.INFO, logger="mass_importer.tests.extra"):
            logger.info("hello", extra={"stage": "submitting"})

        assert caplog.records[-1].stage == "submitting"


class TestLogItemOutcome:
    """Per-item outcome lines."""

    def test_levels_follow_status(self, caplog):
        logger = setup_logger("mass_importer.tests.outcome")

        with caplog.at_level(logging.INFO, logger="mass_importer.tests.outcome"):
            log_item_outcome(logger, item_index=0, source_id="a", status="succeeded", outcome="created", duration_ms=5)
            log_item_outcome(logger, item_index=1, source_id="b", status="skipped", outcome="invalid", duration_ms=1)
            log_item_outcome(logger, item_index=2, source_id="c", status="failed", outcome="failed", duration_ms=9, category="network")

        levels = [record.levelno for record in caplog.records]
        assert levels == [logging.INFO, logging.WARNING, logging.ERROR]
        assert caplog.records[2].item_index == 2
        assert 'context={"category": "network"}' in caplog.records[2].getMessage()


def test_formatter_fills_missing_context():
    formatter = ContextualFormatter(LOG_FORMAT, DEFAULT_CONTEXT)
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "message", None, None)

    line = formatter.format(record)

    assert "session_id=-" in line
    assert line.endswith("| message")
