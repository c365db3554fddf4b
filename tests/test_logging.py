"""
Tests for structured logging.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from esi.logging import (
    JSONFormatter,
    get_character_id,
    get_logger,
    get_resource,
    log_context,
    setup_logging,
)


class TestLogContext:
    """Tests for scoped logging context."""

    def test_context_is_scoped(self) -> None:
        """Test that values are set inside the block and restored after."""
        assert get_character_id() is None

        with log_context(character_id=90000001, resource="contacts"):
            assert get_character_id() == 90000001
            assert get_resource() == "contacts"

            with log_context(resource="contracts"):
                assert get_character_id() == 90000001
                assert get_resource() == "contracts"

            assert get_resource() == "contacts"

        assert get_character_id() is None
        assert get_resource() is None


class TestJSONFormatter:
    """Tests for the JSON lines formatter."""

    def test_format_includes_context_and_extra(self) -> None:
        """Test that context variables and extra fields are serialized."""
        record = logging.LogRecord("esi.test", logging.INFO, __file__, 1, "Fetched", (), None)
        record.extra = {"count": 3}

        with log_context(character_id=7, resource="market_orders"):
            line = JSONFormatter().format(record)

        data = json.loads(line)
        assert data["message"] == "Fetched"
        assert data["level"] == "INFO"
        assert data["character_id"] == 7
        assert data["resource"] == "market_orders"
        assert data["extra"] == {"count": 3}


class TestSetupLogging:
    """Tests for handler setup."""

    def test_file_logging(self, temp_dir: Path) -> None:
        """Test that keyword arguments end up in the JSON log file."""
        log_file = temp_dir / "logs" / "esi.jsonl"
        setup_logging(log_level="DEBUG", log_file=log_file, console_output=False)

        logger = get_logger("tests")
        with log_context(character_id=90000001):
            logger.info("Using cached data", key="90000001")

        for handler in logging.getLogger("esi").handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().splitlines()[-1])
        assert logger.name == "esi.tests"
        assert entry["message"] == "Using cached data"
        assert entry["extra"]["key"] == "90000001"
        assert entry["extra"]["character_id"] == 90000001

        for handler in logging.getLogger("esi").handlers:
            handler.close()
        setup_logging(console_output=False)
