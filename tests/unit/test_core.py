"""
Unit tests for the configuration parsers and the logging context.
"""

import asyncio
import json
import logging
import os
from unittest import mock

import pytest

from arise.core.config import Config
from arise.core.exceptions import ConfigurationError
from arise.core.logging import (
    LogContext,
    clear_log_context,
    get_log_context,
    get_logging_health,
    set_log_context,
)
from arise.core.logging.logger import ContextFilter, JSONFormatter


@pytest.fixture
def reload_config():
    """Re-read the real environment once the test's patched env is gone."""
    yield
    Config.load()


@pytest.fixture
def clean_log_context():
    clear_log_context()
    yield
    clear_log_context()


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("arise.modules.game", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ============================================================================
# Config
# ============================================================================


@pytest.mark.unit
class TestConfigParsing:
    def test_safe_int_clamps_and_falls_back(self, reload_config):
        with mock.patch.dict(os.environ, {"ARISE_TEST_INT": "500", "ARISE_TEST_BAD": "abc"}):
            assert Config._safe_int("ARISE_TEST_INT", 20, min_val=1, max_val=200) == 200
            assert Config._safe_int("ARISE_TEST_BAD", 20) == 20
            assert Config._safe_int("ARISE_TEST_MISSING", 7) == 7

    def test_safe_bool_accepts_common_spellings(self, reload_config):
        with mock.patch.dict(
            os.environ, {"A": "yes", "B": "OFF", "C": "maybe"}
        ):
            assert Config._safe_bool("A", False) is True
            assert Config._safe_bool("B", True) is False
            assert Config._safe_bool("C", True) is True

    def test_load_reads_economy_limits(self, reload_config):
        # Arrange
        env = {"MAX_BULK_PURCHASE": "25", "COMMIT_MAX_RETRIES": "0", "MAX_OFFLINE_SECONDS": "60"}

        # Act
        with mock.patch.dict(os.environ, env):
            Config.load()

            # Assert
            assert Config.MAX_BULK_PURCHASE == 25
            assert Config.COMMIT_MAX_RETRIES == 1
            assert Config.MAX_OFFLINE_SECONDS == 60

    def test_validate_rejects_sync_driver_in_production(self, reload_config, monkeypatch):
        monkeypatch.setattr(Config, "_validated", False)
        env = {"ENVIRONMENT": "production", "DATABASE_URL": "postgresql://arise@db/arise"}

        with mock.patch.dict(os.environ, env):
            with pytest.raises(ConfigurationError):
                Config.validate()

    def test_validate_only_warns_outside_production(self, reload_config, monkeypatch):
        monkeypatch.setattr(Config, "_validated", False)
        env = {"ENVIRONMENT": "testing", "DATABASE_URL": "postgresql://arise@db/arise"}

        with mock.patch.dict(os.environ, env):
            Config.validate()

        assert Config._validated is True

    def test_config_summary_masks_connection_strings(self):
        summary = Config.get_config_summary()

        assert summary["database_url_set"] is True
        assert Config.DATABASE_URL not in json.dumps(summary, default=str)
        assert summary["environment"] == "testing"


# ============================================================================
# Logging
# ============================================================================


@pytest.mark.unit
class TestLogContext:
    def test_context_applies_inside_block_only(self, clean_log_context):
        with LogContext(user_id="u1", client_tx_id="tx-9", operation="gather_resource"):
            context = get_log_context()
            assert context["user_id"] == "u1"
            assert context["correlation_id"] == "tx-9"

        assert get_log_context() == {}

    @pytest.mark.asyncio
    async def test_context_propagates_into_tasks(self, clean_log_context):
        async def read_user():
            return get_log_context().get("user_id")

        async with LogContext(user_id="u2", operation="purchase_building"):
            seen = await asyncio.create_task(read_user())

        assert seen == "u2"

    def test_set_log_context_skips_none(self, clean_log_context):
        set_log_context(user_id="u3", operation=None)

        assert get_log_context() == {"user_id": "u3"}

    def test_filter_stamps_context_fields(self, clean_log_context):
        record = _record()

        with LogContext(user_id="u4", client_tx_id="tx-1", operation="allocate_stat"):
            ContextFilter().filter(record)

        assert record.user_id == "u4"
        assert record.client_tx_id == "tx-1"
        assert record.operation == "allocate_stat"

    def test_filter_defaults_outside_context(self, clean_log_context):
        record = _record()

        ContextFilter().filter(record)

        assert record.user_id == "N/A"
        assert record.component == "modules.game"


@pytest.mark.unit
class TestJSONFormatter:
    def test_formats_context_and_extra_fields(self, clean_log_context):
        # Arrange
        record = _record("Transaction committed", version=3)
        with LogContext(user_id="u5", client_tx_id="tx-2", operation="reset_game"):
            ContextFilter().filter(record)

        # Act
        payload = json.loads(JSONFormatter().format(record))

        # Assert
        assert payload["message"] == "Transaction committed"
        assert payload["user_id"] == "u5"
        assert payload["extra"] == {"version": 3}

    def test_logging_is_initialized_on_import(self):
        health = get_logging_health()

        assert health["initialized"] is True
        assert health["records_dropped"] == 0
