"""Tests for structlog setup."""

import json
import logging

import pytest
import structlog

from poker_payments.logging_config import configure_logging


pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def restore_structlog():
    yield
    structlog.reset_defaults()
    configure_logging("INFO")


class TestConfigureLogging:
    @pytest.mark.parametrize(
        "level,expected",
        [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("loud", logging.INFO)],
    )
    def test_root_level(self, level, expected):
        configure_logging(level)
        assert logging.getLogger().level == expected

    def test_json_rendering(self, capsys):
        configure_logging("INFO", json_logs=True)

        structlog.get_logger("poker_payments.test").info("refund_created", refund_id="re_1")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "refund_created"
        assert record["refund_id"] == "re_1"
        assert record["level"] == "info"
        assert "timestamp" in record
