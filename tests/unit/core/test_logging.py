"""Tests for structured logging configuration."""

import json
import logging

import pytest

from exctrace.core.config import LoggingSettings
from exctrace.core.logging import archive_context, configure_from_settings, configure_logging, get_logger


class TestLoggingConfig:
    def test_get_logger_returns_logger(self) -> None:
        logger = get_logger("test")
        assert hasattr(logger, "info")
        assert hasattr(logger, "bind")

    def test_logger_outputs_structured(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True)
        logger = get_logger("test")

        logger.info("record_overflowed", tx_hash="0xabc", detached_nodes=2)

        log_line = capsys.readouterr().out.strip().split("\n")[-1]
        data = json.loads(log_line)
        assert data["event"] == "record_overflowed"
        assert data["tx_hash"] == "0xabc"
        assert data["detached_nodes"] == 2
        assert "_record" not in data

    def test_logger_console_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=False)
        get_logger("test").info("blob_stored", ref="ab" * 32)
        assert "blob_stored" in capsys.readouterr().out

    def test_stdlib_loggers_emit_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True)
        logging.getLogger("exctrace.core.assembler").warning("Finalizing %d unfinished trace(s)", 2)

        data = json.loads(capsys.readouterr().out.strip().split("\n")[-1])
        assert data["event"] == "Finalizing 2 unfinished trace(s)"
        assert data["level"] == "warning"

    def test_level_filters_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True, level="WARNING")
        get_logger("test").info("hidden")
        assert "hidden" not in capsys.readouterr().out

    def test_noisy_third_party_loggers_silenced(self) -> None:
        configure_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        for name in ("sqlalchemy", "sqlalchemy.engine", "sqlalchemy.pool", "dynaconf"):
            assert logging.getLogger(name).getEffectiveLevel() == logging.WARNING

    def test_configure_from_settings(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_from_settings(LoggingSettings(json_output=True, level="warning"))

        get_logger("test").info("hidden")
        get_logger("test").warning("shown")

        out = capsys.readouterr().out
        assert "hidden" not in out
        assert json.loads(out.strip().split("\n")[-1])["event"] == "shown"


def _last_event(capsys: pytest.CaptureFixture[str]) -> dict[str, object]:
    data: dict[str, object] = json.loads(capsys.readouterr().out.strip().split("\n")[-1])
    return data


class TestLogContext:
    def test_get_logger_binds_context(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True)

        get_logger("test", bucket="exception_bucket").info("blob_stored")

        assert _last_event(capsys)["bucket"] == "exception_bucket"

    def test_archive_context_reaches_stdlib_and_structlog(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True)

        with archive_context(tx_hash="0xabc", collection="transactions"):
            get_logger("test").info("inside")
            inside = _last_event(capsys)
            logging.getLogger("exctrace.test").warning("stdlib inside")
            stdlib_inside = _last_event(capsys)
        get_logger("test").info("outside")
        outside = _last_event(capsys)

        assert inside["tx_hash"] == "0xabc"
        assert inside["collection"] == "transactions"
        assert stdlib_inside["collection"] == "transactions"
        assert "collection" not in outside

    def test_archive_context_nests(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True)

        with archive_context(collection="transactions"), archive_context(bucket="exception_bucket"):
            get_logger("test").info("nested")

        data = _last_event(capsys)
        assert (data["collection"], data["bucket"]) == ("transactions", "exception_bucket")
