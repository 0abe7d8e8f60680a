"""Unit tests for logging utilities."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import orjson
import pytest

from supastorj.utils import create_audit_logger, create_cli_logger, create_null_logger
from supastorj.utils._logging import (
    _create_logger,
    _get_log_level,
    _log_level_from_string,
)

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


def _entries(path: Path) -> list[dict[str, object]]:
    return [orjson.loads(line) for line in path.read_text().splitlines()]


class TestCreateLogger:
    def test_creates_log_directory_if_missing(self, fs: FakeFilesystem) -> None:
        log_path = Path("/logs/test.log")
        assert not log_path.parent.exists()

        _ = _create_logger(str(log_path))

        assert log_path.parent.exists()

    def test_default_format_is_json(self, fs: FakeFilesystem) -> None:
        logger = _create_logger("/logs/test.log", log_level=logging.INFO)

        logger.info("test_event", key="value")

        [entry] = _entries(Path("/logs/test.log"))
        assert entry["event"] == "test_event"
        assert entry["key"] == "value"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_text_format(self, fs: FakeFilesystem) -> None:
        logger = _create_logger(
            "/logs/test.log", log_level=logging.INFO, log_format="text"
        )

        logger.info("test_event", key="value")

        log_content = Path("/logs/test.log").read_text()
        assert "test_event" in log_content
        assert "key=value" in log_content

    def test_filters_below_level(self, fs: FakeFilesystem) -> None:
        logger = _create_logger("/logs/test.log", log_level=logging.WARNING)

        logger.info("hidden")
        logger.warning("shown")

        assert [entry["event"] for entry in _entries(Path("/logs/test.log"))] == [
            "shown"
        ]


class TestLogLevels:
    def test_debug_env_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPASTORJ_DEBUG", "1")

        assert _get_log_level() == logging.DEBUG
        assert _log_level_from_string("error", respect_env=True) == logging.DEBUG
        assert _log_level_from_string("error") == logging.ERROR

    def test_level_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SUPASTORJ_DEBUG", raising=False)
        monkeypatch.setenv("SUPASTORJ_LOG_LEVEL", "warning")

        assert _get_log_level() == logging.WARNING

    def test_unknown_level_defaults_to_info(self) -> None:
        assert _log_level_from_string("chatty") == logging.INFO


class TestCliLogger:
    def test_writes_default_file_with_command(
        self, fs: FakeFilesystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("SUPASTORJ_DEBUG", raising=False)
        root = Path("/project")

        logger = create_cli_logger(command="status", project_root=root)
        logger.info("command_started")

        [entry] = _entries(root / ".supastorj" / "logs" / "cli.log")
        assert entry["command"] == "status"
        assert entry["event"] == "command_started"

    def test_explicit_file_and_level(
        self, fs: FakeFilesystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("SUPASTORJ_DEBUG", raising=False)

        logger = create_cli_logger(level="error", log_file="/var/log/cli.log")
        logger.warning("ignored")
        logger.error("kept")

        assert [entry["event"] for entry in _entries(Path("/var/log/cli.log"))] == [
            "kept"
        ]


class TestAuditLogger:
    def test_records_actions_as_json_lines(self, fs: FakeFilesystem) -> None:
        root = Path("/project")

        logger = create_audit_logger(project_root=root)
        logger.info("service_action", action="start", service="db", result="success")

        [entry] = _entries(root / "logs" / "audit.log")
        assert entry["audit"] is True
        assert entry["action"] == "start"
        assert entry["service"] == "db"
        assert entry["result"] == "success"


class TestNullLogger:
    def test_discards_events(self, fs: FakeFilesystem) -> None:
        logger = create_null_logger()

        logger.error("nothing", key="value")

        assert not Path("/project").exists()
