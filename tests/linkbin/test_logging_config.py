"""Tests for centralized logging configuration."""

import logging
import sys
from collections.abc import Generator
from pathlib import Path
from typing import Any, cast

import pytest

from linkbin.logging.config import LoggingConfig, setup_logging


def _console_handlers() -> list[logging.Handler]:
    return [
        h
        for h in logging.getLogger().handlers
        if isinstance(h, logging.StreamHandler)
        and not isinstance(h, logging.FileHandler)
    ]


class TestSetupLogging:
    """Tests for setup_logging handler configuration."""

    @pytest.fixture(autouse=True)
    def _reset_root_logger(self) -> Generator[None, Any, None]:
        """Remove handlers added during each test to avoid leaking state."""
        root = logging.getLogger()
        original_handlers = list(root.handlers)
        original_level = root.level
        yield
        for h in root.handlers:
            if h not in original_handlers:
                h.close()
        root.handlers = original_handlers
        root.setLevel(original_level)

    @pytest.mark.unit
    @pytest.mark.parametrize("cli_mode", [False, True])
    def test_console_handler_uses_stderr(self, cli_mode: bool) -> None:
        """Console handler must write to stderr, not stdout.

        ``linkbin tokens`` prints JSON on stdout; log lines there would
        corrupt it for anything piping the output.
        """
        setup_logging(config=LoggingConfig(), cli_mode=cli_mode)

        handlers = _console_handlers()
        assert len(handlers) == 1
        stream: object = getattr(cast(Any, handlers[0]), "stream", None)
        assert stream is sys.stderr

    @pytest.mark.unit
    def test_repeated_setup_replaces_handlers(self) -> None:
        setup_logging(config=LoggingConfig())
        setup_logging(config=LoggingConfig())

        assert len(_console_handlers()) == 1

    @pytest.mark.unit
    def test_verbose_enables_debug(self) -> None:
        setup_logging(config=LoggingConfig(level="WARNING"), verbose=True)

        assert logging.getLogger().level == logging.DEBUG

    @pytest.mark.unit
    def test_level_from_config(self) -> None:
        setup_logging(config=LoggingConfig(level="WARNING"))

        assert logging.getLogger().level == logging.WARNING

    @pytest.mark.unit
    def test_file_handler_when_configured(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "linkbin.log"

        setup_logging(config=LoggingConfig(log_file=log_file))
        logging.getLogger("linkbin.test").warning("written to file")

        assert log_file.parent.is_dir()
        assert any(
            isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers
        )
        for h in logging.getLogger().handlers:
            h.flush()
        assert "written to file" in log_file.read_text()

    @pytest.mark.unit
    def test_no_file_handler_by_default(self) -> None:
        setup_logging(config=LoggingConfig())

        assert not any(
            isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers
        )


class TestLoggingConfigFromEnvironment:
    """Tests for LoggingConfig.from_environment."""

    @pytest.mark.unit
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("LOG_FILE", raising=False)

        config = LoggingConfig.from_environment()

        assert config.level == "INFO"
        assert config.log_file is None

    @pytest.mark.unit
    def test_reads_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_FILE", "/tmp/linkbin-test.log")  # noqa: S108

        config = LoggingConfig.from_environment()

        assert config.level == "DEBUG"
        assert config.log_file == Path("/tmp/linkbin-test.log")  # noqa: S108
