"""Logging setup for linkbin.

Console output goes to stderr so that stdout stays reserved for command
output such as the JSON printed by ``linkbin tokens``.
"""

import logging
import os
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

CLI_FORMAT = "%(message)s"
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class LoggingConfig:
    """Log level and optional log file."""

    level: str = "INFO"
    log_file: Path | None = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 3

    @classmethod
    def from_environment(cls) -> "LoggingConfig":
        """Read LOG_LEVEL and LOG_FILE. No file is written unless LOG_FILE is set."""
        log_file = os.getenv("LOG_FILE")
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=Path(log_file) if log_file else None,
        )


def setup_logging(
    config: LoggingConfig | None = None,
    cli_mode: bool = False,
    verbose: bool = False,
) -> None:
    """Route log records to stderr and, if configured, a rotating file.

    Handlers already on the root logger are replaced.

    Args:
        config: Optional logging configuration. If None, loads from environment.
        cli_mode: If True, print bare messages without timestamps
        verbose: If True, enable DEBUG level logging (overrides config level)
    """
    if config is None:
        config = LoggingConfig.from_environment()

    level = logging.DEBUG if verbose else getattr(logging, config.level, logging.INFO)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(
        logging.Formatter(CLI_FORMAT if cli_mode else DETAILED_FORMAT)
    )
    handlers: list[logging.Handler] = [console]

    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
        )
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # Connection chatter from the Plaid SDK's HTTP pool
    logging.getLogger("urllib3").setLevel(logging.WARNING)
