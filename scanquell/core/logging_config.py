"""Logging configuration for ScanQuell.

Two files are written under the logs directory:

    main.log     everything logged under the ``scanquell`` logger tree
    actions.log  one line per mutation or restore, tagged with the run
                 (``apply <generation>`` or ``undo <source>``) it belongs to

The run tag lets a line in actions.log be traced back to the snapshot
generation that can reverse it.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

DETAILED_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s"
SIMPLE_FORMAT = "%(levelname)s: %(message)s"
ACTION_FORMAT = "%(asctime)s | %(levelname)-8s | %(run)s | %(message)s"

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
DEFAULT_BACKUP_COUNT = 3

ACTION_LOGGER_NAME = "scanquell.actions.log"
NO_RUN = "-"


class RunContextFilter(logging.Filter):
    """Stamps each action record with the current run tag."""

    def __init__(self) -> None:
        super().__init__()
        self.run = NO_RUN
        self.dry_run = False

    def filter(self, record: logging.LogRecord) -> bool:
        record.run = f"{self.run} (dry run)" if self.dry_run else self.run
        return True


class ScanQuellLogger:
    """Owns the handlers of the main and action logs.

    A single instance is shared by the process; ``setup`` may be called
    again (tests do) and replaces the handlers instead of stacking them.
    """

    _instance: Optional["ScanQuellLogger"] = None
    _initialized: bool = False

    def __new__(cls) -> "ScanQuellLogger":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return

        self.logs_dir: Path | None = None
        self.log_level: int = DEFAULT_LOG_LEVEL
        self.run_context = RunContextFilter()
        self._initialized = True

    def setup(
        self,
        logs_dir: Path,
        log_level: int = DEFAULT_LOG_LEVEL,
        console_output: bool = True,
    ) -> None:
        """Attach file and console handlers.

        Args:
            logs_dir: Directory for main.log and actions.log.
            log_level: Level for main.log and the console.
            console_output: Whether to also log to stderr.
        """
        self.logs_dir = logs_dir
        self.log_level = log_level
        logs_dir.mkdir(parents=True, exist_ok=True)

        main_logger = logging.getLogger("scanquell")
        main_logger.setLevel(log_level)
        self._replace_handlers(main_logger)
        main_logger.addHandler(
            self._rotating_handler(logs_dir / "main.log", DETAILED_FORMAT, log_level)
        )
        if console_output:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(log_level)
            console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
            main_logger.addHandler(console_handler)

        # Actions are always recorded at INFO, whatever the console shows
        action_logger = logging.getLogger(ACTION_LOGGER_NAME)
        action_logger.setLevel(logging.INFO)
        action_logger.propagate = False
        self._replace_handlers(action_logger)
        action_handler = self._rotating_handler(
            logs_dir / "actions.log", ACTION_FORMAT, logging.INFO
        )
        action_handler.addFilter(self.run_context)
        action_logger.addHandler(action_handler)

    def _replace_handlers(self, logger: logging.Logger) -> None:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def _rotating_handler(self, log_path: Path, format_string: str, level: int) -> RotatingFileHandler:
        handler = RotatingFileHandler(
            log_path,
            maxBytes=DEFAULT_MAX_BYTES,
            backupCount=DEFAULT_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(format_string))
        return handler

    def get_logger(self, name: str = "main") -> logging.Logger:
        """Get the main logger, the action logger, or a child of main."""
        if name == "main":
            return logging.getLogger("scanquell")
        if name == "actions":
            return logging.getLogger(ACTION_LOGGER_NAME)
        return logging.getLogger(f"scanquell.{name}")


_logger_manager = ScanQuellLogger()


def setup_logging(
    logs_dir: Path,
    log_level: int = DEFAULT_LOG_LEVEL,
    console_output: bool = True,
) -> None:
    """Initialize the logging system. Called once by the entry point."""
    _logger_manager.setup(logs_dir, log_level, console_output)


def get_logger(name: str = "main") -> logging.Logger:
    """Get a logger instance ("main", "actions" or a child name)."""
    return _logger_manager.get_logger(name)


def set_run_context(run: str, dry_run: bool = False) -> None:
    """Tag subsequent action log lines with the run they belong to.

    Args:
        run: Run tag, e.g. "apply 20261018-101500-123456" or "undo latest".
        dry_run: Whether the run only simulates its mutations.
    """
    _logger_manager.run_context.run = run or NO_RUN
    _logger_manager.run_context.dry_run = dry_run


def log_action(
    action_type: str,
    resource_name: str,
    success: bool,
    details: str = "",
) -> None:
    """Record a mutation or restore of one resource in actions.log.

    Args:
        action_type: What was done (SET_STARTUP, STOP, RESTORE, ...).
        resource_name: Name of the affected resource.
        success: Whether the call succeeded.
        details: Additional details about the call.
    """
    logger = get_logger("actions")
    status = "SUCCESS" if success else "FAILED"
    message = f"{action_type} | {resource_name} | {status}"
    if details:
        message += f" | {details}"

    if success:
        logger.info(message)
    else:
        logger.error(message)
