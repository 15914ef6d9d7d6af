"""
Logger Utility
==============

Context-aware console logging for the orchestration layer.

Every component creates its own logger with a short context name so that
interleaved output from the request queue, the classifier and the tools can
be told apart:

    [2026-10-19T10:30:00] [INFO] [ChatClient] Dispatching req_1729...
    [2026-10-19T10:30:01] [WARN] [Agent] Tool WebSearch failed

Features:
1. Log levels (DEBUG, INFO, WARNING, ERROR) filtered by LOG_LEVEL
2. Colour-coded, timestamped output
3. Child loggers for nested operations ("Agent:Tools")
4. Optional structured data printed as JSON below the line

Usage:
    from chatpilot.utils.logger import Logger

    logger = Logger("ChatClient")
    logger.info("Request queued", {"id": "req_1", "priority": 1})

    retry_logger = logger.child("Retry")
    retry_logger.warning("Backing off", {"delay_ms": 2000})
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    """Numeric log levels. Messages below the configured level are dropped."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for coloured terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def _get_log_level_from_env() -> LogLevel:
    """
    Read LOG_LEVEL from the environment.

    Unknown values fall back to INFO.
    """
    return _LEVEL_NAMES.get(os.getenv("LOG_LEVEL", "INFO").upper(), LogLevel.INFO)


# Set from Config.log_level; applies to every Logger, including module-level ones
_level_override: LogLevel | None = None


def set_log_level(level_name: str | None) -> None:
    """
    Override the level of all loggers. None goes back to LOG_LEVEL.

    Unknown names fall back to INFO.
    """
    global _level_override
    if level_name is None:
        _level_override = None
    else:
        _level_override = _LEVEL_NAMES.get(level_name.upper(), LogLevel.INFO)


class Logger:
    """
    A logger bound to a component name.

    Example:
        logger = Logger("Calculator")
        logger.debug("Evaluating expression", {"expression": "12*7"})

        try:
            ...
        except httpx.HTTPError as e:
            logger.error("Search request failed", e)
    """

    def __init__(self, context: str = ""):
        """
        Args:
            context: Prefix shown on every line (e.g. "Agent", "Intent")
        """
        self.context = context
        self._min_level = _get_log_level_from_env()

    def child(self, child_context: str) -> "Logger":
        """
        Create a logger for a sub-operation.

        Logger("Agent").child("Tools") prints as [Agent:Tools].
        """
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context)

    def is_enabled_for(self, level: LogLevel) -> bool:
        """Check whether a message at this level would be printed."""
        return level >= (_level_override or self._min_level)

    def _format_message(self, level: str, message: str, color: str) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""

        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if not self.is_enabled_for(level):
            return

        stream = sys.stderr if level >= LogLevel.ERROR else sys.stdout
        print(self._format_message(level_name, message, color), file=stream)

        if data:
            data_str = json.dumps(data, indent=2, default=str)
            print(f"{Colors.DIM}{data_str}{Colors.RESET}", file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Detailed tracing, shown only with LOG_LEVEL=DEBUG."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """General operational messages."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Something degraded but the operation carries on."""
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(
        self,
        message: str,
        error: Exception | None = None,
        data: dict[str, Any] | None = None
    ) -> None:
        """
        Log a failure.

        Args:
            message: What failed
            error: Optional exception; its type and message are included
            data: Optional extra fields merged into the output
        """
        details: dict[str, Any] = {}
        if error:
            details["error_type"] = type(error).__name__
            details["error_message"] = str(error)
        if data:
            details.update(data)
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, details or None)


# Package-level logger for messages with no natural component
logger = Logger("ChatPilot")
