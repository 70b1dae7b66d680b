"""Structured logging setup for transcript-relay.

Provides a human-readable console handler and an optional rotating file of
one JSON object per line, with ``extra=`` fields folded in.
"""

import json
import logging
import logging.handlers
from collections.abc import Iterable
from pathlib import Path

ROOT_LOGGER = "transcript_relay"

# Components living under transcript_relay.parsing.
PARSER_COMPONENTS = {"claude_code", "codex", "dispatcher", "text_extraction"}

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "exc_info",
    "exc_text",
    "stack_info",
    "asctime",
    "taskName",
}


class JsonFormatter(logging.Formatter):
    """Formats records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add extra fields if present
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in entry:
                continue
            try:
                json.dumps(value)  # Ensure serializable
                entry[key] = value
            except (TypeError, ValueError):
                entry[key] = str(value)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False)


def component_logger_name(component: str) -> str:
    """Map a debug component token to its logger name."""
    component = component.strip().replace("-", "_")
    if component in PARSER_COMPONENTS:
        return f"{ROOT_LOGGER}.parsing.{component}"
    return f"{ROOT_LOGGER}.{component}"


class LoggingManager:
    """Configures the ``transcript_relay`` logger hierarchy."""

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: str | Path | None = None,
        debug_components: Iterable[str] = (),
    ):
        """Initialize logging.

        Args:
            log_level: Console log level
            log_dir: Directory for ``relay.log``; None disables file logging
            debug_components: Components whose loggers run at DEBUG
                (e.g. ``codex``, ``change_detector``)
        """
        self.log_level = getattr(logging, log_level.upper())
        self.log_dir = Path(log_dir) if log_dir else None
        self.debug_components = [c for c in debug_components if c.strip()]

        self.logger = self._setup_logger()

        for component in self.debug_components:
            name = component_logger_name(component)
            logging.getLogger(name).setLevel(logging.DEBUG)
            self.logger.info(f"Debug logging enabled for {name}")

    def _setup_logger(self) -> logging.Logger:
        logger = logging.getLogger(ROOT_LOGGER)
        logger.setLevel(self.log_level)
        logger.propagate = False  # Don't propagate to root - we have our own handlers

        # Remove existing handlers
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        # Console handler - human readable
        console_handler = logging.StreamHandler()
        # Loggers do the level filtering; component loggers may sit below log_level
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(console_handler)

        # File handler - structured JSON
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / "relay.log",
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(JsonFormatter())
            logger.addHandler(file_handler)

        return logger
