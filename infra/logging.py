"""
Bashbot Centralized Logging
---------------------------
Structured logging with invocation_id propagation.

Design:
- Every inbound chat message gets an invocation_id (its Slack timestamp)
- invocation_id is stamped on every record through a logging filter
- Text output goes through Rich; JSON output is one object per line
- Severity discipline: INFO=state, WARNING=recoverable, ERROR=delivery failure

Usage:
    from infra.logging import get_logger, InvocationContext

    logger = get_logger("dispatcher")

    with InvocationContext(event_ts):
        logger.info("command detected")
"""

import contextvars
import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


ROOT_LOGGER = "bashbot"

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_invocation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "invocation_id", default=None
)


def generate_invocation_id() -> str:
    return f"inv_{uuid.uuid4().hex[:12]}"


def get_invocation_id() -> Optional[str]:
    """Get the current invocation ID from context."""
    return _invocation_id_var.get()


class InvocationContext:
    """
    Context manager scoping logs to one invocation.

    Usage:
        with InvocationContext(event_ts) as invocation_id:
            logger.info("Processing...")
    """

    def __init__(self, invocation_id: Optional[str] = None):
        self._invocation_id = invocation_id or generate_invocation_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = _invocation_id_var.set(self._invocation_id)
        return self._invocation_id

    def __exit__(self, *args) -> None:
        if self._token is not None:
            _invocation_id_var.reset(self._token)


class InvocationIdFilter(logging.Filter):
    """Logging filter that adds invocation_id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "invocation_id", None) is None:
            record.invocation_id = get_invocation_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured output."""

    EXTRA_FIELDS = ("details", "tool", "channel", "user")

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "invocation_id": getattr(record, "invocation_id", "-"),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key in self.EXTRA_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)

        return json.dumps(entry, default=str)


def resolve_level(level: str) -> Optional[int]:
    """Map a configured level name to a logging level, or None if unknown."""
    return LEVELS.get((level or "").strip().lower())


def configure_logging(level: str = "info", fmt: str = "text",
                      console: Optional[Console] = None) -> logging.Logger:
    """
    Configure the bashbot logger tree.

    Args:
        level: debug | info | warn | error (anything else: info, with a warning)
        fmt: "json" for JSON lines, anything else for Rich text output
        console: Rich console to log to (defaults to stdout)
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    resolved = resolve_level(level)
    root_logger.setLevel(resolved if resolved is not None else logging.INFO)
    root_logger.handlers.clear()
    root_logger.propagate = False

    if fmt == "json":
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
    else:
        handler = RichHandler(
            console=console or Console(file=sys.stdout),
            rich_tracebacks=True,
            show_path=False,
            log_time_format="[%Y-%m-%d %H:%M:%S]",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))

    handler.addFilter(InvocationIdFilter())
    root_logger.addHandler(handler)

    if resolved is None:
        root_logger.warning(f"Invalid log-level (setting to info level): {level}")
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger in the bashbot namespace.

    Args:
        name: Logger name (prefixed with 'bashbot.' if not already)
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
