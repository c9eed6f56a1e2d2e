"""
Logging configuration for the UNO relay and engine.

Provides:
- JSONFormatter for production (one JSON object per line)
- Colorized human-readable formatter for development
- Connection-scoped context (connection_id, room_code) for relay logs
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

# Set by the WebSocket endpoint for the lifetime of one connection
connection_id_var: ContextVar[Optional[str]] = ContextVar("connection_id", default=None)

CONTEXT_FIELDS = ("connection_id", "room_code", "player_name")


def _record_context(record: logging.LogRecord) -> dict:
    context = {}
    connection_id = connection_id_var.get()
    if connection_id:
        context["connection_id"] = connection_id
    for name in CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value:
            context[name] = value
    return context


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for production log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_record_context(record))

        # Source location for errors
        if record.levelno >= logging.ERROR:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Human-readable formatter for development.

    Example:
        14:02:11.532 INFO     handlers [conn=1f0c2a9b, room=K3Q9ZT] - Alice joined
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        context_parts = []
        context = _record_context(record)
        if "connection_id" in context:
            context_parts.append(f"conn={context['connection_id'][:8]}")
        if "room_code" in context:
            context_parts.append(f"room={context['room_code']}")
        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        output = (
            f"{timestamp} {color}{record.levelname:8}{reset} "
            f"{record.name}{context_str} - {record.getMessage()}"
        )
        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)
        return output


def setup_logging(
    level: str = "INFO",
    environment: str = "development",
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        environment: Environment name (production uses JSON, else human-readable).
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if environment == "production":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={level}, environment={environment}"
    )


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that adds relay context to every record.

    Usage:
        log = get_logger(__name__).with_context(connection_id=ctx.connection_id)
        log.with_context(room_code=room.code).info("Member joined")
    """

    def __init__(self, logger: logging.Logger, extra: Optional[dict] = None):
        super().__init__(logger, extra or {})

    def with_context(self, **kwargs) -> "ContextLogger":
        """Return a new adapter with ``kwargs`` merged into the context."""
        return ContextLogger(self.logger, {**self.extra, **kwargs})

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger (typically ``get_logger(__name__)``)."""
    return ContextLogger(logging.getLogger(name))
