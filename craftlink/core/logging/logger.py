"""
CraftLink Logging Subsystem

Purpose
-------
Provide the process-wide logging sink that every other component writes to:

- Structured JSON logs for aggregation and analysis.
- LogContext-based propagation of command context via ContextVars.
- Async-safe logging via a QueueHandler + QueueListener architecture so the
  event loop never blocks on file I/O.
- Hybrid output:
  - Console handler (JSON in production, colored human text in dev).
  - Rotating JSON file handler with ~24h retention for local backup.

Responsibilities
----------------
- Initialize and tear down the global logging stack.
- Enrich all log records with contextual fields:
  - user_id, guild_id, command
  - correlation_id, component, operation
- Provide simple helper APIs: get_logger(), LogContext.

Design Decisions
----------------
- JSONFormatter is the canonical representation.
- Extra fields passed via `logger.info("msg", extra={...})` are merged into JSON.
- A bounded log queue drops records instead of blocking during log storms.
- setup_logging() is idempotent; the Supervisor calls it before anything
  else logs, and a failure there aborts startup.

Dependencies
------------
- craftlink.core.config.config.Config
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import (
    QueueHandler,
    QueueListener,
    TimedRotatingFileHandler,
)
from pathlib import Path
from typing import Any, Dict, Optional

from craftlink.core.config.config import Config


_request_context: ContextVar[Dict[str, Any]] = ContextVar(
    "request_context",
    default={},
)


# ============================================================================
# Config / Environment
# ============================================================================


@dataclass(frozen=True, slots=True)
class LoggerConfig:
    """Configuration for the logging subsystem."""

    CONSOLE_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s"
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    DAILY_BASENAME: str = "craftlink.json.log"
    DAILY_BACKUP_COUNT: int = 1

    QUEUE_MAX_SIZE: int = 10_000

    @property
    def environment(self) -> str:
        return str(Config.ENVIRONMENT).lower()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def logs_dir(self) -> Path:
        return Path(Config.LOGS_DIR).resolve()

    @property
    def log_level(self) -> int:
        level_name = Config.LOG_LEVEL if isinstance(Config.LOG_LEVEL, str) else "INFO"
        return getattr(logging, level_name.upper(), logging.INFO)

    @property
    def use_json(self) -> bool:
        if Config.LOG_JSON is None:
            return self.is_production
        return bool(Config.LOG_JSON)

    @property
    def use_colors(self) -> bool:
        if self.is_production or self.use_json:
            return False
        return bool(Config.LOG_COLORS) and sys.stdout.isatty()


LOGGER_CONFIG = LoggerConfig()


@dataclass(slots=True)
class LoggingMetrics:
    records_enqueued: int = 0
    records_dropped: int = 0
    listener_errors: int = 0


_logging_metrics: LoggingMetrics = LoggingMetrics()


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context: Dict[str, Any] = _request_context.get({})

        record.user_id = context.get("user_id", "N/A")
        record.guild_id = context.get("guild_id", "N/A")
        record.command = context.get("command", "N/A")
        record.correlation_id = context.get("correlation_id", "N/A")
        record.component = context.get("component") or record.name.split(".", 1)[0]
        record.operation = context.get("operation", "N/A")

        return True


class ColoredFormatter(logging.Formatter):
    COLORS: Dict[str, str] = {
        "DEBUG": "\033[90m",
        "INFO": "\033[94m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[91m\033[1m",
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        original = record.levelname
        prefix = self.COLORS.get(original, "")
        reset = self.COLORS["RESET"] if prefix else ""

        if prefix:
            record.levelname = f"{prefix}{original}{reset}"

        try:
            return super().format(record)
        finally:
            record.levelname = original


class JSONFormatter(logging.Formatter):
    STANDARD_ATTRS = {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    }

    CONTEXT_ATTRS = {
        "user_id",
        "guild_id",
        "command",
        "correlation_id",
        "component",
        "operation",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        created_dt = datetime.fromtimestamp(record.created, tz=timezone.utc)

        log_data: Dict[str, Any] = {
            "timestamp": created_dt.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for attr in self.CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value not in (None, "N/A"):
                log_data[attr] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra: Dict[str, Any] = {}
        for key, val in record.__dict__.items():
            if key in self.STANDARD_ATTRS or key in self.CONTEXT_ATTRS:
                continue
            if key.startswith("_"):
                continue
            if key in {"levelname", "name", "message", "asctime"}:
                continue
            extra[key] = val

        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, ensure_ascii=False, default=str)


# ============================================================================
# Queue Handler & Listener
# ============================================================================


class CraftLinkQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _logging_metrics.records_enqueued += 1

        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _logging_metrics.records_dropped += 1
            sys.stderr.write("CraftLink logging queue full; dropping log record.\n")


class CraftLinkQueueListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _logging_metrics.listener_errors += 1
        sys.stderr.write("CraftLink logging handler error while processing record.\n")


# ============================================================================
# Global Setup
# ============================================================================

_queue_listener: Optional[QueueListener] = None


def _build_console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(LOGGER_CONFIG.log_level)

    if LOGGER_CONFIG.use_json:
        handler.setFormatter(JSONFormatter())
    elif LOGGER_CONFIG.use_colors:
        handler.setFormatter(
            ColoredFormatter(
                fmt=LOGGER_CONFIG.CONSOLE_FORMAT,
                datefmt=LOGGER_CONFIG.DATE_FORMAT,
            )
        )
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt=LOGGER_CONFIG.CONSOLE_FORMAT,
                datefmt=LOGGER_CONFIG.DATE_FORMAT,
            )
        )

    return handler


def _build_daily_file_handler() -> logging.Handler:
    LOGGER_CONFIG.logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = LOGGER_CONFIG.logs_dir / LOGGER_CONFIG.DAILY_BASENAME

    handler = TimedRotatingFileHandler(
        filename=str(log_file),
        when="midnight",
        interval=1,
        backupCount=LOGGER_CONFIG.DAILY_BACKUP_COUNT,
        encoding="utf-8",
        utc=True,
    )
    handler.setLevel(LOGGER_CONFIG.log_level)
    handler.setFormatter(JSONFormatter())
    return handler


def is_logging_initialized() -> bool:
    return bool(getattr(logging.getLogger(), "_craftlink_logging_initialized", False))


def setup_logging() -> None:
    """Install the queue-backed logging stack on the root logger."""
    global _queue_listener, _logging_metrics

    root = logging.getLogger()

    if is_logging_initialized():
        return

    _logging_metrics = LoggingMetrics()

    root.setLevel(LOGGER_CONFIG.log_level)

    console = _build_console_handler()
    file_handler = _build_daily_file_handler()

    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(LOGGER_CONFIG.QUEUE_MAX_SIZE)

    _queue_listener = CraftLinkQueueListener(
        log_queue,
        console,
        file_handler,
        respect_handler_level=True,
    )
    _queue_listener.start()

    queue_handler = CraftLinkQueueHandler(log_queue)
    queue_handler.setLevel(LOGGER_CONFIG.log_level)
    # Context fields are resolved on the emitting task, before the record is queued
    queue_handler.addFilter(ContextFilter())

    root.addHandler(queue_handler)

    for noisy in ("discord", "discord.http", "discord.gateway", "discord.client", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    setattr(root, "_craftlink_logging_initialized", True)
    setattr(root, "_craftlink_queue_handler", queue_handler)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": LOGGER_CONFIG.environment,
            "log_level": logging.getLevelName(LOGGER_CONFIG.log_level),
            "json": LOGGER_CONFIG.use_json,
            "colors": LOGGER_CONFIG.use_colors,
            "logs_dir": str(LOGGER_CONFIG.logs_dir),
        },
    )


def shutdown_logging() -> None:
    """Stop the queue listener and flush/close CraftLink handlers."""
    global _queue_listener

    root = logging.getLogger()
    log = logging.getLogger(__name__)

    if not is_logging_initialized():
        return

    log.info(
        "Shutting down logging subsystem.",
        extra={"logging_metrics": asdict(get_logging_metrics())},
    )

    if _queue_listener:
        try:
            _queue_listener.stop()
        except Exception:
            log.exception("Error while stopping logging queue listener.")
        finally:
            _queue_listener = None

    queue_handler = getattr(root, "_craftlink_queue_handler", None)
    if queue_handler is not None:
        queue_handler.flush()
        queue_handler.close()
        root.removeHandler(queue_handler)

    setattr(root, "_craftlink_logging_initialized", False)
    setattr(root, "_craftlink_queue_handler", None)


def get_logging_metrics() -> LoggingMetrics:
    return _logging_metrics


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Scope contextual fields (user, guild, command...) onto every log record
    emitted inside a `with` / `async with` block.
    """

    def __init__(
        self,
        user_id: Optional[int] = None,
        guild_id: Optional[int] = None,
        command: Optional[str] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.context: Dict[str, Any] = {
            "user_id": str(user_id) if user_id is not None else "N/A",
            "guild_id": str(guild_id) if guild_id is not None else "N/A",
            "command": command or "N/A",
            "component": component,
            "operation": operation or "N/A",
            "correlation_id": correlation_id or self._generate_correlation_id(),
            **extra,
        }

        self._token: Optional[Token[Dict[str, Any]]] = None

    @staticmethod
    def _generate_correlation_id() -> str:
        return str(uuid.uuid4())[:8]

    def __enter__(self) -> "LogContext":
        self._token = _request_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _request_context.reset(self._token)

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def get_log_context() -> Dict[str, Any]:
    return dict(_request_context.get({}))
