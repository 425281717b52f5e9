"""
Structured logging for record identity and validation.

Every log event is one JSON object per line, carrying the correlation id of
the submission being processed, the operation name and, for rejections, the
stable error code of the failure.

    logger = get_logger("validation")
    logger.warning("record rejected", operation="validate",
                   error_code="identifier_mismatch", kind="tag")
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

from pubky_app.runtime.config import get_config

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

LOGGER_PREFIX = "pubky_app"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    correlation_id: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str, ensure_ascii=False)


class StructuredHandler(logging.Handler):
    """Logging handler that outputs structured JSON.

    ``stream`` and ``fmt`` default to ``None``: they are then looked up on
    every emit (``sys.stderr`` and ``observability.log_format``), so a config
    file loaded after import still takes effect.
    """

    def __init__(self, stream: Any = None, fmt: Optional[str] = None):
        super().__init__()
        self.stream = stream
        self.fmt = fmt

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = LogEvent(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                level=record.levelname.lower(),
                logger=record.name,
                message=record.getMessage(),
                correlation_id=correlation_id_var.get(),
                operation=getattr(record, "operation", ""),
                duration_ms=getattr(record, "duration_ms", None),
                error_code=getattr(record, "error_code", ""),
                context=getattr(record, "context", {}),
            )

            if record.exc_info:
                event.exception = "".join(traceback.format_exception(*record.exc_info))

            fmt = self.fmt or get_config().observability.log_format.get()
            if fmt == "text":
                line = f"{event.timestamp} {event.level.upper()} {event.logger}: {event.message}"
                if event.error_code:
                    line += f" [{event.error_code}]"
                if event.context:
                    line += " " + " ".join(f"{k}={v}" for k, v in event.context.items())
            else:
                line = event.to_json()

            stream = self.stream if self.stream is not None else sys.stderr
            stream.write(line + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)


class ContentLogger:
    """
    Structured logger for record handling components.

    Automatically includes the correlation id and operation metadata.
    Without an explicit ``level`` the threshold follows
    ``observability.log_level`` and is re-read on every call.
    """

    def __init__(self, name: str, level: Optional[str] = None):
        self.name = name
        self._level = level
        self._logger = logging.getLogger(f"{LOGGER_PREFIX}.{name}")

        if not any(isinstance(h, StructuredHandler) for h in self._logger.handlers):
            self._logger.addHandler(StructuredHandler())
            self._logger.propagate = False

    @property
    def stdlib_logger(self) -> logging.Logger:
        return self._logger

    def _sync_level(self) -> None:
        level_name = self._level or get_config().observability.log_level.get()
        level = logging.getLevelName(level_name.upper())
        if self._logger.level != level:
            self._logger.setLevel(level)

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        self._sync_level()
        extra = {
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def error(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        **context: Any,
    ) -> None:
        """Log an operation completion."""
        level = logging.DEBUG if success else logging.INFO
        status = "completed" if success else "failed"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            duration_ms=round(duration_ms, 3),
            **context,
        )


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """Set the correlation ID for the current context."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID, creating one if unset."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


_loggers: Dict[str, ContentLogger] = {}


def get_logger(name: str) -> ContentLogger:
    """Get the logger for a component."""
    lg = _loggers.get(name)
    if lg is None:
        lg = _loggers[name] = ContentLogger(name)
    return lg


T = TypeVar("T")


def timed_operation(
    logger: ContentLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging operations."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            try:
                return func(*args, **kwargs)
            except Exception:
                success = False
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success)
        return wrapper
    return decorator
