"""
Structured JSON logging for the progress engine.

Every record under the ``progress_kernel`` logger tree is written as one
JSON object per line::

    {"ts": ..., "level": "INFO", "logger": "progress_kernel.engines.dedupe",
     "message": "updates_deduplicated", "service_id": "svc-1",
     "duplicates": 1, "total": 3}

``message`` is a stable event name, never prose.  Values passed through
``extra=`` become top-level keys, and the fields bound with
``LogContext.bind`` (which package or service a report is being built
for, and under which config set) are stamped on everything logged
inside the block, engine traces included.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, TextIO

LOGGER_ROOT = "progress_kernel"

# ---------------------------------------------------------------------------
# Report context
# ---------------------------------------------------------------------------

_bound: ContextVar[tuple[tuple[str, str], ...]] = ContextVar("progress_log_context", default=())


class LogContext:
    """Report-scoped fields added to every record (contextvars, so async-safe)."""

    FIELDS = ("config_id", "package_id", "service_id")

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_bound.get())

    @classmethod
    def clear(cls) -> None:
        _bound.set(())

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[None]:
        """Bind non-empty ``fields`` for the duration of the block."""
        unknown = set(fields) - set(cls.FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
        merged = dict(_bound.get())
        merged.update((name, str(value)) for name, value in fields.items() if value)
        token = _bound.set(tuple(merged.items()))
        try:
            yield
        finally:
            _bound.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

_RESERVED = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _jsonable(value: Any) -> Any:
    # Percents and hours are Decimals; keep their exact text.
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # ProgressEngineError subclasses carry their context as attributes
    for name, value in vars(exc).items():
        if not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_jsonable)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under ``progress_kernel``, e.g. ``get_logger("engines.dedupe")``."""
    return logging.getLogger(f"{LOGGER_ROOT}.{name}")


def _owned_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, "_progress_owned", False)]


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach the JSON handler to the ``progress_kernel`` tree.

    Calling it again only adjusts the level; a second handler is never
    added.  Handlers attached by others (e.g. pytest's caplog) are left
    alone.
    """
    root = logging.getLogger(LOGGER_ROOT)
    root.setLevel(level)
    root.propagate = False
    if _owned_handlers(root):
        return

    target = handler or logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    target._progress_owned = True
    root.addHandler(target)


def reset_logging() -> None:
    """Detach the handler added by ``configure_logging``. Test helper."""
    root = logging.getLogger(LOGGER_ROOT)
    for handler in _owned_handlers(root):
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)
    root.propagate = True
