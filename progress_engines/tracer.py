"""
Module: progress_engines.tracer
Responsibility:
    ``@traced_engine`` logs one PROGRESS_ENGINE_TRACE record per engine
    call, so a curve or indicator that looks wrong can be tied back to
    the engine, its version and the exact inputs that produced it.

Architecture position:
    Engines -- support for the pure calculation layer.  Emits a log
    record and nothing else.

Trace record fields:
    engine_name, engine_version, function, input_fingerprint (16 hex
    chars of SHA-256 over the selected arguments, "" when none are
    selected), duration_ms.

Invariants enforced:
    - DETERMINISM: equal inputs give equal fingerprints in every process.
      Mappings and sets are ordered before hashing.  Values with no
      stable text form (one-shot iterators, arbitrary objects) are
      hashed by type name only; their memory address never leaks in.
    - PURITY: arguments are never consumed or mutated.  A generator
      handed to an engine is not advanced by fingerprinting.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from dataclasses import fields, is_dataclass
from datetime import date, tzinfo
from decimal import Decimal
from enum import Enum
from typing import Any

from progress_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_TYPE = "PROGRESS_ENGINE_TRACE"


@functools.singledispatch
def _canonical(value: Any) -> str:
    if is_dataclass(value) and not isinstance(value, type):
        inner = ",".join(f"{f.name}={_canonical(getattr(value, f.name))}" for f in fields(value))
        return f"{type(value).__name__}({inner})"
    return f"<{type(value).__name__}>"


@_canonical.register(type(None))
def _(value: None) -> str:
    return "null"


@_canonical.register(str)
@_canonical.register(int)
@_canonical.register(float)
@_canonical.register(Decimal)
@_canonical.register(date)
@_canonical.register(tzinfo)
def _(value: Any) -> str:
    return str(value)


@_canonical.register(Enum)
def _(value: Enum) -> str:
    return f"{type(value).__name__}.{value.name}"


@_canonical.register(list)
@_canonical.register(tuple)
def _(value: Any) -> str:
    return "[" + ",".join(_canonical(v) for v in value) + "]"


@_canonical.register(set)
@_canonical.register(frozenset)
def _(value: Any) -> str:
    return "{" + ",".join(sorted(_canonical(v) for v in value)) + "}"


@_canonical.register(Mapping)
def _(value: Mapping) -> str:
    pairs = sorted((_canonical(k), _canonical(v)) for k, v in value.items())
    return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"


def compute_input_fingerprint(fingerprint_fields: tuple[str, ...], arguments: dict[str, Any]) -> str:
    """Hash the named arguments; an absent one hashes like ``None``."""
    canonical = "|".join(f"{name}={_canonical(arguments.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Decorate an engine entry point.

    ``fingerprint_fields`` names parameters of the wrapped function; they
    are matched whether passed positionally or by keyword.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                arguments = signature.bind_partial(*args, **kwargs).arguments
                fingerprint = compute_input_fingerprint(fingerprint_fields, arguments)

            started = time.perf_counter()
            result = func(*args, **kwargs)
            logger.info(TRACE_TYPE, extra={
                "trace_type": TRACE_TYPE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "function": func.__qualname__,
                "input_fingerprint": fingerprint,
                "duration_ms": round((time.perf_counter() - started) * 1000, 3),
            })
            return result

        return wrapper

    return decorator
