"""
linen_engines.tracer -- ``@traced_engine`` and the LINEN_ENGINE_TRACE record.

Every public engine entry point is wrapped so that each call leaves one
structured record naming the engine, its version, how long it took and a
fingerprint of the inputs that matter.  Two calls with the same
fingerprint over the same engine version must produce the same numbers,
which is what makes a disputed invoice reproducible from the logs.

The wrapper only logs.  It never alters arguments or results, and an
exception raised by the engine propagates after a trace with
``outcome="error"`` is written.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from linen_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_RECORD = "LINEN_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def _canonicalize(value: Any) -> str:
    """Order-stable text form; equal Decimals hash equally whatever their exponent."""
    match value:
        case None:
            return "null"
        case bool():
            return "true" if value else "false"
        case Enum():
            return _canonicalize(value.value)
        case Decimal():
            return str(value.normalize()) if value.is_finite() else str(value)
        case int() | float() | str():
            return str(value)
        case Mapping():
            pairs = sorted((str(k), _canonicalize(v)) for k, v in value.items())
            return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
        case list() | tuple():
            return "[" + ",".join(map(_canonicalize, value)) + "]"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return type(value).__name__ + _canonicalize(fields)
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """Truncated SHA-256 over ``name=value`` for each selected argument."""
    canonical = "|".join(
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return digest[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Wrap an engine function or method with trace logging.

    ``fingerprint_fields`` name parameters of the wrapped callable; they
    are bound from positional and keyword arguments alike, so
    ``f(lines)`` and ``f(lines=lines)`` fingerprint identically.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        def fingerprint(args: tuple, kwargs: dict) -> str:
            if not fingerprint_fields:
                return ""
            try:
                bound: Mapping[str, Any] = signature.bind_partial(*args, **kwargs).arguments
            except TypeError:
                bound = kwargs
            return compute_input_fingerprint(fingerprint_fields, bound)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            outcome = "error"
            try:
                result = func(*args, **kwargs)
                outcome = "ok"
                return result
            finally:
                _logger.info(
                    TRACE_RECORD,
                    extra={
                        "trace_type": TRACE_RECORD,
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "function": func.__qualname__,
                        "input_fingerprint": fingerprint(args, kwargs),
                        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                        "outcome": outcome,
                    },
                )

        return wrapper

    return decorator
