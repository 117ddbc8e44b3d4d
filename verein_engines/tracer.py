"""
verein_engines.tracer -- ``@traced_engine`` and the VEREIN_ENGINE_TRACE record.

Responsibility:
    Wraps billing engine entry points so that every successful call leaves
    one structured log record naming the engine, its version, a fingerprint
    of the inputs that determine the result, and how long the call took.
    Two runs over the same invoice on the same as-of date produce the same
    fingerprint, which makes replays and duplicate dunning runs visible in
    the logs.

Architecture position:
    Engines -- support code.  Reads arguments and logs; never changes
    inputs or results.

Usage:
    @traced_engine("dunning", "1.0", fingerprint_fields=("invoice", "as_of_date"))
    def should_send_reminder(invoice, as_of_date, policy=STANDARD_DUNNING_POLICY):
        ...

Arguments are bound to parameter names first, so positional and keyword
calls fingerprint identically.  A fingerprint field that is not bound
(an omitted default) counts as "null".
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from verein_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_TYPE = "VEREIN_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def _canonicalize(value: Any) -> str:
    """Stable text form of an engine argument (records, amounts, dates, enums)."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, Decimal)):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        as_dict = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return type(value).__name__ + _canonicalize(as_dict)
    if isinstance(value, Mapping):
        pairs = sorted((str(k), _canonicalize(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(item) for item in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """First 16 hex characters of the SHA-256 over ``name=value`` pairs."""
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
    Emit VEREIN_ENGINE_TRACE after each successful call of the wrapped engine.

    Calls that raise are not traced; the exception propagates unchanged.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not _logger.isEnabledFor(logging.INFO):
                return func(*args, **kwargs)

            fingerprint = ""
            if fingerprint_fields:
                try:
                    bound = signature.bind(*args, **kwargs)
                except TypeError:
                    # The call itself raises the proper signature error.
                    return func(*args, **kwargs)
                fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = (time.perf_counter() - started) * 1000

            _logger.info(TRACE_TYPE, extra={
                "trace_type": TRACE_TYPE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "function": func.__qualname__,
                "input_fingerprint": fingerprint,
                "duration_ms": round(elapsed_ms, 2),
            })
            return result

        return wrapper

    return decorator
