"""Conversion of arbitrary-precision numbers into JSON-friendly floats.

Numeric columns come back from SQLAlchemy as ``decimal.Decimal``. Responses
and the availability arithmetic work on native floats, so values are run
through :func:`normalize_decimals` (whole structures) or :func:`to_number`
(single values) first.
"""

from __future__ import annotations

import math
from typing import Any, Mapping, Protocol, runtime_checkable

from app.core.errors import ValidationError


@runtime_checkable
class Numeric(Protocol):
    """Anything that can report its value as a float64."""

    def __float__(self) -> float: ...


def is_numeric(value: Any) -> bool:
    # str/bytes never count, even if a subclass grows __float__
    return isinstance(value, Numeric) and not isinstance(value, (str, bytes))


def to_number(value: Any) -> Any:
    """Return ``value`` as a plain number.

    ints, floats and bools pass through untouched; other numerics (Decimal,
    Fraction, numpy scalars) become floats. ``None`` stays ``None``.
    """
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if is_numeric(value):
        return float(value)
    return value


def normalize_decimals(value: Any) -> Any:
    """Recursively replace decimal-like leaves with native floats.

    Returns a new structure; mappings, lists, tuples and sets are rebuilt,
    everything else is passed through as-is.
    """
    if isinstance(value, Mapping):
        return {k: normalize_decimals(v) for k, v in value.items()}
    if isinstance(value, list):
        return [normalize_decimals(v) for v in value]
    if isinstance(value, tuple):
        return tuple(normalize_decimals(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return [normalize_decimals(v) for v in value]
    return to_number(value)


def require_finite(value: Any, name: str, *, minimum: float | None = 0) -> float:
    """Validate a caller-supplied quantity before any computation uses it."""
    number = to_number(value)
    if isinstance(number, bool) or not isinstance(number, (int, float)):
        raise ValidationError(f"{name} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be finite")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{name} must be >= {minimum}")
    return number
