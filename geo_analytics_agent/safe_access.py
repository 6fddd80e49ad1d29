"""Total helpers for probing untrusted, inconsistently shaped JSON payloads.

Nothing in this module raises on malformed input: every lookup degrades to the
caller's default instead.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any


def is_falsy(value: Any) -> bool:
    """True for None, False, 0, "" and NaN.

    Empty dicts and lists are *not* falsy here: an empty object returned by the
    API is still a response, not a missing one.
    """
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0 or (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value == ""
    return False


def _step(current: Any, key: str) -> Any:
    if isinstance(current, Mapping):
        return current.get(key)
    if isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
        if key.isdigit():
            index = int(key)
            return current[index] if index < len(current) else None
    return None


def safe_get(container: Any, path: str, default: Any = None) -> Any:
    if is_falsy(container):
        return default
    current = container
    for key in path.split("."):
        if current is None or not isinstance(current, (Mapping, Sequence)) or isinstance(
            current, (str, bytes)
        ):
            return default
        current = _step(current, key)
    return default if current is None else current


def safe_num(value: Any, default: Any = 0) -> Any:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        # JSON integers past the float range read as Infinity.
        try:
            float(value)
        except OverflowError:
            return default
        number = value
    elif isinstance(value, float):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            number = float(text)
        except ValueError:
            return default
    else:
        return default
    if isinstance(number, float) and not math.isfinite(number):
        return default
    return number


def safe_fixed(value: Any, decimals: int = 1, default: Any = 0) -> Any:
    """`safe_num`, then round to `decimals` places.

    Rounds half-up on the shortest decimal repr, so 12.35 gives 12.4 where
    JavaScript `toFixed` (binary value) gives 12.3.
    """
    number = safe_num(value, default)
    if number is None:
        return None
    try:
        quantum = Decimal(1).scaleb(-int(decimals))
        exact = Decimal(str(number))
        with localcontext() as context:
            context.prec = max(context.prec, exact.adjusted() + int(decimals) + 2)
            rounded = exact.quantize(quantum, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return default
    return float(rounded)


def safe_array(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def coalesce(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def pick(container: Any, aliases: Sequence[str], default: Any = None) -> Any:
    """First alias whose value is not None (aliases may be dot paths)."""
    for alias in aliases:
        value = safe_get(container, alias)
        if value is not None:
            return value
    return default


def pick_present(container: Any, aliases: Sequence[str], default: Any = None) -> Any:
    """First alias whose value is present in the sense of `is_falsy`."""
    for alias in aliases:
        value = safe_get(container, alias)
        if not is_falsy(value):
            return value
    return default


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
