"""Type conversion utilities for nullable values coming out of Supabase rows.

Every column in ``cars`` and ``mods`` may be null, and CSV seeds may carry
blank strings. This module is the single place that turns those into numbers.
"""

import math
from typing import Any


def safe_float(val: Any, default: float = 0.0) -> float:
    """Safely convert a value to float.

    Examples:
        >>> safe_float("3.14")
        3.14
        >>> safe_float(None)
        0.0
        >>> safe_float("invalid", default=-1.0)
        -1.0
    """
    if val is None or val == "":
        return default
    try:
        result = float(val)
    except (ValueError, TypeError):
        return default
    if math.isnan(result):
        return default
    return result


def optional_float(val: Any) -> float | None:
    """Convert to float, keeping None for missing or unparsable values.

    Zero is kept as-is; callers decide whether 0 counts as missing.
    """
    if val is None or val == "":
        return None
    try:
        result = float(val)
    except (ValueError, TypeError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_bool(val: Any, default: bool = False) -> bool:
    """Interpret truthy DB/CSV values ("true", "1", "yes", True)."""
    if val is None or val == "":
        return default
    if isinstance(val, bool):
        return val
    if isinstance(val, (int, float)):
        return val != 0
    return str(val).strip().lower() in {"true", "t", "1", "yes", "y"}


def round_half_up(val: float) -> int:
    """Round to the nearest integer, halves away from zero.

    ``round()`` uses banker's rounding, which would turn a 2.5 hp gain into 2.
    """
    if val >= 0:
        return int(math.floor(val + 0.5))
    return -int(math.floor(-val + 0.5))
