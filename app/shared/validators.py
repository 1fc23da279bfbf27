"""Shared validation utilities"""

import math
from typing import Any, Optional


def coerce_number(value: Any) -> Optional[float]:
    """
    Read a loosely-typed JSON value as a finite number.

    Numbers and numeric strings are accepted. Booleans, NaN, infinities,
    empty strings and anything else return None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number):
        return None
    return number
