"""
Utility functions for the driver decision engine
"""

import math
import re
from typing import Any, List, Sequence

from .constants import SAATY_VALUES, SAATY_VALUE_TOLERANCE


def reciprocal_value(value: float) -> float:
    """
    Reciprocal of a pairwise judgment.

    A zero judgment has no reciprocal; 0 is returned so that the
    matrix degrades to a zero cell instead of an infinite one.

    Args:
        value: Judgment value

    Returns:
        1 / value, or 0.0 when value is 0
    """
    if value == 0:
        return 0.0
    return 1.0 / value


def is_valid_comparison_value(value: float) -> bool:
    """
    Check whether a value lies on the Saaty scale (1/9 ... 1 ... 9).

    Example:
        >>> is_valid_comparison_value(1 / 3)
        True
        >>> is_valid_comparison_value(10)
        False
    """
    return any(abs(value - v) < SAATY_VALUE_TOLERANCE for v in SAATY_VALUES)


def normalize_weights(weights: Sequence[float]) -> List[float]:
    """
    Rescale a weight vector so that it sums to 1.

    A vector summing to 0 becomes uniform.

    Args:
        weights: Raw weights

    Returns:
        Normalized weights (same length)
    """
    n = len(weights)
    if n == 0:
        return []

    total = math.fsum(weights)
    if total == 0:
        return [1.0 / n] * n

    return [w / total for w in weights]


def normalize_string(value: str) -> str:
    """Lower-case a header and strip whitespace, quotes and parentheses."""
    value = value.lower()
    value = re.sub(r"\s+", "", value)
    value = re.sub(r"['\"’]", "", value)
    value = re.sub(r"[()]", "", value)
    return value.strip()


def to_number(value: Any) -> float:
    """
    Coerce a raw spreadsheet cell to a float.

    Booleans, blanks, unparsable strings and non-finite numbers become 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0

    if not math.isfinite(number):
        return 0.0

    return number
