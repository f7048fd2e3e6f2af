"""
Constants for the driver decision engine (AHP + TOPSIS)
"""

from enum import Enum
from typing import Dict, Tuple


class CriterionType(str, Enum):
    """Optimisation direction of a criterion."""
    BENEFIT = "benefit"  # Higher raw values are better
    COST = "cost"        # Lower raw values are better


# Saaty Scale for AHP (1-9 scale)
SAATY_SCALE: Dict[int, str] = {
    1: "Equal importance",
    2: "Weak or slight importance",
    3: "Moderate importance",
    4: "Moderate plus",
    5: "Strong importance",
    6: "Strong plus",
    7: "Very strong or demonstrated importance",
    8: "Very, very strong",
    9: "Extreme importance",
}

# Every admissible judgment: the 9 intensities and their reciprocals
SAATY_VALUES: Tuple[float, ...] = tuple(
    [1.0 / k for k in range(9, 1, -1)] + [float(k) for k in range(1, 10)]
)

# Tolerance used when checking a value against SAATY_VALUES
SAATY_VALUE_TOLERANCE = 0.001

# Random Index (RI) for AHP consistency check, indexed by n - 1.
# Matrices larger than the table reuse the last value.
RANDOM_INDEX: Tuple[float, ...] = (
    0.00,
    0.00,
    0.58,
    0.90,
    1.12,
    1.24,
    1.32,
    1.41,
    1.45,
    1.49,
    1.51,
    1.48,
    1.56,
    1.57,
    1.59,
)

# AHP Consistency Ratio threshold
AHP_CONSISTENCY_THRESHOLD = 0.1  # CR < 0.1 is acceptable

# Slider control exposed by comparison UIs
SLIDER_MIN = -8
SLIDER_MAX = 8

# Closeness coefficients closer than this are ties for TOPSIS ranking
TIE_TOLERANCE = 0.0001

# Key of the root comparison matrix in persisted hierarchy data
ROOT_CRITERION_ID = "main"

# Header fragments identifying the distance (km driven) column in driver data
DISTANCE_COLUMN_KEYWORDS: Tuple[str, ...] = ("kilometre", "km")
