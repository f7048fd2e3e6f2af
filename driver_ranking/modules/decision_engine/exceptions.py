"""
Exceptions raised by the decision engine.
"""

from typing import Optional


class DecisionEngineError(Exception):
    """Base class for decision engine errors."""


class DimensionMismatchError(DecisionEngineError, ValueError):
    """TOPSIS inputs whose dimensions do not line up."""

    def __init__(self, dimension: str, message: str, expected: Optional[int] = None, actual: Optional[int] = None):
        self.dimension = dimension
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class CatalogError(DecisionEngineError, ValueError):
    """Malformed criteria catalog."""
