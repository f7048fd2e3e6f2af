"""Driver ranking with AHP criteria weights and TOPSIS."""

__version__ = "1.0.0"
