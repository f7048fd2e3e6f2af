# Modules package
from .decision_engine import Orchestrator, TOPSISRanker, AHPCalculator

__all__ = [
    "Orchestrator",
    "TOPSISRanker",
    "AHPCalculator",
]
