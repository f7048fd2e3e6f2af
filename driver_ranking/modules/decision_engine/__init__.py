"""
Driver Decision Engine

Multi-criteria decision making for ranking drivers using AHP
(Analytic Hierarchy Process) and TOPSIS methods.

This module provides:
- Pairwise comparison matrices and slider/Saaty conversions
- Criteria weight calculation and consistency checking using AHP
- Hierarchical aggregation of local weights into global weights
- Consensus weights across several evaluators
- Multi-criteria ranking using TOPSIS
"""

from .ahp_calculator import AHPCalculator
from .constants import CriterionType
from .criteria_catalog import Criterion, CriteriaCatalog, DEFAULT_CATALOG, load_catalog
from .exceptions import CatalogError, DecisionEngineError, DimensionMismatchError
from .hierarchy import HierarchicalAggregator
from .orchestrator import Orchestrator, export_rows, get_orchestrator
from .pairwise_matrix import PairwiseMatrix, ahp_value_to_slider, slider_to_ahp_value
from .schemas import (
    ConsistencyResultSchema,
    EvaluationSchema,
    RankedResultSchema,
    RankingRequestSchema,
    RankingResponseSchema,
    TOPSISDetailedResultSchema,
)
from .topsis_ranker import TOPSISRanker, add_distance_data_to_results
from .weight_averager import calculate_average_weights

__all__ = [
    "AHPCalculator",
    "CriterionType",
    "Criterion",
    "CriteriaCatalog",
    "DEFAULT_CATALOG",
    "load_catalog",
    "CatalogError",
    "DecisionEngineError",
    "DimensionMismatchError",
    "HierarchicalAggregator",
    "Orchestrator",
    "export_rows",
    "get_orchestrator",
    "PairwiseMatrix",
    "ahp_value_to_slider",
    "slider_to_ahp_value",
    "ConsistencyResultSchema",
    "EvaluationSchema",
    "RankedResultSchema",
    "RankingRequestSchema",
    "RankingResponseSchema",
    "TOPSISDetailedResultSchema",
    "TOPSISRanker",
    "add_distance_data_to_results",
    "calculate_average_weights",
]
