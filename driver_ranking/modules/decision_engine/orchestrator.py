"""
Orchestrator - Main coordinator for the decision engine

Coordinates the two workflows built on the AHP/TOPSIS core:
1. Evaluation: AHP over every comparison matrix of one evaluator,
   aggregated into global criterion weights
2. Ranking: consensus weights of the selected evaluations, decision
   matrix from raw driver records, TOPSIS ranking, tie-break merge
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from driver_ranking.config import settings

from .constants import DISTANCE_COLUMN_KEYWORDS
from .criteria_catalog import Criterion, CriteriaCatalog, load_catalog
from .hierarchy import HierarchicalAggregator
from .schemas import (
    EvaluationSchema,
    RankedResultSchema,
    RankingMetadataSchema,
    RankingOptionsSchema,
    RankingRequestSchema,
    RankingResponseSchema,
)
from .topsis_ranker import TOPSISRanker
from .utils import to_number
from .weight_averager import calculate_average_weights

logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Orchestrates evaluation building and the driver ranking workflow.

    Ranking workflow:
    1. Average the global weights of the selected evaluations
    2. Keep the leaf criteria with a positive consensus weight
    3. Build the decision matrix from raw driver records
    4. Rank drivers using TOPSIS
    5. Merge the km driven as tie-break key and re-rank
    6. Format and return response
    """

    def __init__(self, catalog: Optional[CriteriaCatalog] = None):
        """Initialize orchestrator with all required components."""
        self.catalog = catalog or load_catalog(settings.criteria_catalog_path)
        self.aggregator = HierarchicalAggregator(self.catalog)
        self.topsis_ranker = TOPSISRanker()

    # ============================================================
    # EVALUATION
    # ============================================================

    def build_evaluation(
        self,
        user_name: str,
        hierarchy_data: Mapping[str, Sequence[Sequence[float]]],
        previous: Optional[EvaluationSchema] = None
    ) -> EvaluationSchema:
        """
        Compute one evaluator's weights from their comparison matrices.

        Args:
            user_name: Evaluator name
            hierarchy_data: Dict mapping comparison node id to its matrix
            previous: Earlier evaluation of the same evaluator; its id and
                creation time are kept so the result replaces it

        Returns:
            EvaluationSchema
        """
        logger.info(f"Building evaluation for '{user_name}' from {len(hierarchy_data)} matrices")

        result = self.aggregator.calculate(hierarchy_data)
        now = datetime.now(timezone.utc)

        fields: Dict[str, Any] = {
            "user_name": user_name,
            "criteria_weights": result.criteria_weights,
            "global_weights": result.global_weights,
            "consistency_results": result.consistency_results,
            "hierarchy_data": {k: [list(map(float, row)) for row in m] for k, m in hierarchy_data.items()},
            "updated_at": now,
        }

        if previous is not None:
            if previous.user_name != user_name.strip():
                logger.warning(
                    f"Replacing evaluation of '{previous.user_name}' with one by '{user_name}'"
                )
            fields["id"] = previous.id
            fields["created_at"] = previous.created_at
        else:
            fields["created_at"] = now

        evaluation = EvaluationSchema(**fields)

        inconsistent = evaluation.inconsistent_nodes()
        if inconsistent:
            logger.warning(f"Evaluation by '{evaluation.user_name}' is inconsistent at {inconsistent}")

        return evaluation

    # ============================================================
    # RANKING
    # ============================================================

    def rank_drivers(self, request: RankingRequestSchema) -> RankingResponseSchema:
        """
        Complete ranking workflow.

        Args:
            request: Evaluations, raw driver records and options

        Returns:
            RankingResponseSchema with ranked drivers
        """
        start_time = time.perf_counter()
        options = request.options or RankingOptionsSchema()
        evaluations = request.evaluations
        evaluators = [e.user_name for e in evaluations]

        logger.info(
            f"Starting ranking of {len(request.drivers)} drivers "
            f"with {len(evaluations)} evaluations"
        )

        warnings = self._consistency_warnings(evaluations)

        # ============================================================
        # PHASE 1: CONSENSUS WEIGHTS
        # ============================================================
        consensus = calculate_average_weights(evaluations)
        criteria = [
            leaf for leaf in self.catalog.leaf_criteria()
            if consensus.get(leaf.id, 0.0) > 0
        ]

        if not evaluations:
            return self._create_empty_response(evaluators, consensus, start_time, warnings + ["No evaluations selected"])

        if not criteria:
            return self._create_empty_response(
                evaluators, consensus, start_time, warnings + ["No criterion has a positive weight"]
            )

        if not request.drivers:
            return self._create_empty_response(evaluators, consensus, start_time, warnings + ["No driver data"])

        logger.info(f"Phase 1 complete: {len(criteria)} weighted criteria")

        # ============================================================
        # PHASE 2: DECISION MATRIX
        # ============================================================
        alternative_column = (
            options.alternative_column
            or settings.alternative_column
            or next(iter(request.drivers[0]), None)
        )

        column_map, unmatched = self._match_columns(request.drivers, criteria, alternative_column)
        distance_column = (
            options.distance_column
            or settings.distance_column
            or self._detect_distance_column(request.drivers, alternative_column, column_map)
        )

        alternatives, matrix, distance_data = self.build_decision_matrix(
            request.drivers, criteria, column_map, alternative_column, distance_column
        )

        if unmatched:
            names = [self.catalog.get(c).name for c in unmatched]
            warnings.append(f"No data column found for criteria: {', '.join(names)}")

        logger.info(
            f"Phase 2 complete: {len(alternatives)}x{len(criteria)} decision matrix, "
            f"distance column={distance_column!r}"
        )

        # ============================================================
        # PHASE 3: TOPSIS RANKING
        # ============================================================
        detailed = self.topsis_ranker.rank_detailed(
            alternatives=alternatives,
            criteria=[c.name for c in criteria],
            matrix=matrix,
            weights=[consensus[c.id] for c in criteria],
            criteria_types=[c.type for c in criteria],
        )

        results = detailed.results
        if distance_column is not None:
            results = self.topsis_ranker.add_distance_data_to_results(results, distance_data)
            detailed = detailed.model_copy(update={"results": results})

        logger.info(f"Phase 3 complete: {len(results)} drivers ranked")

        # ============================================================
        # FORMAT RESPONSE
        # ============================================================
        metadata = RankingMetadataSchema(
            evaluators=evaluators,
            consensus_weights=consensus,
            criteria_used=[c.id for c in criteria],
            unmatched_criteria=unmatched,
            alternative_column=alternative_column,
            distance_column=distance_column,
            processing_time_ms=self._elapsed_ms(start_time),
        )

        return RankingResponseSchema(
            status="success",
            results=results,
            metadata=metadata,
            details=detailed if options.include_details else None,
            warnings=warnings or None,
        )

    def build_decision_matrix(
        self,
        drivers: Sequence[Mapping[str, Any]],
        criteria: Sequence[Criterion],
        column_map: Mapping[str, str],
        alternative_column: Optional[str],
        distance_column: Optional[str]
    ) -> Tuple[List[str], List[List[float]], Dict[str, float]]:
        """
        Build the decision matrix from raw driver records.

        Matrix structure (m x n):
        - m = number of drivers (alternatives)
        - n = number of weighted criteria, in catalog leaf order

        Args:
            drivers: Raw records keyed by column header
            criteria: Criteria entering the ranking
            column_map: Dict mapping criterion id to its column header
            alternative_column: Header holding the driver label
            distance_column: Header holding the km driven, if any

        Returns:
            Tuple of (alternatives, matrix, distance_data)
        """
        alternatives: List[str] = []
        matrix: List[List[float]] = []
        distance_data: Dict[str, float] = {}

        for i, driver in enumerate(drivers):
            label = driver.get(alternative_column) if alternative_column else None
            label = str(label).strip() if label not in (None, "") else f"Driver {i + 1}"

            if label in distance_data:
                logger.warning(f"Duplicate driver label '{label}', tie-break data overwritten")

            alternatives.append(label)
            matrix.append([
                to_number(driver.get(column_map[c.id])) if c.id in column_map else 0.0
                for c in criteria
            ])
            distance_data[label] = to_number(driver.get(distance_column)) if distance_column else 0.0

        logger.debug(f"Decision matrix: {matrix}")

        return alternatives, matrix, distance_data

    def _match_columns(
        self,
        drivers: Sequence[Mapping[str, Any]],
        criteria: Sequence[Criterion],
        alternative_column: Optional[str]
    ) -> Tuple[Dict[str, str], List[str]]:
        """Map each criterion id to a data header; return the unmatched ids too."""
        headers: Dict[str, None] = {}
        for driver in drivers:
            for key in driver:
                if key != alternative_column:
                    headers.setdefault(key, None)

        wanted = {c.id for c in criteria}
        column_map: Dict[str, str] = {}

        for header in headers:
            criterion_id = self.catalog.match_column(header)
            if criterion_id in wanted and criterion_id not in column_map:
                column_map[criterion_id] = header

        # Fall back to headers containing the criterion name
        for criterion in criteria:
            if criterion.id in column_map:
                continue
            labels = [criterion.name.lower()] + [a.lower() for a in criterion.aliases]
            for header in headers:
                if header in column_map.values():
                    continue
                if any(label in header.lower() for label in labels):
                    column_map[criterion.id] = header
                    break

        unmatched = [c.id for c in criteria if c.id not in column_map]
        if unmatched:
            logger.warning(f"Criteria without data column: {unmatched}")

        return column_map, unmatched

    def _detect_distance_column(
        self,
        drivers: Sequence[Mapping[str, Any]],
        alternative_column: Optional[str],
        column_map: Mapping[str, str]
    ) -> Optional[str]:
        """First header mentioning km that is not a criterion column."""
        criterion_columns = set(column_map.values())

        for driver in drivers:
            for header in driver:
                if header == alternative_column or header in criterion_columns:
                    continue
                if self.catalog.match_column(header) is not None:
                    continue
                lowered = header.lower()
                if any(keyword in lowered for keyword in DISTANCE_COLUMN_KEYWORDS):
                    return header

        return None

    def _consistency_warnings(self, evaluations: Sequence[EvaluationSchema]) -> List[str]:
        warnings = []

        for evaluation in evaluations:
            inconsistent = evaluation.inconsistent_nodes()
            if inconsistent:
                warnings.append(
                    f"Evaluation by '{evaluation.user_name}' has inconsistent comparisons "
                    f"(CR >= 0.1) for: {', '.join(inconsistent)}"
                )

        return warnings

    def _create_empty_response(
        self,
        evaluators: List[str],
        consensus: Dict[str, float],
        start_time: float,
        warnings: List[str]
    ) -> RankingResponseSchema:
        """
        Create response when nothing can be ranked.

        Args:
            evaluators: Names of the selected evaluators
            consensus: Consensus weights computed so far
            start_time: perf_counter value at the start of the run
            warnings: Warning messages

        Returns:
            RankingResponseSchema with empty results
        """
        logger.warning(f"Nothing to rank: {warnings[-1]}")

        return RankingResponseSchema(
            status="success",
            results=[],
            metadata=RankingMetadataSchema(
                evaluators=evaluators,
                consensus_weights=consensus,
                processing_time_ms=self._elapsed_ms(start_time),
            ),
            warnings=warnings,
        )

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return max((time.perf_counter() - start_time) * 1000, 0.0)


def export_rows(
    results: Sequence[RankedResultSchema],
    precision: Optional[int] = None
) -> List[List[Any]]:
    """
    Tabular export of ranked results (header row first).

    Args:
        results: Ranked results
        precision: Decimals kept on the score (default from settings)

    Returns:
        Rows of [rank, driver, score, km driven]
    """
    if precision is None:
        precision = settings.export_precision

    rows: List[List[Any]] = [["Rank", "Driver", "TOPSIS Score", "Km Driven"]]
    for result in results:
        rows.append([
            result.rank,
            result.alternative,
            round(result.closeness_coefficient, precision),
            result.distance_traveled or 0.0,
        ])
    return rows


# ============================================================
# DEPENDENCY INJECTION / FACTORY
# ============================================================

_orchestrator_instance: Optional[Orchestrator] = None


def get_orchestrator() -> Orchestrator:
    """
    Get singleton instance of Orchestrator.

    Returns:
        Orchestrator instance
    """
    global _orchestrator_instance

    if _orchestrator_instance is None:
        _orchestrator_instance = Orchestrator()
        logger.info("Orchestrator instance created")

    return _orchestrator_instance
