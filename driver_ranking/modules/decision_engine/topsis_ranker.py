"""
TOPSIS Ranker

Implements TOPSIS (Technique for Order of Preference by Similarity to Ideal Solution)
for multi-criteria ranking of drivers.
"""

import logging
from typing import List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .constants import CriterionType, TIE_TOLERANCE
from .exceptions import DimensionMismatchError
from .schemas import RankedResultSchema, TOPSISDetailedResultSchema

logger = logging.getLogger(__name__)

CriterionTypeLike = Union[CriterionType, str]


def _order_tied(group: List[RankedResultSchema]) -> List[RankedResultSchema]:
    """Larger secondary key first when every tied alternative carries one."""
    if len(group) > 1 and all(r.distance_traveled is not None for r in group):
        return sorted(group, key=lambda r: -r.distance_traveled)
    return group


def sort_and_rank(results: Sequence[RankedResultSchema]) -> List[RankedResultSchema]:
    """
    Sort results with the tie-break rule and assign ranks 1..n.

    Results are ordered by closeness coefficient (descending). Neighbours in
    that order closer than TIE_TOLERANCE join one tie group, which is then
    ordered by the larger secondary key. Chains of near-ties form a single
    group, so the grouping does not depend on the input order; only exact
    duplicates keep their input order.

    Args:
        results: Results in any order

    Returns:
        New list, best first, with contiguous ranks
    """
    by_score = sorted(results, key=lambda r: -r.closeness_coefficient)

    ordered: List[RankedResultSchema] = []
    group: List[RankedResultSchema] = []
    for result in by_score:
        if group and group[-1].closeness_coefficient - result.closeness_coefficient >= TIE_TOLERANCE:
            ordered.extend(_order_tied(group))
            group = []
        group.append(result)
    ordered.extend(_order_tied(group))

    return [
        result.model_copy(update={"rank": position})
        for position, result in enumerate(ordered, start=1)
    ]


def add_distance_data_to_results(
    results: Sequence[RankedResultSchema],
    distance_data: Mapping[str, float]
) -> List[RankedResultSchema]:
    """
    Attach secondary keys (e.g. km driven) and re-rank.

    Alternatives missing from distance_data get 0.

    Args:
        results: Ranked results
        distance_data: Dict mapping alternative label to its secondary key

    Returns:
        Re-sorted results with contiguous ranks starting at 1
    """
    updated = [
        result.model_copy(
            update={"distance_traveled": float(distance_data.get(result.alternative) or 0.0)}
        )
        for result in results
    ]
    return sort_and_rank(updated)


class TOPSISRanker:
    """
    Implements TOPSIS algorithm for multi-criteria decision making.

    Steps:
    1. Validate the decision matrix dimensions
    2. Normalize matrix (vector normalization)
    3. Apply criteria weights
    4. Calculate ideal solutions (A+ and A-)
    5. Calculate Euclidean distances to ideal solutions
    6. Calculate closeness coefficients (C_i)
    7. Rank alternatives by C_i (descending, tie-break on secondary key)
    """

    def validate_inputs(
        self,
        alternatives: Sequence[str],
        criteria: Sequence[str],
        matrix: Sequence[Sequence[float]],
        weights: Sequence[float],
        criteria_types: Sequence[CriterionTypeLike]
    ) -> np.ndarray:
        """
        Check that every dimension lines up.

        Args:
            alternatives: Alternative labels (one per row)
            criteria: Criterion names (one per column)
            matrix: Raw decision matrix
            weights: Criterion weights
            criteria_types: Benefit/cost per criterion

        Returns:
            Decision matrix as a float array (m x n), non-finite cells set to 0

        Raises:
            DimensionMismatchError: naming the mismatched dimension
        """
        if len(matrix) == 0 or len(matrix[0]) == 0:
            raise DimensionMismatchError("matrix", "Decision matrix is empty")

        if len(matrix) != len(alternatives):
            raise DimensionMismatchError(
                "alternatives",
                f"Number of alternatives ({len(alternatives)}) does not match "
                f"matrix row count ({len(matrix)})",
                expected=len(alternatives),
                actual=len(matrix),
            )

        for i, row in enumerate(matrix):
            if len(row) != len(criteria):
                raise DimensionMismatchError(
                    "criteria",
                    f"Number of criteria ({len(criteria)}) does not match "
                    f"column count of matrix row {i} ({len(row)})",
                    expected=len(criteria),
                    actual=len(row),
                )

        if len(weights) != len(criteria):
            raise DimensionMismatchError(
                "weights",
                f"Number of weights ({len(weights)}) does not match "
                f"number of criteria ({len(criteria)})",
                expected=len(criteria),
                actual=len(weights),
            )

        if len(criteria_types) != len(criteria):
            raise DimensionMismatchError(
                "criteria_types",
                f"Number of criteria types ({len(criteria_types)}) does not match "
                f"number of criteria ({len(criteria)})",
                expected=len(criteria),
                actual=len(criteria_types),
            )

        decision_matrix = np.asarray(matrix, dtype=float)

        if not np.all(np.isfinite(decision_matrix)):
            logger.warning("Decision matrix holds NaN or infinite values, replaced by 0")
            decision_matrix = np.nan_to_num(decision_matrix, nan=0.0, posinf=0.0, neginf=0.0)

        return decision_matrix

    def normalize_matrix(self, matrix: np.ndarray) -> np.ndarray:
        """
        Normalize the decision matrix using vector normalization.

        Formula: v_ij = x_ij / sqrt(sum(x_ij^2)) for each column j

        An all-zero column stays all zeros.

        Args:
            matrix: Decision matrix (m x n)

        Returns:
            Normalized matrix (m x n)
        """
        # Calculate column-wise norms (sqrt of sum of squares)
        column_norms = np.sqrt(np.sum(matrix ** 2, axis=0))

        # Avoid division by zero
        column_norms = np.where(column_norms == 0, 1, column_norms)

        normalized = matrix / column_norms

        logger.debug(f"Normalized matrix:\n{normalized}")

        return normalized

    def apply_weights(
        self,
        normalized_matrix: np.ndarray,
        weights: Sequence[float]
    ) -> np.ndarray:
        """
        Apply criteria weights to normalized matrix.

        Formula: r_ij = w_j * v_ij

        Args:
            normalized_matrix: Normalized decision matrix (m x n)
            weights: Weight per column, used as given

        Returns:
            Weighted normalized matrix (m x n)
        """
        weight_vector = np.asarray(weights, dtype=float)

        weighted = normalized_matrix * weight_vector

        logger.debug(f"Weight vector: {weight_vector}")
        logger.debug(f"Weighted matrix:\n{weighted}")

        return weighted

    def calculate_ideal_solutions(
        self,
        weighted_matrix: np.ndarray,
        criteria_types: Sequence[CriterionType]
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Calculate ideal positive (A+) and ideal negative (A-) solutions.

        For benefit criteria: A+ = max, A- = min
        For cost criteria: A+ = min, A- = max

        Args:
            weighted_matrix: Weighted normalized matrix (m x n)
            criteria_types: Benefit/cost per column

        Returns:
            Tuple of (A_positive, A_negative), each of length n
        """
        column_max = weighted_matrix.max(axis=0)
        column_min = weighted_matrix.min(axis=0)
        is_benefit = np.array([t == CriterionType.BENEFIT for t in criteria_types])

        A_positive = np.where(is_benefit, column_max, column_min)
        A_negative = np.where(is_benefit, column_min, column_max)

        logger.debug(f"A+ (ideal positive): {A_positive}")
        logger.debug(f"A- (ideal negative): {A_negative}")

        return A_positive, A_negative

    def calculate_distances(
        self,
        weighted_matrix: np.ndarray,
        A_positive: np.ndarray,
        A_negative: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Calculate Euclidean distances to ideal solutions.

        Formula:
        - d+ = sqrt(sum((r_ij - A+_j)^2))
        - d- = sqrt(sum((r_ij - A-_j)^2))

        Returns:
            Tuple of (distances_positive, distances_negative), each of length m
        """
        distances_positive = np.sqrt(np.sum((weighted_matrix - A_positive) ** 2, axis=1))
        distances_negative = np.sqrt(np.sum((weighted_matrix - A_negative) ** 2, axis=1))

        logger.debug(f"Distances to A+: {distances_positive}")
        logger.debug(f"Distances to A-: {distances_negative}")

        return distances_positive, distances_negative

    def calculate_closeness_coefficients(
        self,
        distances_positive: np.ndarray,
        distances_negative: np.ndarray
    ) -> np.ndarray:
        """
        Calculate closeness coefficients (relative closeness to ideal solution).

        Formula: C_i = d- / (d+ + d-)

        Values range from 0 to 1:
        - C_i = 1: Alternative is at ideal positive solution
        - C_i = 0: Alternative is at ideal negative solution, or coincides
          with both (zero denominator)

        Returns:
            Closeness coefficients (length m)
        """
        total_distance = distances_positive + distances_negative

        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(total_distance > 0, distances_negative / total_distance, 0.0)

        scores = np.clip(np.nan_to_num(scores, nan=0.0), 0.0, 1.0)

        logger.debug(f"Closeness coefficients (C_i): {scores}")

        return scores

    def rank(
        self,
        alternatives: Sequence[str],
        criteria: Sequence[str],
        matrix: Sequence[Sequence[float]],
        weights: Sequence[float],
        criteria_types: Sequence[CriterionTypeLike],
        secondary_keys: Optional[Sequence[Optional[float]]] = None
    ) -> List[RankedResultSchema]:
        """
        Complete TOPSIS ranking process.

        Args:
            alternatives: Alternative labels
            criteria: Criterion names
            matrix: Raw decision matrix (alternatives x criteria)
            weights: Criterion weights (need not sum to 1)
            criteria_types: Benefit/cost per criterion
            secondary_keys: Optional tie-break key per alternative

        Returns:
            Results sorted best first, with ranks 1..m
        """
        return self.rank_detailed(
            alternatives, criteria, matrix, weights, criteria_types, secondary_keys
        ).results

    def rank_detailed(
        self,
        alternatives: Sequence[str],
        criteria: Sequence[str],
        matrix: Sequence[Sequence[float]],
        weights: Sequence[float],
        criteria_types: Sequence[CriterionTypeLike],
        secondary_keys: Optional[Sequence[Optional[float]]] = None
    ) -> TOPSISDetailedResultSchema:
        """
        TOPSIS ranking keeping every intermediate matrix.

        Same arguments as rank(). The ranking is identical.

        Returns:
            TOPSISDetailedResultSchema
        """
        decision_matrix = self.validate_inputs(
            alternatives, criteria, matrix, weights, criteria_types
        )

        if secondary_keys is not None and len(secondary_keys) != len(alternatives):
            raise DimensionMismatchError(
                "secondary_keys",
                f"Number of secondary keys ({len(secondary_keys)}) does not match "
                f"number of alternatives ({len(alternatives)})",
                expected=len(alternatives),
                actual=len(secondary_keys),
            )

        types = [self._criterion_type(t) for t in criteria_types]

        logger.info(
            f"Starting TOPSIS ranking for {len(alternatives)} alternatives "
            f"on {len(criteria)} criteria"
        )

        normalized_matrix = self.normalize_matrix(decision_matrix)
        weighted_matrix = self.apply_weights(normalized_matrix, weights)
        A_positive, A_negative = self.calculate_ideal_solutions(weighted_matrix, types)
        distances_positive, distances_negative = self.calculate_distances(
            weighted_matrix, A_positive, A_negative
        )
        scores = self.calculate_closeness_coefficients(distances_positive, distances_negative)

        unranked = [
            RankedResultSchema(
                alternative=str(alternative),
                closeness_coefficient=float(scores[i]),
                rank=1,
                distance_traveled=(
                    float(secondary_keys[i])
                    if secondary_keys is not None and secondary_keys[i] is not None
                    else None
                ),
            )
            for i, alternative in enumerate(alternatives)
        ]
        results = sort_and_rank(unranked)

        logger.info(
            f"TOPSIS ranking complete. Top score: {results[0].closeness_coefficient:.4f}, "
            f"Lowest score: {results[-1].closeness_coefficient:.4f}"
        )

        return TOPSISDetailedResultSchema(
            results=results,
            alternatives=[str(a) for a in alternatives],
            criteria=list(criteria),
            weights=[float(w) for w in weights],
            criteria_types=types,
            decision_matrix=decision_matrix.tolist(),
            normalized_matrix=normalized_matrix.tolist(),
            weighted_matrix=weighted_matrix.tolist(),
            ideal_solution=A_positive.tolist(),
            negative_ideal_solution=A_negative.tolist(),
            distances_positive=distances_positive.tolist(),
            distances_negative=distances_negative.tolist(),
        )

    def add_distance_data_to_results(
        self,
        results: Sequence[RankedResultSchema],
        distance_data: Mapping[str, float]
    ) -> List[RankedResultSchema]:
        """See add_distance_data_to_results()."""
        return add_distance_data_to_results(results, distance_data)

    @staticmethod
    def _criterion_type(value: CriterionTypeLike) -> CriterionType:
        try:
            return CriterionType(value)
        except ValueError:
            logger.warning(f"Unknown criterion type {value!r}, treated as benefit")
            return CriterionType.BENEFIT
