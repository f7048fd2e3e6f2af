"""
AHP Calculator

Implements Analytic Hierarchy Process (AHP) weight extraction and
consistency checking for one pairwise comparison matrix.
"""

import logging
from typing import Sequence, Union

import numpy as np

from .constants import AHP_CONSISTENCY_THRESHOLD, RANDOM_INDEX
from .pairwise_matrix import PairwiseMatrix
from .schemas import AHPResultSchema, ConsistencyResultSchema

logger = logging.getLogger(__name__)

MatrixLike = Union[PairwiseMatrix, np.ndarray, Sequence[Sequence[float]]]


def random_index(n: int) -> float:
    """Saaty random index for an n x n matrix (last tabulated value beyond the table)."""
    if n < 1:
        return 0.0
    return RANDOM_INDEX[min(n, len(RANDOM_INDEX)) - 1]


class AHPCalculator:
    """
    Implements the Analytic Hierarchy Process (AHP) for criteria weighting.

    Based on Thomas Saaty's method:
    1. Normalize each column of the comparison matrix
    2. Average the rows to get weights
    3. Check consistency (CR < 0.1)

    The calculator holds no state; every method is a pure function of its
    arguments.
    """

    def calculate_weights(self, matrix: MatrixLike) -> np.ndarray:
        """
        Calculate weights using the column-sum / row-average method.

        Method:
        1. Normalize each column (divide by column sum)
        2. Average across rows to get weights

        A degenerate matrix (zero column, zero or non-finite weight) yields
        uniform weights.

        Args:
            matrix: Pairwise comparison matrix

        Returns:
            Array of weights summing to 1
        """
        matrix = _as_array(matrix)
        n = matrix.shape[0]

        if n == 0:
            return np.zeros(0)

        # Calculate column sums
        column_sums = matrix.sum(axis=0)

        # Normalize matrix, zero columns stay zero
        with np.errstate(divide="ignore", invalid="ignore"):
            normalized_matrix = np.where(column_sums != 0, matrix / column_sums, 0.0)

        # Calculate weights (row averages)
        weights = normalized_matrix.mean(axis=1)

        if not np.all(np.isfinite(weights)) or np.any(weights <= 0):
            logger.warning(
                f"Degenerate comparison matrix, falling back to uniform weights:\n{matrix}"
            )
            return np.full(n, 1.0 / n)

        # Ensure weights sum to 1
        weights = weights / weights.sum()

        logger.debug(f"Calculated weights: {weights}")

        return weights

    def check_consistency(
        self,
        matrix: MatrixLike,
        weights: np.ndarray
    ) -> ConsistencyResultSchema:
        """
        Check consistency of the pairwise comparison matrix.

        Consistency Ratio (CR) = CI / RI

        where:
        - CI (Consistency Index) = (λmax - n) / (n - 1)
        - RI (Random Index) = value from lookup table
        - λmax = mean of (A·w)_i / w_i

        Matrices of size 2 or less are always consistent.

        Args:
            matrix: Pairwise comparison matrix
            weights: Calculated weights

        Returns:
            ConsistencyResultSchema
        """
        matrix = _as_array(matrix)
        weights = np.asarray(weights, dtype=float)
        n = len(weights)

        if n <= 2:
            return ConsistencyResultSchema(
                consistency_index=0.0,
                consistency_ratio=0.0,
                is_consistent=True,
                lambda_max=float(n),
            )

        # Calculate λmax
        weighted_sum = matrix @ weights
        with np.errstate(divide="ignore", invalid="ignore"):
            lambda_values = weighted_sum / weights
        lambda_max = float(lambda_values.mean())

        if not np.isfinite(lambda_max):
            logger.warning("Non-finite λmax, reporting the matrix as inconsistent")
            return ConsistencyResultSchema(
                consistency_index=0.0,
                consistency_ratio=0.0,
                is_consistent=False,
                lambda_max=float(n),
            )

        # λmax >= n for positive reciprocal matrices; clamp rounding noise
        ci = max((lambda_max - n) / (n - 1), 0.0)

        ri = random_index(n)
        cr = ci / ri if ri > 0 else 0.0

        is_consistent = cr < AHP_CONSISTENCY_THRESHOLD

        logger.debug(
            f"Consistency check: λmax={lambda_max:.4f}, "
            f"CI={ci:.4f}, RI={ri:.2f}, CR={cr:.4f}, "
            f"consistent={is_consistent}"
        )

        return ConsistencyResultSchema(
            consistency_index=ci,
            consistency_ratio=cr,
            is_consistent=is_consistent,
            lambda_max=lambda_max,
        )

    def calculate(self, matrix: MatrixLike) -> AHPResultSchema:
        """
        Complete AHP process for one matrix: weights then consistency.

        Args:
            matrix: Pairwise comparison matrix

        Returns:
            AHPResultSchema with weights and consistency information
        """
        array = _as_array(matrix)
        n = array.shape[0]

        if n <= 1:
            return AHPResultSchema(
                weights=[1.0] * n,
                consistency=ConsistencyResultSchema(lambda_max=float(n)),
            )

        weights = self.calculate_weights(array)
        consistency = self.check_consistency(array, weights)

        if not consistency.is_consistent:
            logger.warning(
                f"AHP matrix is NOT consistent (CR={consistency.consistency_ratio:.4f} "
                f">= {AHP_CONSISTENCY_THRESHOLD}). Results may be unreliable."
            )

        return AHPResultSchema(
            weights=[float(w) for w in weights],
            consistency=consistency,
        )


def _as_array(matrix: MatrixLike) -> np.ndarray:
    if isinstance(matrix, PairwiseMatrix):
        return matrix.values

    array = np.asarray(matrix, dtype=float)
    if array.size == 0:
        return np.zeros((0, 0))

    if array.ndim != 2 or array.shape[0] != array.shape[1]:
        raise ValueError(f"Comparison matrix must be square, got shape {array.shape}")

    return array
