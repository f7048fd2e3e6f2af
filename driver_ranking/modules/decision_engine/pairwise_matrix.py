"""
Pairwise comparison matrix for AHP.

Holds one reciprocal matrix of judgments between sibling criteria and
converts the slider positions used by comparison UIs to Saaty values.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from .constants import SLIDER_MAX, SLIDER_MIN
from .utils import reciprocal_value

logger = logging.getLogger(__name__)


def slider_to_ahp_value(slider: int) -> float:
    """
    Convert a slider position (-8 ... +8) to a Saaty value (1/9 ... 9).

    The value is the matrix cell M[i][j] (left item i, right item j):
    - slider == 0: equal importance -> 1
    - slider > 0: right item is (slider + 1) times as important -> 1 / (slider + 1)
    - slider < 0: left item is (|slider| + 1) times as important -> |slider| + 1

    Args:
        slider: Slider position

    Returns:
        Saaty value for M[i][j]
    """
    if slider == 0:
        return 1.0

    if slider > 0:
        return 1.0 / (slider + 1)

    return float(abs(slider) + 1)


def ahp_value_to_slider(value: float) -> int:
    """
    Convert a Saaty value back to its slider position.

    Exact inverse of slider_to_ahp_value for every integer slider position.

    Args:
        value: Matrix cell M[i][j]

    Returns:
        Slider position
    """
    if abs(value - 1.0) < 0.001:
        return 0

    if value > 1:
        # Left item more important
        return -int(round(value - 1))

    if value <= 0:
        # Zero cell from a malformed judgment: pin to the right end
        return SLIDER_MAX

    # Right item more important
    return int(round(1.0 / value - 1))


class PairwiseMatrix:
    """
    Reciprocal pairwise comparison matrix.

    M[i][j] expresses how many times item i is more important than item j.
    The diagonal is 1 and M[j][i] == 1 / M[i][j] is maintained on every write.

    Matrix structure (n = 3):
                A       B       C
            A   1       a12     a13
            B   1/a12   1       a23
            C   1/a13   1/a23   1
    """

    def __init__(self, size: int, labels: Optional[Sequence[str]] = None):
        """
        Create an all-ones (equal importance) matrix.

        Args:
            size: Number of compared items
            labels: Optional item labels, one per row
        """
        if size < 0:
            raise ValueError(f"Matrix size must be non-negative, got {size}")

        if labels is not None and len(labels) != size:
            raise ValueError(
                f"Expected {size} labels, got {len(labels)}"
            )

        self.labels: Optional[List[str]] = list(labels) if labels is not None else None
        self._values = np.ones((size, size))
        self._values.flags.writeable = False

    @property
    def size(self) -> int:
        return self._values.shape[0]

    @property
    def values(self) -> np.ndarray:
        """Copy of the underlying matrix."""
        return self._values.copy()

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, index):
        """Read-only view; write through set_comparison()."""
        return self._values[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, PairwiseMatrix):
            return NotImplemented
        return np.array_equal(self._values, other._values)

    def __repr__(self) -> str:
        return f"PairwiseMatrix(size={self.size}, labels={self.labels})"

    def set_comparison(self, i: int, j: int, value: float) -> None:
        """
        Record one pairwise judgment and its reciprocal.

        Values off the Saaty scale are stored as given.

        Args:
            i: Row (left) item index
            j: Column (right) item index
            value: Importance of item i relative to item j
        """
        if i == j:
            raise ValueError(f"Cannot compare item {i} with itself")

        self._check_index(i)
        self._check_index(j)

        value = float(value)
        self._values.flags.writeable = True
        self._values[i, j] = value
        self._values[j, i] = reciprocal_value(value)
        self._values.flags.writeable = False

    def set_slider(self, i: int, j: int, slider: int) -> None:
        """Record a judgment given as a slider position."""
        self.set_comparison(i, j, slider_to_ahp_value(slider))

    def get_slider(self, i: int, j: int) -> int:
        """Slider position displaying the judgment between items i and j."""
        return ahp_value_to_slider(float(self._values[i, j]))

    def to_list(self) -> List[List[float]]:
        """Plain nested lists (persistence shape)."""
        return self._values.tolist()

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.size:
            raise IndexError(
                f"Index {index} out of range for a {self.size}x{self.size} matrix"
            )

    @classmethod
    def from_values(
        cls,
        values: Sequence[Sequence[float]],
        labels: Optional[Sequence[str]] = None
    ) -> "PairwiseMatrix":
        """
        Wrap an existing square matrix (e.g. a persisted one).

        The values are copied as given; reciprocity is not re-imposed.
        """
        array = np.array(values, dtype=float)
        if array.size == 0:
            return cls(0, labels)

        if array.ndim != 2 or array.shape[0] != array.shape[1]:
            raise ValueError(f"Comparison matrix must be square, got shape {array.shape}")

        matrix = cls(array.shape[0], labels)
        array.flags.writeable = False
        matrix._values = array
        return matrix

    @classmethod
    def from_comparisons(
        cls,
        comparisons: Mapping[str, float],
        labels: Sequence[str]
    ) -> "PairwiseMatrix":
        """
        Build a full matrix from sparse judgments.

        Keys are "<a>_<b>" meaning "a compared with b". Either ordering of a
        pair is accepted; pairs without a judgment stay at 1.

        Args:
            comparisons: Dict mapping "<a>_<b>" to a Saaty value
            labels: Ordered item labels

        Returns:
            PairwiseMatrix
        """
        matrix = cls(len(labels), labels)

        for i, left in enumerate(labels):
            for j in range(i + 1, len(labels)):
                right = labels[j]
                forward = f"{left}_{right}"
                backward = f"{right}_{left}"

                if forward in comparisons:
                    matrix.set_comparison(i, j, comparisons[forward])
                elif backward in comparisons:
                    matrix.set_comparison(j, i, comparisons[backward])

        logger.debug(f"Comparison matrix from {len(comparisons)} judgments:\n{matrix._values}")

        return matrix

    @classmethod
    def from_slider_values(
        cls,
        sliders: Mapping[str, int],
        labels: Sequence[str]
    ) -> "PairwiseMatrix":
        """Same as from_comparisons, with slider positions instead of Saaty values."""
        for position in sliders.values():
            if not SLIDER_MIN <= position <= SLIDER_MAX:
                logger.warning(
                    f"Slider position {position} outside [{SLIDER_MIN}, {SLIDER_MAX}]"
                )

        comparisons: Dict[str, float] = {
            key: slider_to_ahp_value(position) for key, position in sliders.items()
        }
        return cls.from_comparisons(comparisons, labels)
