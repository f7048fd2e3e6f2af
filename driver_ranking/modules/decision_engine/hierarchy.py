"""
Hierarchical AHP aggregation.

Solves the comparison matrix of every internal criterion and multiplies
local weights down the tree into global leaf weights.
"""

import logging
import math
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .ahp_calculator import AHPCalculator
from .criteria_catalog import CriteriaCatalog, DEFAULT_CATALOG
from .schemas import ConsistencyResultSchema, HierarchicalAHPResultSchema

logger = logging.getLogger(__name__)


class HierarchicalAggregator:
    """
    Combines per-node local weights into global leaf weights.

    Global weight of a leaf = product of the local weights met on the path
    from the root to the leaf (the root itself counts as 1). A leaf with any
    missing local weight on its path scores 0 until the evaluation is
    complete.
    """

    def __init__(
        self,
        catalog: Optional[CriteriaCatalog] = None,
        ahp_calculator: Optional[AHPCalculator] = None
    ):
        self.catalog = catalog or DEFAULT_CATALOG
        self.ahp_calculator = ahp_calculator or AHPCalculator()

    def calculate_local_weights(
        self,
        hierarchy_data: Mapping[str, Sequence[Sequence[float]]]
    ) -> Tuple[Dict[str, float], Dict[str, ConsistencyResultSchema]]:
        """
        Solve every comparison matrix of the hierarchy.

        Args:
            hierarchy_data: Dict mapping internal criterion id to the
                comparison matrix of its children (catalog child order)

        Returns:
            Tuple of:
            - Dict mapping criterion id to its local weight
            - Dict mapping internal criterion id to its consistency result
        """
        criteria_weights: Dict[str, float] = {}
        consistency_results: Dict[str, ConsistencyResultSchema] = {}

        for node in self.catalog.internal_criteria():
            children = node.children

            if len(children) == 1:
                # Single child takes the whole weight, nothing to compare
                criteria_weights[children[0]] = 1.0
                continue

            matrix = hierarchy_data.get(node.id)
            if matrix is None:
                logger.debug(f"No comparison matrix for '{node.id}' yet")
                continue

            n = len(children)
            if len(matrix) != n or any(len(row) != n for row in matrix):
                logger.warning(
                    f"Comparison matrix for '{node.id}' is not {n}x{n}; node left incomplete"
                )
                continue

            result = self.ahp_calculator.calculate(matrix)
            consistency_results[node.id] = result.consistency

            for child_id, weight in zip(children, result.weights):
                criteria_weights[child_id] = weight

        unknown = set(hierarchy_data) - {n.id for n in self.catalog.comparison_nodes()}
        if unknown:
            logger.warning(f"Ignoring matrices for unknown comparison nodes: {sorted(unknown)}")

        return criteria_weights, consistency_results

    def calculate_global_weights(
        self,
        criteria_weights: Mapping[str, float]
    ) -> Dict[str, float]:
        """
        Multiply local weights along each root-to-leaf path.

        The result is renormalized to sum to 1 unless every leaf is 0.

        Args:
            criteria_weights: Dict mapping criterion id to local weight

        Returns:
            Dict mapping every leaf id to its global weight
        """
        catalog = self.catalog
        global_weights: Dict[str, float] = {}

        for leaf in catalog.leaf_criteria():
            weight = 1.0
            current = catalog.index_of(leaf.id)

            # Walk up until the root, which has no weight of its own
            while catalog.parent_index(current) is not None:
                local = criteria_weights.get(catalog.node_at(current).id)
                if local is None or not math.isfinite(local):
                    weight = 0.0
                    break
                weight *= local
                current = catalog.parent_index(current)

            global_weights[leaf.id] = weight

        total = math.fsum(global_weights.values())
        if total > 0:
            global_weights = {k: w / total for k, w in global_weights.items()}

        logger.debug(f"Global weights: {global_weights}")

        return global_weights

    def calculate(
        self,
        hierarchy_data: Mapping[str, Sequence[Sequence[float]]]
    ) -> HierarchicalAHPResultSchema:
        """
        Complete hierarchical AHP: local weights, consistency, global weights.

        Args:
            hierarchy_data: Dict mapping internal criterion id to its matrix

        Returns:
            HierarchicalAHPResultSchema
        """
        criteria_weights, consistency_results = self.calculate_local_weights(hierarchy_data)
        global_weights = self.calculate_global_weights(criteria_weights)

        missing = [n.id for n in self.catalog.comparison_nodes() if n.id not in consistency_results]
        if missing:
            logger.info(f"Hierarchy incomplete, nodes without comparisons: {missing}")

        return HierarchicalAHPResultSchema(
            criteria_weights=criteria_weights,
            global_weights=global_weights,
            consistency_results=consistency_results,
        )
