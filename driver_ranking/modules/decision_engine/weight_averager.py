"""
Consensus weights across evaluators.
"""

import logging
from typing import Dict, List, Mapping, Sequence, Union

from .schemas import EvaluationSchema

logger = logging.getLogger(__name__)

WeightSource = Union[EvaluationSchema, Mapping[str, float]]


def calculate_average_weights(evaluations: Sequence[WeightSource]) -> Dict[str, float]:
    """
    Average the global weights of several evaluations.

    For every criterion found in any evaluation, the consensus weight is the
    arithmetic mean of the strictly positive values given for it. An
    evaluator who left a criterion at 0 (or did not weight it) does not pull
    the mean down; a criterion nobody weighted gets 0.

    Args:
        evaluations: Evaluations, or plain global weight maps

    Returns:
        Dict mapping criterion id to consensus weight (empty for no input)
    """
    if not evaluations:
        return {}

    weight_maps = [
        e.global_weights if isinstance(e, EvaluationSchema) else e
        for e in evaluations
    ]

    # Union of criterion ids, first-seen order
    criteria_ids: Dict[str, None] = {}
    for weights in weight_maps:
        for criterion_id in weights:
            criteria_ids.setdefault(criterion_id, None)

    average_weights: Dict[str, float] = {}
    for criterion_id in criteria_ids:
        values: List[float] = [
            weights[criterion_id]
            for weights in weight_maps
            if criterion_id in weights and weights[criterion_id] > 0
        ]
        average_weights[criterion_id] = sum(values) / len(values) if values else 0.0

    logger.debug(
        f"Averaged weights of {len(weight_maps)} evaluations over "
        f"{len(average_weights)} criteria"
    )

    return average_weights
