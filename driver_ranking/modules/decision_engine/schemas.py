"""
Pydantic schemas for the driver decision engine
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import CriterionType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConsistencyResultSchema(BaseModel):
    """Consistency of one pairwise comparison matrix."""
    model_config = ConfigDict(populate_by_name=True)

    consistency_index: float = Field(0.0, alias="consistencyIndex", description="Consistency Index (CI)")
    consistency_ratio: float = Field(0.0, alias="consistencyRatio", description="Consistency Ratio (CR = CI / RI)")
    is_consistent: bool = Field(True, alias="isConsistent", description="True if CR < 0.1")
    lambda_max: Optional[float] = Field(None, alias="lambdaMax", description="Principal eigenvalue estimate")


class AHPResultSchema(BaseModel):
    """Weights and consistency derived from one comparison matrix."""
    weights: List[float] = Field(..., description="Priority vector (sums to 1)")
    consistency: ConsistencyResultSchema = Field(..., description="Consistency check")


class HierarchicalAHPResultSchema(BaseModel):
    """AHP over a whole criteria tree."""
    criteria_weights: Dict[str, float] = Field(default_factory=dict, description="Local weight of each criterion within its sibling group")
    global_weights: Dict[str, float] = Field(default_factory=dict, description="Global weight of each leaf criterion")
    consistency_results: Dict[str, ConsistencyResultSchema] = Field(default_factory=dict, description="Consistency per comparison node")


class EvaluationSchema(BaseModel):
    """One evaluator's complete submission."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid4().hex, description="Evaluation identifier")
    user_name: str = Field(..., min_length=1, description="Evaluator name")
    criteria_weights: Dict[str, float] = Field(default_factory=dict, description="Local weights")
    global_weights: Dict[str, float] = Field(default_factory=dict, description="Global leaf weights")
    consistency_results: Dict[str, ConsistencyResultSchema] = Field(default_factory=dict, description="Consistency per comparison node")
    hierarchy_data: Dict[str, List[List[float]]] = Field(default_factory=dict, description="Comparison matrix per node")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("user_name")
    @classmethod
    def validate_user_name(cls, v):
        """Evaluator names are compared trimmed."""
        v = v.strip()
        if not v:
            raise ValueError("Evaluator name must not be blank")
        return v

    @property
    def is_consistent(self) -> bool:
        """True if every comparison matrix passed the consistency check."""
        return all(r.is_consistent for r in self.consistency_results.values())

    def inconsistent_nodes(self) -> List[str]:
        """Ids of the comparison nodes with CR >= 0.1."""
        return [
            node_id
            for node_id, result in self.consistency_results.items()
            if not result.is_consistent
        ]

    def to_record(self) -> Dict[str, Any]:
        """Plain JSON-compatible record for the persistence layer."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "EvaluationSchema":
        """Rebuild an evaluation from a persisted record."""
        return cls.model_validate(record)


class RankedResultSchema(BaseModel):
    """One ranked alternative."""
    alternative: str = Field(..., description="Alternative (driver) label")
    closeness_coefficient: float = Field(..., ge=0, le=1, description="TOPSIS closeness coefficient (0-1)")
    rank: int = Field(..., ge=1, description="Rank (1 = best)")
    distance_traveled: Optional[float] = Field(None, description="Secondary key used only to break ties")


class TOPSISDetailedResultSchema(BaseModel):
    """Ranking plus every intermediate TOPSIS matrix, for audit and export."""
    results: List[RankedResultSchema]
    alternatives: List[str]
    criteria: List[str]
    weights: List[float]
    criteria_types: List[CriterionType]
    decision_matrix: List[List[float]]
    normalized_matrix: List[List[float]]
    weighted_matrix: List[List[float]]
    ideal_solution: List[float]
    negative_ideal_solution: List[float]
    distances_positive: List[float] = Field(..., description="Distance of each alternative to the ideal solution")
    distances_negative: List[float] = Field(..., description="Distance of each alternative to the negative-ideal solution")


class EvaluationRequestSchema(BaseModel):
    """Comparison matrices submitted by one evaluator."""
    user_name: str = Field(..., min_length=1, description="Evaluator name")
    hierarchy_data: Dict[str, List[List[float]]] = Field(..., description="Comparison matrix per node")


class RankingOptionsSchema(BaseModel):
    """Options for the ranking workflow."""
    alternative_column: Optional[str] = Field(None, description="Header holding the driver label (None = first header)")
    distance_column: Optional[str] = Field(None, description="Header holding the km driven (None = auto-detect)")
    include_details: bool = Field(False, description="Attach the intermediate TOPSIS matrices")


class RankingRequestSchema(BaseModel):
    """Driver ranking request."""
    evaluations: List[EvaluationSchema] = Field(default_factory=list, description="Evaluations whose weights are averaged")
    drivers: List[Dict[str, Any]] = Field(default_factory=list, description="Raw driver records keyed by column header")
    options: Optional[RankingOptionsSchema] = None


class RankingMetadataSchema(BaseModel):
    """Metadata of a ranking run."""
    evaluators: List[str] = Field(default_factory=list, description="Names of the averaged evaluators")
    consensus_weights: Dict[str, float] = Field(default_factory=dict, description="Averaged global weights")
    criteria_used: List[str] = Field(default_factory=list, description="Criterion ids entering TOPSIS, in column order")
    unmatched_criteria: List[str] = Field(default_factory=list, description="Weighted criteria without a matching column")
    alternative_column: Optional[str] = Field(None, description="Header used for driver labels")
    distance_column: Optional[str] = Field(None, description="Header used as tie-break key")
    processing_time_ms: float = Field(..., ge=0, description="Processing time in milliseconds")


class RankingResponseSchema(BaseModel):
    """Driver ranking response."""
    status: str = Field(default="success")
    timestamp: datetime = Field(default_factory=_utcnow)
    results: List[RankedResultSchema] = Field(default_factory=list, description="Ranked drivers")
    metadata: RankingMetadataSchema
    details: Optional[TOPSISDetailedResultSchema] = Field(None, description="Intermediate TOPSIS matrices")
    warnings: Optional[List[str]] = Field(None, description="Warnings")
