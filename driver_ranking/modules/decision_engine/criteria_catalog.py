"""
Criteria catalog for the driver decision engine.

The catalog is an immutable tree stored as a flat tuple of nodes with
parent and child index references. The default catalog describes the
driver evaluation hierarchy (administrative and telemetry criteria).
"""

import json
import logging
from collections import deque
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .constants import CriterionType, ROOT_CRITERION_ID
from .exceptions import CatalogError
from .utils import normalize_string

logger = logging.getLogger(__name__)


class Criterion(BaseModel):
    """One node of the criteria tree."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Criterion identifier")
    name: str = Field(..., description="Display name")
    type: CriterionType = Field(CriterionType.BENEFIT, description="Benefit or cost (leaves only)")
    children: Tuple[str, ...] = Field(default=(), description="Ordered child identifiers")
    description: str = Field("", description="What the criterion measures")
    aliases: Tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("aliases", "excelAliases"),
        description="Alternative column headers in driver data",
    )

    @property
    def is_leaf(self) -> bool:
        return not self.children


class CriteriaCatalog:
    """
    Read-only criteria tree.

    Invariants checked at construction:
    - identifiers are unique
    - every child identifier is defined
    - every node except the root has exactly one parent
    - every node is reachable from the root
    """

    def __init__(self, criteria: Iterable[Criterion], root_id: str = ROOT_CRITERION_ID):
        nodes = tuple(criteria)
        index: Dict[str, int] = {}

        for i, node in enumerate(nodes):
            if node.id in index:
                raise CatalogError(f"Duplicate criterion id '{node.id}'")
            index[node.id] = i

        if root_id not in index:
            raise CatalogError(f"Root criterion '{root_id}' is not defined")

        parents: List[Optional[int]] = [None] * len(nodes)
        for i, node in enumerate(nodes):
            for child_id in node.children:
                if child_id not in index:
                    raise CatalogError(
                        f"Criterion '{node.id}' references unknown child '{child_id}'"
                    )
                j = index[child_id]
                if parents[j] is not None:
                    raise CatalogError(f"Criterion '{child_id}' has more than one parent")
                parents[j] = i

        root_index = index[root_id]
        if parents[root_index] is not None:
            raise CatalogError(f"Root criterion '{root_id}' has a parent")

        orphans = [nodes[i].id for i, p in enumerate(parents) if p is None and i != root_index]
        if orphans:
            raise CatalogError(f"Criteria without a parent besides the root: {orphans}")

        self._nodes = nodes
        self._index = index
        self._parents: Tuple[Optional[int], ...] = tuple(parents)
        self._children: Tuple[Tuple[int, ...], ...] = tuple(
            tuple(index[c] for c in node.children) for node in nodes
        )
        self._root = root_index

        # A cycle would leave nodes unreachable from the root
        reachable = sum(1 for _ in self._walk(self._root))
        if reachable != len(nodes):
            raise CatalogError("Criteria tree contains a cycle")

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, criterion_id: str) -> bool:
        return criterion_id in self._index

    def __iter__(self):
        return iter(self._nodes)

    @property
    def root(self) -> Criterion:
        return self._nodes[self._root]

    # ------------------------------------------------------------------
    # Index-level access (arena)
    # ------------------------------------------------------------------

    def index_of(self, criterion_id: str) -> int:
        try:
            return self._index[criterion_id]
        except KeyError:
            raise KeyError(f"Unknown criterion '{criterion_id}'") from None

    def node_at(self, index: int) -> Criterion:
        return self._nodes[index]

    def parent_index(self, index: int) -> Optional[int]:
        return self._parents[index]

    def child_indices(self, index: int) -> Tuple[int, ...]:
        return self._children[index]

    def _walk(self, start: int):
        queue = deque([start])
        while queue:
            i = queue.popleft()
            yield i
            queue.extend(self._children[i])

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, criterion_id: str) -> Optional[Criterion]:
        i = self._index.get(criterion_id)
        return self._nodes[i] if i is not None else None

    def parent_of(self, criterion_id: str) -> Optional[Criterion]:
        p = self._parents[self.index_of(criterion_id)]
        return self._nodes[p] if p is not None else None

    def path_to(self, criterion_id: str) -> List[Criterion]:
        """Criteria from the root down to criterion_id (both included)."""
        path = []
        current: Optional[int] = self.index_of(criterion_id)
        while current is not None:
            path.append(self._nodes[current])
            current = self._parents[current]
        path.reverse()
        return path

    def level_of(self, criterion_id: str) -> int:
        """Depth below the root (root = 0, main criteria = 1)."""
        return len(self.path_to(criterion_id)) - 1

    def main_criteria(self) -> List[Criterion]:
        return [self._nodes[i] for i in self._children[self._root]]

    def leaf_criteria(self) -> List[Criterion]:
        return [node for node in self._nodes if node.is_leaf]

    def internal_criteria(self) -> List[Criterion]:
        return [node for node in self._nodes if not node.is_leaf]

    def comparison_nodes(self) -> List[Criterion]:
        """Internal criteria whose children need a pairwise comparison (2+ children)."""
        return [node for node in self._nodes if len(node.children) >= 2]

    def benefit_type(self, criterion_id: str) -> CriterionType:
        node = self.get(criterion_id)
        return node.type if node is not None else CriterionType.BENEFIT

    def initialize_hierarchy_data(self) -> Dict[str, List[List[float]]]:
        """All-ones (equal importance) matrix for every comparison node."""
        return {
            node.id: [[1.0] * len(node.children) for _ in node.children]
            for node in self.comparison_nodes()
        }

    # ------------------------------------------------------------------
    # Column matching
    # ------------------------------------------------------------------

    def column_mappings(self) -> Dict[str, str]:
        """Leaf name and every alias -> leaf id."""
        mappings: Dict[str, str] = {}
        for leaf in self.leaf_criteria():
            mappings[leaf.name] = leaf.id
            for alias in leaf.aliases:
                mappings[alias] = leaf.id
        return mappings

    def match_column(self, header: str) -> Optional[str]:
        """
        Leaf id matching a data column header, or None.

        Exact name/alias match first, then a match ignoring case,
        whitespace, quotes and parentheses.
        """
        mappings = self.column_mappings()
        if header in mappings:
            return mappings[header]

        normalized = normalize_string(header)
        for label, criterion_id in mappings.items():
            if normalize_string(label) == normalized:
                return criterion_id

        return None

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def to_records(self) -> List[Dict[str, Any]]:
        return [node.model_dump(mode="json") for node in self._nodes]

    @classmethod
    def from_records(
        cls,
        records: Union[Iterable[Mapping[str, Any]], Mapping[str, Mapping[str, Any]]],
        root_id: str = ROOT_CRITERION_ID,
        root_name: str = "Overall evaluation",
    ) -> "CriteriaCatalog":
        """
        Build a catalog from plain dicts.

        Records may be a list or a dict keyed by id. When no record carries
        root_id, a root is synthesized over the records nobody lists as a
        child.
        """
        if isinstance(records, Mapping):
            records = list(records.values())

        criteria = [Criterion.model_validate(dict(r)) for r in records]

        if not any(c.id == root_id for c in criteria):
            child_ids = {child for c in criteria for child in c.children}
            top_level = tuple(c.id for c in criteria if c.id not in child_ids)
            logger.debug(f"Synthesizing root '{root_id}' over {list(top_level)}")
            criteria.insert(0, Criterion(id=root_id, name=root_name, children=top_level))

        return cls(criteria, root_id=root_id)


def load_catalog(path: Optional[Union[str, Path]] = None) -> CriteriaCatalog:
    """
    Load a catalog from a JSON file, or return the default driver catalog.

    Args:
        path: JSON file holding a list (or id-keyed dict) of criteria

    Returns:
        CriteriaCatalog
    """
    if path is None:
        return DEFAULT_CATALOG

    with open(path, encoding="utf-8") as fh:
        records = json.load(fh)

    catalog = CriteriaCatalog.from_records(records)
    logger.info(f"Loaded criteria catalog from {path} ({len(catalog)} criteria)")
    return catalog


# ============================================================
# DEFAULT DRIVER EVALUATION CATALOG
# ============================================================

_BENEFIT = CriterionType.BENEFIT
_COST = CriterionType.COST

DEFAULT_CRITERIA: Tuple[Criterion, ...] = (
    Criterion(
        id=ROOT_CRITERION_ID,
        name="Driver Performance",
        children=("admin", "technical"),
        description="Overall evaluation of a driver",
    ),
    # Main criteria (level 1)
    Criterion(
        id="admin",
        name="Administrative Evaluation",
        children=("attendance", "overtime", "accident", "discipline"),
        description="Compliance with administrative rules and company policy",
    ),
    Criterion(
        id="technical",
        name="Technical Evaluation (Telemetry)",
        children=("acceleration", "speed", "engine", "idle"),
        description="Vehicle handling habits measured by telemetry",
    ),
    # Administrative sub-criteria (level 2)
    Criterion(
        id="attendance",
        name="Absence Due to Illness",
        type=_COST,
        description="Days absent on medical leave",
        aliases=("Sağlık Sebebiyle Devamsızlık Durumu",),
    ),
    Criterion(
        id="overtime",
        name="Overtime Commitment",
        children=("normal_overtime", "weekend_overtime", "holiday_overtime"),
        description="Willingness to work overtime",
    ),
    Criterion(
        id="accident",
        name="Accidents per Km Driven (Outside Workshop)",
        type=_COST,
        children=("fatal_accident", "injury_accident", "material_damage_accident"),
        description="Accidents relative to km driven, by severity",
    ),
    Criterion(
        id="discipline",
        name="Disciplinary Record per Km Driven",
        type=_COST,
        children=(
            "first_degree_dismissal",
            "second_degree_dismissal",
            "third_degree_dismissal",
            "fourth_degree_dismissal",
        ),
        description="Disciplinary referrals relative to km driven, by degree",
    ),
    # Overtime sub-criteria (level 3)
    Criterion(
        id="normal_overtime",
        name="Weekday Overtime",
        type=_BENEFIT,
        description="Overtime worked on weekdays",
        aliases=("Normal Fazla Mesai",),
    ),
    Criterion(
        id="weekend_overtime",
        name="Weekend Overtime",
        type=_BENEFIT,
        description="Overtime worked on weekly rest days",
        aliases=("Hafta Tatili Mesaisi",),
    ),
    Criterion(
        id="holiday_overtime",
        name="Public Holiday Overtime",
        type=_BENEFIT,
        description="Overtime worked on public holidays",
        aliases=("Resmi Tatil Mesaisi",),
    ),
    # Accident sub-criteria (level 3)
    Criterion(
        id="fatal_accident",
        name="Fatal Accidents",
        type=_COST,
        description="Accidents resulting in death",
        aliases=("Ölümle Sonuçlanan Kaza",),
    ),
    Criterion(
        id="injury_accident",
        name="Injury Accidents",
        type=_COST,
        description="Accidents resulting in injury",
        aliases=("Yaralanmalı Kaza",),
    ),
    Criterion(
        id="material_damage_accident",
        name="Material Damage Accidents",
        type=_COST,
        description="Accidents with material damage only",
        aliases=("Maddi Hasarlı Kaza",),
    ),
    # Discipline sub-criteria (level 3)
    Criterion(
        id="first_degree_dismissal",
        name="First Degree Disciplinary Referrals per Km",
        type=_COST,
        description="Referrals for the lightest violations",
        aliases=("1'nci Derece Disiplin İhlallerinden Sevk Sayısı Kilometreye Oranı",),
    ),
    Criterion(
        id="second_degree_dismissal",
        name="Second Degree Disciplinary Referrals per Km",
        type=_COST,
        description="Referrals for intermediate violations",
        aliases=("2'nci Derece Disiplin İhlallerinden Sevk Sayısı Kilometreye Oranı",),
    ),
    Criterion(
        id="third_degree_dismissal",
        name="Third Degree Disciplinary Referrals per Km",
        type=_COST,
        description="Referrals for serious violations",
        aliases=(
            "3'ncü Derece Disiplin İhlallerinden Sevk Sayısı Kilometreye Oranı",
            "3'nci Derece Disiplin İhlallerinden Sevk Sayısı Kilometreye Oranı",
        ),
    ),
    Criterion(
        id="fourth_degree_dismissal",
        name="Fourth Degree Disciplinary Referrals per Km",
        type=_COST,
        description="Referrals for the most severe violations",
        aliases=(
            "4'ncü Derece Disiplin İhlallerinden Sevk Sayısı Kilometreye Oranı",
            "4'nci Derece Disiplin İhlallerinden Sevk Sayısı Kilometreye Oranı",
        ),
    ),
    # Technical sub-criteria (level 2)
    Criterion(
        id="acceleration",
        name="Harsh Acceleration Count",
        type=_COST,
        description="Sudden, unnecessary accelerations",
        aliases=("Hatalı Hızlanma Sayısı",),
    ),
    Criterion(
        id="speed",
        name="Speeding Violation Count",
        type=_COST,
        description="Speed limit violations",
        aliases=("Hız İhlal Sayısı",),
    ),
    Criterion(
        id="engine",
        name="Engine (Red Lamp) Warnings",
        type=_COST,
        description="Engine fault or critical warning lamp events",
        aliases=("Motor (Kırmızı Lamba) Uyarısı", "Motor (KırmızıLamba) Uyarısı"),
    ),
    Criterion(
        id="idle",
        name="Idling Violation Count",
        type=_COST,
        description="Unnecessary idling events",
        aliases=("Rölanti İhlal Sayısı",),
    ),
)

DEFAULT_CATALOG = CriteriaCatalog(DEFAULT_CRITERIA)
