"""Tests for the criteria catalog."""

import json

import pytest

from driver_ranking.modules.decision_engine.constants import CriterionType, ROOT_CRITERION_ID
from driver_ranking.modules.decision_engine.criteria_catalog import (
    DEFAULT_CATALOG,
    CriteriaCatalog,
    Criterion,
    load_catalog,
)
from driver_ranking.modules.decision_engine.exceptions import CatalogError


class TestDefaultCatalog:
    """Test suite for the built-in driver catalog."""

    def setup_method(self):
        """Set up test fixtures."""
        self.catalog = DEFAULT_CATALOG

    def test_root_and_main_criteria(self):
        assert self.catalog.root.id == ROOT_CRITERION_ID
        assert [c.id for c in self.catalog.main_criteria()] == ["admin", "technical"]

    def test_leaf_criteria(self):
        leaves = [c.id for c in self.catalog.leaf_criteria()]

        assert len(leaves) == 15
        assert "attendance" in leaves
        assert "holiday_overtime" in leaves
        assert "idle" in leaves
        assert "overtime" not in leaves

    def test_comparison_nodes(self):
        """Every internal node with 2+ children needs a matrix."""
        nodes = [c.id for c in self.catalog.comparison_nodes()]

        assert nodes == ["main", "admin", "technical", "overtime", "accident", "discipline"]

    def test_path_and_level(self):
        path = [c.id for c in self.catalog.path_to("injury_accident")]

        assert path == ["main", "admin", "accident", "injury_accident"]
        assert self.catalog.level_of("injury_accident") == 3
        assert self.catalog.level_of("engine") == 2
        assert self.catalog.level_of("main") == 0
        assert self.catalog.parent_of("speed").id == "technical"
        assert self.catalog.parent_of("main") is None

    def test_benefit_type(self):
        assert self.catalog.benefit_type("normal_overtime") == CriterionType.BENEFIT
        assert self.catalog.benefit_type("speed") == CriterionType.COST
        assert self.catalog.benefit_type("fatal_accident") == CriterionType.COST
        # Unknown ids default to benefit
        assert self.catalog.benefit_type("unknown") == CriterionType.BENEFIT

    def test_initialize_hierarchy_data(self):
        """Template holds an all-ones matrix per comparison node."""
        data = self.catalog.initialize_hierarchy_data()

        assert set(data) == {"main", "admin", "technical", "overtime", "accident", "discipline"}
        assert data["main"] == [[1.0, 1.0], [1.0, 1.0]]
        assert len(data["admin"]) == 4
        assert all(len(row) == 3 for row in data["overtime"])

    def test_match_column_exact(self):
        assert self.catalog.match_column("Hız İhlal Sayısı") == "speed"
        assert self.catalog.match_column("Weekend Overtime") == "weekend_overtime"

    def test_match_column_normalized(self):
        """Case, spacing and parentheses are ignored."""
        assert self.catalog.match_column("normal  fazla mesai") == "normal_overtime"
        assert self.catalog.match_column("Motor(Kırmızı Lamba)Uyarısı") == "engine"
        assert self.catalog.match_column("  Rölanti  İhlal Sayısı ") == "idle"

    def test_match_column_unknown(self):
        assert self.catalog.match_column("Yapılan Kilometre") is None
        assert self.catalog.match_column("Sicil No") is None

    def test_unknown_id(self):
        assert self.catalog.get("nope") is None
        assert "nope" not in self.catalog

        with pytest.raises(KeyError):
            self.catalog.index_of("nope")

    def test_criterion_is_immutable(self):
        with pytest.raises(Exception):
            self.catalog.root.name = "changed"


class TestCatalogValidation:
    """Test suite for catalog construction rules."""

    def test_duplicate_id(self):
        with pytest.raises(CatalogError):
            CriteriaCatalog([
                Criterion(id="main", name="Root", children=("a",)),
                Criterion(id="a", name="A"),
                Criterion(id="a", name="A again"),
            ])

    def test_unknown_child(self):
        with pytest.raises(CatalogError):
            CriteriaCatalog([Criterion(id="main", name="Root", children=("ghost",))])

    def test_missing_root(self):
        with pytest.raises(CatalogError):
            CriteriaCatalog([Criterion(id="a", name="A")])

    def test_two_parents(self):
        with pytest.raises(CatalogError):
            CriteriaCatalog([
                Criterion(id="main", name="Root", children=("a", "b")),
                Criterion(id="a", name="A", children=("c",)),
                Criterion(id="b", name="B", children=("c",)),
                Criterion(id="c", name="C"),
            ])

    def test_orphan(self):
        with pytest.raises(CatalogError):
            CriteriaCatalog([
                Criterion(id="main", name="Root", children=("a",)),
                Criterion(id="a", name="A"),
                Criterion(id="loose", name="Loose"),
            ])

    def test_cycle(self):
        """A detached cycle is neither orphaned nor reachable."""
        with pytest.raises(CatalogError):
            CriteriaCatalog([
                Criterion(id="main", name="Root", children=("a",)),
                Criterion(id="a", name="A"),
                Criterion(id="x", name="X", children=("y",)),
                Criterion(id="y", name="Y", children=("x",)),
            ])

    def test_catalog_error_is_value_error(self):
        with pytest.raises(ValueError):
            CriteriaCatalog([])


class TestCatalogLoading:
    """Test suite for building catalogs from records."""

    def test_from_records_synthesizes_root(self):
        catalog = CriteriaCatalog.from_records([
            {"id": "quality", "name": "Quality", "children": ["defects", "returns"]},
            {"id": "defects", "name": "Defects", "type": "cost"},
            {"id": "returns", "name": "Returns", "type": "cost", "excelAliases": ["Returned Parcels"]},
            {"id": "volume", "name": "Volume"},
        ])

        assert catalog.root.id == ROOT_CRITERION_ID
        assert [c.id for c in catalog.main_criteria()] == ["quality", "volume"]
        assert catalog.get("returns").aliases == ("Returned Parcels",)
        assert catalog.match_column("returned parcels") == "returns"

    def test_from_records_keyed_by_id(self):
        catalog = CriteriaCatalog.from_records({
            "main": {"id": "main", "name": "Root", "children": ["a", "b"]},
            "a": {"id": "a", "name": "A"},
            "b": {"id": "b", "name": "B", "type": "cost"},
        })

        assert len(catalog) == 3
        assert catalog.benefit_type("b") == CriterionType.COST

    def test_records_round_trip(self):
        catalog = CriteriaCatalog.from_records(DEFAULT_CATALOG.to_records())

        assert [c.id for c in catalog] == [c.id for c in DEFAULT_CATALOG]
        assert catalog.get("engine").aliases == DEFAULT_CATALOG.get("engine").aliases

    def test_load_default(self):
        assert load_catalog() is DEFAULT_CATALOG

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([
            {"id": "a", "name": "A"},
            {"id": "b", "name": "B", "type": "cost"},
        ]), encoding="utf-8")

        catalog = load_catalog(path)

        assert [c.id for c in catalog.leaf_criteria()] == ["a", "b"]
        assert [c.id for c in catalog.comparison_nodes()] == [ROOT_CRITERION_ID]
