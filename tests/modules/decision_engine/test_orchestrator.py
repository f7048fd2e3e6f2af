"""Integration tests for Orchestrator."""

import math

import pytest

from driver_ranking.modules.decision_engine.criteria_catalog import DEFAULT_CATALOG
from driver_ranking.modules.decision_engine.orchestrator import (
    Orchestrator,
    export_rows,
    get_orchestrator,
)
from driver_ranking.modules.decision_engine.schemas import (
    ConsistencyResultSchema,
    EvaluationSchema,
    RankedResultSchema,
    RankingOptionsSchema,
    RankingRequestSchema,
)

ALTERNATIVE_COLUMN = "Sicil No"
DISTANCE_COLUMN = "Yapılan Kilometre"


class TestOrchestrator:
    """Integration test suite for Orchestrator."""

    def setup_method(self):
        """Set up test fixtures."""
        self.orchestrator = Orchestrator(DEFAULT_CATALOG)
        self.evaluation = self.orchestrator.build_evaluation(
            "Ayşe", DEFAULT_CATALOG.initialize_hierarchy_data()
        )

    def create_driver(self, label: str, cost: float, benefit: float, km: float = 1000.0):
        """Helper to create a raw driver record with every catalog column."""
        record = {ALTERNATIVE_COLUMN: label}
        for leaf in DEFAULT_CATALOG.leaf_criteria():
            value = benefit if leaf.type == "benefit" else cost
            record[leaf.aliases[0]] = value
        record[DISTANCE_COLUMN] = km
        return record

    # ============================================================
    # EVALUATION
    # ============================================================

    def test_build_evaluation(self):
        """Equal judgments give a complete, consistent evaluation."""
        evaluation = self.evaluation

        assert evaluation.user_name == "Ayşe"
        assert evaluation.id
        assert evaluation.is_consistent
        assert evaluation.inconsistent_nodes() == []
        assert len(evaluation.global_weights) == 15
        assert abs(math.fsum(evaluation.global_weights.values()) - 1.0) < 1e-9
        assert evaluation.created_at == evaluation.updated_at

    def test_build_evaluation_replaces_previous(self):
        """Re-submitting keeps the id and creation time."""
        hierarchy_data = DEFAULT_CATALOG.initialize_hierarchy_data()
        hierarchy_data["main"] = [[1, 3], [1 / 3, 1]]

        updated = self.orchestrator.build_evaluation("Ayşe", hierarchy_data, previous=self.evaluation)

        assert updated.id == self.evaluation.id
        assert updated.created_at == self.evaluation.created_at
        assert updated.updated_at >= self.evaluation.updated_at
        assert updated.global_weights["attendance"] > self.evaluation.global_weights["attendance"]

    def test_build_evaluation_reports_inconsistency(self):
        hierarchy_data = DEFAULT_CATALOG.initialize_hierarchy_data()
        hierarchy_data["overtime"] = [
            [1, 9, 1 / 9],
            [1 / 9, 1, 9],
            [9, 1 / 9, 1],
        ]

        evaluation = self.orchestrator.build_evaluation("Mehmet", hierarchy_data)

        assert not evaluation.is_consistent
        assert evaluation.inconsistent_nodes() == ["overtime"]

    def test_build_evaluation_with_misshapen_matrix(self):
        """A 2x3 root matrix leaves the evaluation incomplete instead of failing."""
        hierarchy_data = DEFAULT_CATALOG.initialize_hierarchy_data()
        hierarchy_data["main"] = [[1, 2, 3], [0.5, 1, 1]]

        evaluation = self.orchestrator.build_evaluation("Mehmet", hierarchy_data)

        assert "main" not in evaluation.consistency_results
        assert sum(evaluation.global_weights.values()) == 0.0

    def test_evaluation_record(self):
        """Persistence record uses camelCase consistency keys and reloads."""
        record = self.evaluation.to_record()

        assert record["consistency_results"]["main"]["consistencyRatio"] == 0
        assert record["consistency_results"]["main"]["isConsistent"] is True
        assert EvaluationSchema.from_record(record) == self.evaluation

    def test_blank_evaluator_rejected(self):
        with pytest.raises(ValueError):
            self.orchestrator.build_evaluation("   ", {})

    # ============================================================
    # RANKING
    # ============================================================

    def test_rank_drivers_success(self):
        """Test successful complete ranking workflow."""
        drivers = [
            self.create_driver("D2", cost=1, benefit=5),
            self.create_driver("D3", cost=2, benefit=1),
            self.create_driver("D1", cost=0, benefit=10),
        ]

        request = RankingRequestSchema(evaluations=[self.evaluation], drivers=drivers)
        response = self.orchestrator.rank_drivers(request)

        # Check response structure
        assert response.status == "success"
        assert response.warnings is None
        assert [r.alternative for r in response.results] == ["D1", "D2", "D3"]
        assert [r.rank for r in response.results] == [1, 2, 3]
        assert response.results[0].closeness_coefficient == pytest.approx(1.0)
        assert response.results[-1].closeness_coefficient == pytest.approx(0.0)

        # Check metadata
        metadata = response.metadata
        assert metadata.evaluators == ["Ayşe"]
        assert metadata.alternative_column == ALTERNATIVE_COLUMN
        assert metadata.distance_column == DISTANCE_COLUMN
        assert len(metadata.criteria_used) == 15
        assert metadata.unmatched_criteria == []
        assert metadata.processing_time_ms >= 0
        assert response.details is None

    def test_rank_drivers_tie_break_on_km(self):
        """Identical drivers are ordered by km driven."""
        drivers = [
            self.create_driver("short", cost=1, benefit=1, km=50),
            self.create_driver("long", cost=1, benefit=1, km=100),
        ]

        response = self.orchestrator.rank_drivers(
            RankingRequestSchema(evaluations=[self.evaluation], drivers=drivers)
        )

        assert [r.alternative for r in response.results] == ["long", "short"]
        assert response.results[0].distance_traveled == 100

    def test_only_weighted_criteria_are_used(self):
        evaluation = EvaluationSchema(user_name="Zeynep", global_weights={"idle": 0.7, "speed": 0.3})
        drivers = [
            self.create_driver("D1", cost=0, benefit=0),
            self.create_driver("D2", cost=4, benefit=0),
        ]

        response = self.orchestrator.rank_drivers(
            RankingRequestSchema(evaluations=[evaluation], drivers=drivers)
        )

        # Catalog leaf order
        assert response.metadata.criteria_used == ["speed", "idle"]
        assert response.results[0].alternative == "D1"

    def test_consensus_of_several_evaluators(self):
        other = EvaluationSchema(user_name="Mehmet", global_weights={"speed": 1.0})

        response = self.orchestrator.rank_drivers(
            RankingRequestSchema(
                evaluations=[self.evaluation, other],
                drivers=[self.create_driver("D1", 0, 1), self.create_driver("D2", 1, 0)],
            )
        )

        consensus = response.metadata.consensus_weights
        assert consensus["speed"] == pytest.approx((0.125 + 1.0) / 2)
        assert consensus["idle"] == pytest.approx(0.125)
        assert response.metadata.evaluators == ["Ayşe", "Mehmet"]

    def test_unmatched_criteria_warning(self):
        """Criteria without a data column stay in as zero columns."""
        drivers = [
            {ALTERNATIVE_COLUMN: "D1", "Hız İhlal Sayısı": 1},
            {ALTERNATIVE_COLUMN: "D2", "Hız İhlal Sayısı": 3},
        ]

        response = self.orchestrator.rank_drivers(
            RankingRequestSchema(evaluations=[self.evaluation], drivers=drivers)
        )

        assert len(response.metadata.unmatched_criteria) == 14
        assert response.metadata.distance_column is None
        assert any("No data column found" in w for w in response.warnings)
        assert response.results[0].alternative == "D1"

    def test_inconsistent_evaluation_warning(self):
        evaluation = EvaluationSchema(
            user_name="Mehmet",
            global_weights={"speed": 1.0},
            consistency_results={
                "technical": ConsistencyResultSchema(consistency_ratio=0.3, is_consistent=False)
            },
        )

        response = self.orchestrator.rank_drivers(
            RankingRequestSchema(
                evaluations=[evaluation],
                drivers=[self.create_driver("D1", 0, 1), self.create_driver("D2", 1, 0)],
            )
        )

        assert len(response.results) == 2
        assert any("Mehmet" in w and "technical" in w for w in response.warnings)

    def test_include_details(self):
        drivers = [self.create_driver(f"D{i}", cost=i, benefit=10 - i) for i in range(4)]

        response = self.orchestrator.rank_drivers(
            RankingRequestSchema(
                evaluations=[self.evaluation],
                drivers=drivers,
                options=RankingOptionsSchema(include_details=True),
            )
        )

        details = response.details
        assert details is not None
        assert len(details.decision_matrix) == 4
        assert len(details.decision_matrix[0]) == 15
        assert details.results == response.results

    def test_explicit_columns(self):
        drivers = [
            {"Ad": "Ali", "Plaka": "34 ABC 1", "Hız İhlal Sayısı": 2, "Mesafe": 10},
            {"Ad": "Veli", "Plaka": "34 ABC 2", "Hız İhlal Sayısı": 2, "Mesafe": 20},
        ]
        evaluation = EvaluationSchema(user_name="Ayşe", global_weights={"speed": 1.0})

        response = self.orchestrator.rank_drivers(
            RankingRequestSchema(
                evaluations=[evaluation],
                drivers=drivers,
                options=RankingOptionsSchema(alternative_column="Plaka", distance_column="Mesafe"),
            )
        )

        assert [r.alternative for r in response.results] == ["34 ABC 2", "34 ABC 1"]
        assert response.metadata.alternative_column == "Plaka"

    def test_missing_labels_are_numbered(self):
        alternatives, matrix, distance_data = self.orchestrator.build_decision_matrix(
            drivers=[{"Hız İhlal Sayısı": "3"}, {"Hız İhlal Sayısı": None}],
            criteria=[DEFAULT_CATALOG.get("speed")],
            column_map={"speed": "Hız İhlal Sayısı"},
            alternative_column=ALTERNATIVE_COLUMN,
            distance_column=None,
        )

        assert alternatives == ["Driver 1", "Driver 2"]
        assert matrix == [[3.0], [0.0]]
        assert distance_data == {"Driver 1": 0.0, "Driver 2": 0.0}

    def test_no_evaluations(self):
        response = self.orchestrator.rank_drivers(
            RankingRequestSchema(evaluations=[], drivers=[self.create_driver("D1", 0, 0)])
        )

        assert response.results == []
        assert response.warnings == ["No evaluations selected"]

    def test_no_positive_weight(self):
        evaluation = EvaluationSchema(user_name="Ayşe", global_weights={"speed": 0.0})

        response = self.orchestrator.rank_drivers(
            RankingRequestSchema(evaluations=[evaluation], drivers=[self.create_driver("D1", 0, 0)])
        )

        assert response.results == []
        assert response.warnings == ["No criterion has a positive weight"]

    def test_no_drivers(self):
        response = self.orchestrator.rank_drivers(
            RankingRequestSchema(evaluations=[self.evaluation], drivers=[])
        )

        assert response.results == []
        assert response.warnings == ["No driver data"]
        assert response.metadata.evaluators == ["Ayşe"]


class TestExport:
    """Test suite for export rows and the factory."""

    def test_export_rows(self):
        results = [
            RankedResultSchema(alternative="D1", closeness_coefficient=0.876543, rank=1, distance_traveled=1200.0),
            RankedResultSchema(alternative="D2", closeness_coefficient=0.1, rank=2),
        ]

        rows = export_rows(results, precision=2)

        assert rows[0] == ["Rank", "Driver", "TOPSIS Score", "Km Driven"]
        assert rows[1] == [1, "D1", 0.88, 1200.0]
        assert rows[2] == [2, "D2", 0.1, 0.0]

    def test_export_rows_empty(self):
        assert export_rows([]) == [["Rank", "Driver", "TOPSIS Score", "Km Driven"]]

    def test_get_orchestrator_is_singleton(self):
        assert get_orchestrator() is get_orchestrator()
