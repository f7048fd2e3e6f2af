#!/usr/bin/env python3
"""
Main entry point for the Driver Ranking Decision Engine.
"""

import argparse
import json
import sys
from typing import Any, Optional, Sequence

from driver_ranking.logging_config import configure_logging, get_logger
from driver_ranking.utils.context import clear_all_context, generate_run_id, set_evaluator

logger = get_logger(__name__)


def _read_json(path: str) -> Any:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


def _write_json(payload: Any) -> None:
    json.dump(payload, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


def show_catalog() -> None:
    """Print the criteria catalog."""
    from driver_ranking.modules.decision_engine import get_orchestrator

    catalog = get_orchestrator().catalog
    _write_json({
        "root": catalog.root.id,
        "criteria": catalog.to_records(),
        "hierarchy_template": catalog.initialize_hierarchy_data(),
    })


def compute_weights(path: str) -> None:
    """Compute an evaluation from an evaluator's comparison matrices."""
    from driver_ranking.modules.decision_engine import get_orchestrator
    from driver_ranking.modules.decision_engine.schemas import EvaluationRequestSchema

    request = EvaluationRequestSchema.model_validate(_read_json(path))
    set_evaluator(request.user_name)

    evaluation = get_orchestrator().build_evaluation(request.user_name, request.hierarchy_data)
    logger.info("evaluation_built", evaluation_id=evaluation.id, consistent=evaluation.is_consistent)

    _write_json(evaluation.to_record())


def rank(path: str, export: bool = False) -> None:
    """Rank drivers from a ranking request file."""
    from driver_ranking.modules.decision_engine import export_rows, get_orchestrator
    from driver_ranking.modules.decision_engine.schemas import RankingRequestSchema

    request = RankingRequestSchema.model_validate(_read_json(path))
    response = get_orchestrator().rank_drivers(request)
    logger.info("ranking_complete", ranked=len(response.results), warnings=len(response.warnings or []))

    if export:
        _write_json(export_rows(response.results))
    else:
        _write_json(response.model_dump(mode="json"))


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Driver Ranking Decision Engine (AHP + TOPSIS)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  catalog   Print the criteria catalog and an empty comparison template
  weights   Compute an evaluation from comparison matrices (JSON file)
  rank      Rank drivers from evaluations and driver records (JSON file)

Examples:
  python main.py catalog
  python main.py weights evaluator.json
  python main.py rank request.json --export
        """,
    )

    parser.add_argument(
        "command",
        choices=["catalog", "weights", "rank"],
        help="Command to run",
    )
    parser.add_argument("input", nargs="?", default="-", help="Input JSON file ('-' for stdin)")
    parser.add_argument("--export", action="store_true", help="Output export rows instead of the full response")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")

    args = parser.parse_args(argv)

    # Configure logging
    configure_logging(args.log_level)
    generate_run_id()

    # Run command
    try:
        if args.command == "catalog":
            show_catalog()
        elif args.command == "weights":
            compute_weights(args.input)
        elif args.command == "rank":
            rank(args.input, export=args.export)
    finally:
        clear_all_context()


if __name__ == "__main__":
    main()
