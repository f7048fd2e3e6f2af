"""Utility modules."""

from .context import (
    get_run_id,
    generate_run_id,
    get_evaluator,
    set_evaluator,
    clear_all_context,
)

__all__ = [
    "get_run_id",
    "generate_run_id",
    "get_evaluator",
    "set_evaluator",
    "clear_all_context",
]
