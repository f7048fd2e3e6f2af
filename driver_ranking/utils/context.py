"""
Log context for one analysis run.

A run is one CLI invocation; its id and the evaluator being processed are
attached to every log record. No computation reads these values.
"""

from contextvars import ContextVar
from typing import Optional
from uuid import uuid4

run_id_var: ContextVar[Optional[str]] = ContextVar('run_id', default=None)
evaluator_var: ContextVar[Optional[str]] = ContextVar('evaluator', default=None)


def get_run_id() -> Optional[str]:
    return run_id_var.get()


def generate_run_id() -> str:
    """
    Start a new run.

    Returns:
        The run id (UUID4) now stored in context
    """
    run_id = str(uuid4())
    run_id_var.set(run_id)
    return run_id


def get_evaluator() -> Optional[str]:
    return evaluator_var.get()


def set_evaluator(evaluator: str) -> None:
    evaluator_var.set(evaluator or None)


def clear_all_context() -> None:
    """Drop the run id and evaluator once a run is over."""
    run_id_var.set(None)
    evaluator_var.set(None)
