"""
Structured logging configuration.
Supports JSON format for log shipping and a console format for development.
"""

import logging
import sys
from typing import Optional

import structlog
from pythonjsonlogger import jsonlogger

from driver_ranking.config import settings
from driver_ranking.utils.context import get_evaluator, get_run_id


def configure_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Override log level from settings
        log_format: Override log format from settings ("json" or "text")
    """
    level = (log_level or settings.log_level).upper()
    log_format = log_format or settings.log_format

    if log_format == "json":
        configure_json_logging(level)
    else:
        configure_standard_logging(level)


def add_context_to_log(logger, method_name, event_dict):
    """
    Structlog processor adding context variables (run_id, evaluator)
    to every log entry.
    """
    run_id = get_run_id()
    if run_id:
        event_dict["run_id"] = run_id

    evaluator = get_evaluator()
    if evaluator:
        event_dict["evaluator"] = evaluator

    return event_dict


class ContextJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding service metadata and context variables."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = record.created
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = settings.app_name

        run_id = get_run_id()
        if run_id:
            log_record["run_id"] = run_id

        evaluator = get_evaluator()
        if evaluator:
            log_record["evaluator"] = evaluator


def configure_json_logging(level: str) -> None:
    """Configure JSON logging for production."""
    # Logs go to stderr so that CLI output on stdout stays parseable
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ContextJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s"
        )
    )

    logging.root.handlers = [handler]
    logging.root.setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_context_to_log,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_standard_logging(level: str) -> None:
    """Configure standard logging for development."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_context_to_log,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
