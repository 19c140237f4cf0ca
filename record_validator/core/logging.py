"""
Structured logging - structlog with JSON or console rendering.
Log events are snake_case names with keyword context.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger, Processor


def configure_logging(
    level: str = "INFO",
    json_logs: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure the structured logging pipeline.

    Args:
        level: log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: render JSON instead of the colored console output
        log_file: optional file that receives the same rendered lines
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        logging.getLogger().addHandler(file_handler)


def get_logger(
    name: str,
    **initial_context: Any
) -> FilteringBoundLogger:
    """
    Return a structured logger.

    Args:
        name: logger name, usually the module name
        **initial_context: context bound to every event
    """
    logger = structlog.get_logger(name)

    if initial_context:
        logger = logger.bind(**initial_context)

    return logger


class LogEvent:
    """Standard log event names."""

    # Application lifecycle
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"
    MAINTENANCE_COMPLETED = "maintenance_completed"
    MAINTENANCE_FAILED = "maintenance_failed"

    # Document validation
    VALIDATION_STARTED = "validation_started"
    VALIDATION_COMPLETED = "validation_completed"
    VALIDATION_FAILED = "validation_failed"
    VALIDATION_CANCELLED = "validation_cancelled"
    CHECKER_FAILED = "checker_failed"

    # Batches
    BATCH_STARTED = "batch_started"
    BATCH_COMPLETED = "batch_completed"
    BATCH_FAILED = "batch_failed"
    BATCH_CANCELLED = "batch_cancelled"
    BATCH_DOCUMENT_FAILED = "batch_document_failed"

    # Corpus
    CORPUS_CLEANUP = "corpus_cleanup"

    # External services
    SEMANTIC_CALL = "semantic_api_call"
    SEMANTIC_ERROR = "semantic_api_error"
    CACHE_ERROR = "result_cache_error"
