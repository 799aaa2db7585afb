"""
Structured logging configuration for the DCB engine.

Provides JSON-formatted logs with trace_id support for correlating the
decision build, append and retries of one command.

Environment Variables:
    DCB_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    DCB_LOG_FORMAT: Log format (json, text) - default: json

Usage:
    from dcb.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, trace_id="RegisterAccount")
    logger.info("Handling command")
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(trace_id)s",
            rename_fields={
                "asctime": "timestamp",
                "name": "logger",
                "levelname": "level",
            },
        )
    return logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s [trace_id=%(trace_id)s]",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging(stream=None) -> None:
    """
    Configure root logger with structured logging.

    Reads configuration from environment variables:
    - DCB_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    - DCB_LOG_FORMAT: json, text (default: json)
    """
    level = LEVELS.get(os.getenv("DCB_LOG_LEVEL", "INFO").upper(), logging.INFO)
    log_format = os.getenv("DCB_LOG_FORMAT", "json").lower()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(build_formatter(log_format))
    # Handler-level filter: records from any logger get a trace_id.
    handler.addFilter(TraceIDFilter())
    root_logger.addHandler(handler)

    logging.getLogger("prometheus_client").setLevel(logging.WARNING)


def get_logger(name: str, trace_id: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Get a logger with optional trace_id for correlation.

    Example:
        logger = get_logger(__name__, trace_id="SubscribeStudentToCourse")
        logger.info("Retrying")
        # Output (JSON): {"timestamp": "...", "level": "INFO", "message": "Retrying", "trace_id": "SubscribeStudentToCourse"}
    """
    logger = logging.getLogger(name)
    return logging.LoggerAdapter(logger, {"trace_id": trace_id or "N/A"})


class TraceIDFilter(logging.Filter):
    """
    Logging filter that adds trace_id to all log records.

    Ensures all logs have a trace_id field, even if not set via LoggerAdapter.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = "N/A"  # type: ignore
        return True
