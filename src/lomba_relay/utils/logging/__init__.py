# ABOUTME: Logging configuration, run context, and structured logging helpers
# ABOUTME: loguru sinks for output, structlog loggers for key-value events

from .config import LoggingMode, configure_logging, get_logging_status
from .context import RunContext
from .utils import (
    LogContext,
    generate_operation_id,
    get_logger,
    log_api_call,
    log_pipeline_step,
    with_pipeline_context,
)

__all__ = [
    # Configuration
    "LoggingMode",
    "configure_logging",
    "get_logging_status",
    # Run-scoped state
    "RunContext",
    # Utilities
    "LogContext",
    "generate_operation_id",
    "get_logger",
    "log_api_call",
    "log_pipeline_step",
    "with_pipeline_context",
]
