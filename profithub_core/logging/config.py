"""
Centralized logging configuration for the Profithub core.

This module provides standardized logging configuration using structlog
for all components. Feed, analytics, bot and trade modules obtain their
loggers here so that every event carries the same structure.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"  # structlog will handle formatting
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_connection_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for the quote feed connection.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger bound to the connection subsystem
    """
    return get_logger(name).bind(subsystem="connection")


def get_signal_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for bot decisions and trade routing.

    Every bot decision is part of the audit trail, so the logger is bound
    with ``audit_trail=True``.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger bound to the signals subsystem
    """
    return get_logger(name).bind(
        subsystem="signals",
        audit_trail=True
    )


def log_bot_decision(
    logger: FilteringBoundLogger,
    bot_type: str,
    action: Optional[str],
    sequence: Optional[int],
    reason: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a bot evaluation with standardized format.

    Args:
        logger: Structlog logger instance
        bot_type: Bot variant that evaluated the snapshot
        action: Signal action, or None when the bot stayed silent
        sequence: Tick sequence of the evaluated snapshot
        reason: Human readable explanation
        context: Additional context data
    """
    bound_logger = logger.bind(
        bot_type=bot_type,
        action=action or "none",
        sequence=sequence,
        reason=reason,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if action:
        bound_logger.info("Bot signal")
    else:
        bound_logger.debug("Bot idle")


def log_status_transition(
    logger: FilteringBoundLogger,
    from_status: str,
    to_status: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a connection status transition with standardized format.

    Args:
        logger: Structlog logger instance
        from_status: Previous connection status
        to_status: New connection status
        trigger: What caused the transition
        context: Additional context data
    """
    bound_logger = logger.bind(
        from_status=from_status,
        to_status=to_status,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("Connection status transition")
