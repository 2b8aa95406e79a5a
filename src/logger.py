import logging
import sys
from typing import Any, Dict, List, Optional

import structlog


class LogConfig:
    """Centralized logging configuration."""

    LOG_LEVEL = "INFO"
    USE_JSON = False
    APP_NAME = "Sistema de Firma de Documentos"
    ENVIRONMENT = "development"


def add_app_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add application context to logs."""
    event_dict["app"] = LogConfig.APP_NAME
    event_dict["environment"] = LogConfig.ENVIRONMENT
    return event_dict


def setup_logging(
    log_level: str = "INFO",
    use_json: bool = False,
    app_name: str = "Sistema de Firma de Documentos",
    environment: str = "development",
) -> None:
    """
    Configure structlog on top of the stdlib root logger

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: Use JSON format (True) or plain console output (False)
        app_name: Application name for log context
        environment: Environment name (development, staging, production)
    """
    LogConfig.LOG_LEVEL = log_level
    LogConfig.USE_JSON = use_json
    LogConfig.APP_NAME = app_name
    LogConfig.ENVIRONMENT = environment

    logging.root.handlers = []

    shared_processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=False,
            exception_formatter=structlog.dev.plain_traceback,
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, log_level.upper()))
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=shared_processors + [renderer],
            foreign_pre_chain=shared_processors,
        )
    )

    logging.root.setLevel(getattr(logging, log_level.upper()))
    logging.root.addHandler(handler)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Get a configured logger instance.
    """
    return structlog.get_logger(name)
