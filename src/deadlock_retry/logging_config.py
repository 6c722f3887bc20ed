"""Structured logging configuration using structlog.

Provides JSON output for production (parseable by ELK, Loki, CloudWatch)
and pretty console output for development. Retry records carry their
fields as structured keys so they can be filtered by attempt number or
open-transaction count.

While a retried attempt runs, the controller binds ``retry_tx_attempt``
into structlog's context variables. The same processor chain is applied
to standard library records, so SQLAlchemy and driver messages emitted
during a retry carry the attempt number too.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from deadlock_retry.config import Settings
from deadlock_retry.config import settings as default_settings

# Loggers that echo every statement or checkout at INFO
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def app_context_processor(app_name: str) -> Processor:
    """Build a processor stamping ``app`` on every event.

    An ``app`` key already set by the caller wins, so the host
    application's own name is not overwritten.
    """

    def add_app_context(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("app", app_name)
        return event_dict

    return add_app_context


def configure_logging(
    log_level: Optional[str] = None,
    environment: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> None:
    """Configure structlog for structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            defaults to settings.LOG_LEVEL
        environment: Environment name (development, production);
            defaults to settings.ENVIRONMENT
        settings: Settings supplying APP_NAME and the defaults above
            (defaults to the global settings)

    In production mode:
        - JSON output for machine parsing
        - ISO timestamps
        - Exception info included

    In development mode:
        - Pretty colored console output
        - Human-readable formatting
    """
    settings = settings if settings is not None else default_settings
    log_level = log_level or settings.LOG_LEVEL
    environment = environment or settings.ENVIRONMENT
    log_level_int = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        app_context_processor(settings.APP_NAME),
    ]

    is_production = environment.lower() == "production"

    if is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain merges the bound retry context into stdlib records
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(log_level_int)

    root_logger = logging.getLogger()
    # Clear existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level_int)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level_int, logging.WARNING))

    logger = structlog.get_logger(__name__)
    logger.info(
        "Logging configured",
        app=settings.APP_NAME,
        log_level=log_level,
        environment=environment,
        renderer="json" if is_production else "console",
    )
