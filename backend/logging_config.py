"""Centralized logging configuration."""

import logging

from config import settings

# Third-party loggers that flood DEBUG output with per-request noise.
NOISY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
    "urllib3",
    "uvicorn.access",
)


def setup_logging(level: str | None = None) -> None:
    """Configure logging for the application.

    Sets the root logger level from ``level`` or settings.LOG_LEVEL and
    pins noisy third-party loggers to WARNING. Review prompt decisions
    are logged at DEBUG by ``services.eligibility_service``; raise that
    logger alone to trace why a popup was or was not shown.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
        datefmt="%H:%M:%S",
        level=getattr(logging, level_name),
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured at %s (environment=%s)", level_name, settings.ENVIRONMENT
    )
