import logging
import os
import sys
from logging.handlers import RotatingFileHandler

import structlog

from resume_vault.core.config import get_settings


def setup_logging() -> None:
    """
    Configure the root logger and structlog exactly once.

    * Console handler on stderr, optional rotating file handler
    * ISO-8601 timestamps
    * JSON lines in prod, coloured console output elsewhere
    """
    root = logging.getLogger()
    if root.handlers:
        return

    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.log_file:
        log_dir = os.path.dirname(settings.log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            RotatingFileHandler(settings.log_file, maxBytes=5 * 1024 * 1024, backupCount=3)
        )

    logging.basicConfig(level=level, format="%(message)s", handlers=handlers)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.env.lower() == "prod"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for noisy in ("sqlalchemy.engine", "uvicorn.access", "pymongo"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
