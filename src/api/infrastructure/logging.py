"""Structlog configuration for the application.

Events are rendered as colored console lines when attached to a terminal
(or when FORCE_COLOR is set, e.g. under docker compose) and as JSON lines
otherwise. Standard library loggers (uvicorn, SQLAlchemy, alembic) are
routed through the same renderer so the output stays uniform.
"""

import logging
import os
import sys

import structlog

_NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore")


def _use_colors() -> bool:
    force_color = os.environ.get("FORCE_COLOR", "").lower() in ("1", "true", "yes")
    return force_color or sys.stdout.isatty()


def configure_logging(debug: bool = False) -> None:
    """Configure structlog and bridge stdlib logging into it.

    Args:
        debug: Emit debug events (routing decisions, resolved tenants,
            cache hits).
    """
    level = logging.DEBUG if debug else logging.INFO

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: structlog.types.Processor
    if _use_colors():
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # SQL echo and HTTP wire logs only in debug.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if debug else logging.WARNING)
