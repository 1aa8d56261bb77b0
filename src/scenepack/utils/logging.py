"""Structured logging configuration for scenepack.

stdlib loggers (``logging.getLogger(__name__)``) are rendered by structlog.
Every record emitted inside :func:`run_context` carries the ``run_id`` of
the plan, batch or CLI session that produced it, including records from
background tasks started by the API.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Iterator

import structlog

NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "google_genai",
    "google_genai.models",
    "urllib3.connectionpool",
    "aiosqlite",
    "uvicorn.access",
)


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Route stdlib and structlog records through one structlog renderer.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: JSON lines instead of colored console output
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def new_run_id(source: str) -> str:
    """Run id such as ``api-images-1718000000000``."""
    return f"{source}-{int(time.time() * 1000)}"


@contextmanager
def run_context(run_id: str, **fields) -> Iterator[str]:
    """Bind ``run_id`` (and any extra fields) to every record in the block.

    Bindings live in context variables, so a task created inside the block
    inherits them and concurrent tasks never see each other's run id.
    """
    with structlog.contextvars.bound_contextvars(run_id=run_id, **fields):
        yield run_id
