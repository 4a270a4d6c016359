"""
structlog setup shared by the cron jobs.

Every job logs through the stdlib root handler so library warnings
(httpx, feedparser, langchain) land in the same stream as our events:
  - development: coloured console lines
  - production:  one JSON object per line in the CI job log, tracebacks
    rendered as structured dicts

Per-run context (job name, run_id) rides on structlog contextvars, so any
module-level `logger = get_logger(__name__)` picks it up without threading
ids through call signatures.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

from autopost.core.config import Settings, get_settings

QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "google_genai", "langchain_google_genai")


def _renderer(production: bool) -> structlog.types.Processor:
    if production:
        # Chinese titles stay readable in the job log
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(settings: Settings | None = None, *, job: str | None = None) -> None:
    """Route structlog and stdlib logging through one stdout handler."""
    settings = settings or get_settings()
    production = settings.app_env == "production"

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if production:
        pre_chain.append(structlog.processors.dict_tracebacks)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(production),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(settings.log_level.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.contextvars.clear_contextvars()
    if job:
        structlog.contextvars.bind_contextvars(job=job)


@contextmanager
def bound_run(run_id: str) -> Iterator[None]:
    """Tag every event logged inside the block with `run_id`."""
    with structlog.contextvars.bound_contextvars(run_id=run_id):
        yield


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
