"""
Logging configuration.

Log records carry the ETL context they were emitted in (request id for API
calls; job id, run id and trigger for job executions) through a ContextVar,
so concurrent runs on the same event loop stay distinguishable:

    2024-01-15 02:00:00 | INFO     | etl.pipeline | [job_id=parcel-refresh run_id=run_3f2a... trigger=scheduled] Starting job ...
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Iterator, Optional
from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(context)s%(message)s"

# Ordered so the prefix reads outer-to-inner
CONTEXT_KEYS = ("request_id", "job_id", "run_id", "trigger")

_log_context: ContextVar[Dict[str, str]] = ContextVar("etl_log_context", default={})


@contextmanager
def log_context(**values: Optional[str]) -> Iterator[Dict[str, str]]:
    """
    Bind context fields for every record logged inside the block.

    Nested blocks add to (and may override) the enclosing context; None
    values are ignored. Tasks created inside the block inherit it.
    """
    merged = {**_log_context.get(), **{k: str(v) for k, v in values.items() if v is not None}}
    token = _log_context.set(merged)
    try:
        yield merged
    finally:
        _log_context.reset(token)


def current_log_context() -> Dict[str, str]:
    return dict(_log_context.get())


class ContextFilter(logging.Filter):
    """Adds `context` (a "[key=value ...] " prefix, or "") to each record"""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _log_context.get()
        keys = [k for k in CONTEXT_KEYS if k in context] + sorted(k for k in context if k not in CONTEXT_KEYS)
        record.context = f"[{' '.join(f'{k}={context[k]}' for k in keys)}] " if keys else ""
        for key in CONTEXT_KEYS:
            setattr(record, key, context.get(key, "-"))
        return True


def setup_logging():
    """Configure application logging"""

    # Get log level from settings
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler]
    )

    # Keep third-party chatter out of the ETL logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {settings.LOG_LEVEL} level")
