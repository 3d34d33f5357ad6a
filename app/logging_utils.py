"""
Structured logging helpers for batch recompute and benchmark workflows.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.

    Decimals, datetimes and other non-JSON values are rendered with ``str``.
    """

    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


@contextmanager
def timed_event(
    logger: logging.Logger,
    event: str,
    **fields: Any,
) -> Iterator[dict[str, Any]]:
    """
    Log ``<event>_started`` / ``<event>_completed`` around a block.

    The yielded dict is merged into the completion line, so the block can
    attach counts it only knows at the end.  Failures are logged as
    ``<event>_failed`` and re-raised.
    """

    extra: dict[str, Any] = {}
    started = time.perf_counter()
    log_event(logger, logging.INFO, f"{event}_started", **fields)
    try:
        yield extra
    except Exception as exc:
        log_event(
            logger,
            logging.WARNING,
            f"{event}_failed",
            error=type(exc).__name__,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            **fields,
        )
        raise
    log_event(
        logger,
        logging.INFO,
        f"{event}_completed",
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
        **fields,
        **extra,
    )
