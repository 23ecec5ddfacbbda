"""
Structured logging helpers for queue, scheduler and scraper events.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any


def _coerce(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    *,
    exc_info: bool = False,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON. ``None`` fields are dropped.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event}
    payload.update({key: _coerce(value) for key, value in fields.items() if value is not None})
    logger.log(level, json.dumps(payload, default=str, sort_keys=True), exc_info=exc_info)
