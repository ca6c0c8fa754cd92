"""Correlation IDs for Fishbowl requests.

A request's ID is captured when it is submitted and re-entered around every
step that runs on its behalf later (the write, the classified response, a
timeout), so log lines from different tasks can be tied back to one call.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "generate_correlation_id",
    "get_correlation_id",
]

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fishbowl_correlation_id",
    default=None,
)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex


def get_correlation_id() -> str | None:
    return _correlation_id.get()


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    """Run the block under ``correlation_id``, or a fresh ID when None.

    The outer ID is restored on exit, including when the block raises.

    Example:
        with correlation_context(pending.correlation_id):
            logger.debug("→ Writing frame")

    """
    token = _correlation_id.set(correlation_id or generate_correlation_id())
    try:
        yield _correlation_id.get() or ""
    finally:
        _correlation_id.reset(token)
