"""Deadlines and reconnect backoff for the Fishbowl transport."""

from __future__ import annotations

import random
from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class TimeoutConfig:
    """Connect, write and per-request deadlines in seconds.

    Queries against a large Fishbowl database can run for tens of seconds, so
    the request deadline is long while connect and write stay short.
    ``request_timeout_seconds=None`` disables the per-request deadline; it
    covers queue wait plus the server's answer.
    """

    connect_timeout_seconds: float = 5.0
    request_timeout_seconds: float | None = 60.0
    write_timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        for name in ("connect_timeout_seconds", "write_timeout_seconds"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.request_timeout_seconds is not None and self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be positive or None")


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff with jitter for reconnect attempts.

    Attempt ``n`` (0-indexed) waits ``min(base * 2**n, max_delay)`` plus up to
    ``jitter_factor`` of that again. ``max_attempts`` counts connects, so a
    policy of 3 sleeps at most twice.
    """

    base_delay_seconds: float = 0.1
    max_delay_seconds: float = 5.0
    jitter_factor: float = 0.1
    max_attempts: int = 3

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_seconds < 0 or self.max_delay_seconds < 0 or self.jitter_factor < 0:
            raise ValueError("delays and jitter_factor must not be negative")

    def get_delay(self, attempt: int) -> float:
        delay = min(self.base_delay_seconds * (2**attempt), self.max_delay_seconds)
        return delay + random.uniform(0, delay * self.jitter_factor)

    def delays(self) -> Iterator[float]:
        """Sleep before each retry after the first attempt, ``max_attempts - 1`` values."""
        for attempt in range(self.max_attempts - 1):
            yield self.get_delay(attempt)
