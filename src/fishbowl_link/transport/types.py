"""Core dataclasses for the request dispatcher.

This module defines the data structures used to track requests from
submission until their result is delivered.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fishbowl_link.protocol.operations import Login, Operation, operation_name


class ResponseMode(Enum):
    """How the classifier shapes a successful response.

    STRUCTURED: query/import-header rows transcoded to records, others unwrapped
    PASSTHROUGH: the ``<Name>Rs`` body, no transcoding
    RAW: the untouched response envelope
    """

    STRUCTURED = "structured"
    PASSTHROUGH = "passthrough"
    RAW = "raw"


@dataclass(eq=False)
class PendingRequest:
    """A request owned by the dispatcher until its future resolves.

    Attributes:
        operation: Typed operation variant
        mode: Response shaping requested by the caller
        future: Resolved exactly once with a result or an exception
        correlation_id: ID for log correlation
        enqueued_at: time.monotonic() at submission
        dispatched_at: time.monotonic() when written, None while queued
        resubmits: Times the request was put back after session expiry
        internal: Issued by the dispatcher itself (auto-login), no caller waits
        deadline_timer: Expiry callback armed while an internal request is in flight
    """

    operation: Operation
    mode: ResponseMode
    future: asyncio.Future[Any]
    correlation_id: str
    enqueued_at: float = field(default_factory=time.monotonic)
    dispatched_at: float | None = None
    resubmits: int = 0
    internal: bool = False
    deadline_timer: asyncio.TimerHandle | None = None

    @property
    def name(self) -> str:
        return operation_name(self.operation)

    @property
    def is_login(self) -> bool:
        return isinstance(self.operation, Login)

    @property
    def done(self) -> bool:
        return self.future.done()

    def cancel_deadline(self) -> None:
        if self.deadline_timer is not None:
            self.deadline_timer.cancel()
            self.deadline_timer = None
