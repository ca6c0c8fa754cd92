"""Assertion helpers for client errors in async tests."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import TypeVar

from fishbowl_link.protocol.exceptions import FishbowlError

TException = TypeVar("TException", bound=BaseException)


async def expect_async_exception(
    target: Callable[..., Awaitable[object]] | Awaitable[object],
    exception_type: type[TException],
    *args: object,
    **kwargs: object,
) -> TException:
    """Await ``target`` (a coroutine function or a pending task/future) and return what it raised.

    Example:
        error = await expect_async_exception(client.part_get, FishbowlConnectionError, "B201")
        error = await expect_async_exception(task, RequestTimeoutError)

    """
    awaitable = target if inspect.isawaitable(target) else target(*args, **kwargs)
    try:
        _ = await awaitable
    except exception_type as err:
        return err
    message = f"Expected {exception_type.__name__} to be raised"
    raise AssertionError(message)  # pragma: no cover


def assert_reason(error: FishbowlError, fragment: str) -> None:
    """Check the ``reason`` carried by a client error."""
    reason = getattr(error, "reason", None)
    assert reason is not None, f"{type(error).__name__} carries no reason"
    assert fragment in reason, f"{fragment!r} not in reason {reason!r}"
