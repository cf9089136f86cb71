"""Retry-with-backoff helper for awaitable operations.

:func:`with_retry` wraps a zero-argument coroutine factory.  Each attempt
may be bounded by a timeout, failed attempts are followed by an
exponential backoff (``backoff_base ** attempt`` seconds), and the error
from the final attempt is re-raised unchanged so the caller decides how to
map it.  An optional :class:`asyncio.Event` acts as a cancel signal that
is honoured before every attempt and during backoff waits.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

from livekb.utils.errors import OperationCancelledError
from livekb.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def with_retry(
    operation: Callable[[], Awaitable[_T]],
    *,
    max_attempts: int = 3,
    backoff_base: float = 2.0,
    timeout: float | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    cancel_event: asyncio.Event | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    operation_name: str = "operation",
) -> _T:
    """Run *operation* until it succeeds or the attempt budget is spent.

    Parameters
    ----------
    operation:
        Zero-argument callable returning a fresh awaitable per attempt.
    max_attempts:
        Total number of attempts (must be >= 1).
    backoff_base:
        After failed attempt ``n`` (1-based) the helper waits
        ``backoff_base ** n`` seconds before attempt ``n + 1``.
    timeout:
        Per-attempt timeout in seconds; ``None`` disables it.  A timed-out
        attempt raises :class:`asyncio.TimeoutError` and is retried.
    retry_on:
        Exception types that trigger a retry.  Anything else propagates
        immediately.
    cancel_event:
        When set, no further attempt is started and
        :class:`OperationCancelledError` is raised.
    sleep:
        Coroutine used for backoff waits (injectable for tests).  With a
        *cancel_event* the wait is raced against the event.
    operation_name:
        Label used in log events.

    Returns
    -------
    The value returned by the first successful attempt.

    Raises
    ------
    OperationCancelledError
        If *cancel_event* is set before an attempt or during a backoff.
    BaseException
        The error from the last attempt once all attempts failed.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    retryable = (asyncio.TimeoutError, *retry_on)

    for attempt in range(1, max_attempts + 1):
        _raise_if_cancelled(cancel_event, operation_name)
        try:
            if timeout is None:
                return await operation()
            return await asyncio.wait_for(operation(), timeout=timeout)
        except OperationCancelledError:
            raise
        except retryable as exc:
            if attempt >= max_attempts:
                _logger.warning(
                    "retry_exhausted",
                    operation=operation_name,
                    attempts=attempt,
                    error=str(exc) or type(exc).__name__,
                )
                raise

            delay = backoff_base ** attempt
            _logger.info(
                "retry_scheduled",
                operation=operation_name,
                attempt=attempt,
                max_attempts=max_attempts,
                delay_seconds=delay,
                error=str(exc) or type(exc).__name__,
            )
            await _backoff(delay, cancel_event, sleep, operation_name)

    # Unreachable: the loop either returns or raises.
    raise RuntimeError(f"{operation_name}: retry loop exited unexpectedly")


def _raise_if_cancelled(cancel_event: asyncio.Event | None, operation_name: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(f"{operation_name} cancelled")


async def _backoff(
    delay: float,
    cancel_event: asyncio.Event | None,
    sleep: Callable[[float], Awaitable[object]],
    operation_name: str,
) -> None:
    if cancel_event is None:
        await sleep(delay)
        return

    # Race the injected sleep against the cancel signal.
    sleeper = asyncio.ensure_future(sleep(delay))
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleeper, waiter):
            if not task.done():
                task.cancel()
    if cancel_event.is_set():
        raise OperationCancelledError(f"{operation_name} cancelled during backoff")
    sleeper.result()
