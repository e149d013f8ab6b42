"""
Cancellable status stream for a bridge session.

A ``StatusStream`` runs the polling loop in its own asyncio task and hands
status transitions to the consumer through a queue. The loop:

1. emits ``WaitingForConnection`` without polling
2. polls once, emitting only when the kind of state changed
3. stops after a terminal state (``Confirmed`` / ``Failed``)
4. otherwise sleeps ``poll_interval`` seconds and goes back to 2

A poll error ends the stream: the consumer gets the exception from
``__anext__`` and no status is emitted for it. Only one poll is in flight at a
time. Closing the stream cancels the task, which abandons an in-flight request
or sleep at once, and no further polls are issued. A stream that is dropped
without being closed (for example after `break`) is cancelled when it is
garbage collected.

Usage::

    async with session.status() as stream:
        async for status in stream:
            ...
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from .status import Status, WaitingForConnection, is_terminal, same_state

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")

PollFunction = Callable[[], Awaitable[Status]]


class _StreamEnd:
    """Queue item closing the stream, optionally with the error that ended it."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error


class StatusStream(Generic[ResultT]):
    """Async iterator over deduplicated status transitions."""

    def __init__(self, poll: PollFunction, poll_interval: float) -> None:
        if poll_interval < 0:
            raise ValueError("poll_interval must not be negative")
        self._poll = poll
        self._poll_interval = poll_interval
        self._queue: asyncio.Queue[Status | _StreamEnd] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> StatusStream[ResultT]:
        return self

    async def __anext__(self) -> Status:
        if self._closed:
            raise StopAsyncIteration
        if self._task is None:
            self._task = asyncio.create_task(
                _poll_statuses(self._poll, self._poll_interval, self._queue)
            )
            # The task must not reference the stream, or the stream is never collected
            finalizer = weakref.finalize(self, self._task.cancel)
            finalizer.atexit = False

        try:
            item = await self._queue.get()
        except asyncio.CancelledError:
            self.cancel()
            raise

        if isinstance(item, _StreamEnd):
            self._closed = True
            if item.error is not None:
                raise item.error
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> StatusStream[ResultT]:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def cancel(self) -> None:
        """Stop polling without waiting for the task to unwind."""
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def aclose(self) -> None:
        """Stop polling and wait until the polling task has finished."""
        self.cancel()
        if self._task is not None:
            # asyncio.wait does not re-raise the task's CancelledError
            await asyncio.wait([self._task])


async def _poll_statuses(
    poll: PollFunction, poll_interval: float, queue: asyncio.Queue[Status | _StreamEnd]
) -> None:
    current: Status = WaitingForConnection()
    queue.put_nowait(current)

    try:
        while True:
            status = await poll()

            if not same_state(status, current):
                logger.debug(
                    "Status changed: %s -> %s", type(current).__name__, type(status).__name__
                )
                current = status
                queue.put_nowait(status)

            if is_terminal(status):
                break

            await asyncio.sleep(poll_interval)
    except Exception as e:
        logger.debug("Status stream ended with error: %s", e)
        queue.put_nowait(_StreamEnd(e))
        return

    queue.put_nowait(_StreamEnd())
