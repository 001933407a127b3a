"""Bounded, closable channel of log entries.

`asyncio.Queue` has no notion of end-of-stream; `LogChannel` adds one
without a sentinel item, so `close()` never blocks on a full buffer.
Buffered entries stay readable after close; readers see
`ChannelClosedError` (or the end of `async for`) once drained.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from evmstream.core.errors import ChannelClosedError
from evmstream.core.models import EventLog

T = TypeVar("T")


async def first_or_none(aw: Awaitable[T], stop: asyncio.Future | asyncio.Event) -> tuple[bool, T | None]:
    """Await `aw` unless `stop` completes first.

    Returns (True, result) when `aw` finished, (False, None) when `stop` won.
    The losing awaitable is cancelled.
    """
    task = asyncio.ensure_future(aw)
    if isinstance(stop, asyncio.Event):
        stopper: asyncio.Future = asyncio.ensure_future(stop.wait())
        own_stopper = True
    else:
        stopper = stop
        own_stopper = False
    try:
        await asyncio.wait({task, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if own_stopper and not stopper.done():
            stopper.cancel()
        if not task.done():
            task.cancel()
    if task.done() and not task.cancelled():
        return True, task.result()
    return False, None


class LogChannel:
    """Single-producer channel with a fixed capacity."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._queue: asyncio.Queue[EventLog] = asyncio.Queue(maxsize=capacity)
        self._closed = asyncio.Event()

    @property
    def capacity(self) -> int:
        return self._queue.maxsize

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def qsize(self) -> int:
        return self._queue.qsize()

    async def put(self, log: EventLog) -> None:
        """Append one entry, waiting while the channel is full."""
        if self.closed:
            raise ChannelClosedError("put on closed channel")
        ok, _ = await first_or_none(self._queue.put(log), self._closed)
        if not ok:
            raise ChannelClosedError("channel closed while waiting to put")

    def put_nowait(self, log: EventLog) -> None:
        """Append one entry; raises `asyncio.QueueFull` when there is no room."""
        if self.closed:
            raise ChannelClosedError("put on closed channel")
        self._queue.put_nowait(log)

    def close(self) -> None:
        """Mark end-of-stream. Idempotent."""
        self._closed.set()

    def get_nowait(self) -> EventLog:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            if self.closed:
                raise ChannelClosedError("channel closed") from None
            raise

    async def get(self) -> EventLog:
        """Next entry in arrival order."""
        while True:
            try:
                return self.get_nowait()
            except asyncio.QueueEmpty:
                pass
            ok, log = await first_or_none(self._queue.get(), self._closed)
            if ok:
                return log  # type: ignore[return-value]
            # closed: loop once more to drain what is left

    def __aiter__(self) -> LogChannel:
        return self

    async def __anext__(self) -> EventLog:
        try:
            return await self.get()
        except ChannelClosedError:
            raise StopAsyncIteration from None
