"""Live log delivery by polling an installed node filter."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from evmstream.core.models import EventLog

if TYPE_CHECKING:
    from evmstream.clients.rpc import RPC

logger = logging.getLogger(__name__)


class PollingSubscription:
    """Subscription backed by eth_getFilterChanges.

    A background task polls the filter every `poll_interval_s` seconds and
    puts each new log into `sink`, waiting while `sink` is full. A failing
    poll ends the subscription with that error (see `err()`).
    """

    def __init__(
        self,
        rpc: RPC,
        filter_id: str,
        sink: asyncio.Queue[EventLog],
        *,
        poll_interval_s: float,
    ) -> None:
        self.rpc = rpc
        self.filter_id = filter_id
        self.poll_interval_s = poll_interval_s
        self._sink = sink
        self._err: asyncio.Future[BaseException | None] = asyncio.get_running_loop().create_future()
        self._cleanup: asyncio.Task | None = None
        self._poller = asyncio.create_task(self._poll())

    async def _poll(self) -> None:
        try:
            while True:
                for log in await self.rpc.get_filter_changes(self.filter_id):
                    await self._sink.put(log)
                await asyncio.sleep(self.poll_interval_s)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("filter %s polling failed: %s", self.filter_id, e)
            if not self._err.done():
                self._err.set_result(e)

    async def _uninstall(self) -> None:
        try:
            await self.rpc.uninstall_filter(self.filter_id)
        except Exception as e:
            # the node expires unused filters on its own
            logger.debug("uninstall of filter %s failed: %s", self.filter_id, e)

    def unsubscribe(self) -> None:
        if self._cleanup is not None:
            return
        self._poller.cancel()
        self._cleanup = asyncio.create_task(self._uninstall())
        if not self._err.done():
            self._err.set_result(None)

    def err(self) -> asyncio.Future[BaseException | None]:
        return self._err

    async def wait_closed(self) -> None:
        """Wait for the filter removal scheduled by `unsubscribe()`."""
        if self._cleanup is not None:
            await self._cleanup
