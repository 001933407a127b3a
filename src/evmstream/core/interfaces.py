from __future__ import annotations

import asyncio
from typing import List, Protocol, runtime_checkable

from evmstream.core.models import EventLog, LogFilter


# ---------------------------------------------------------------------------
# ISubscription
# ---------------------------------------------------------------------------

@runtime_checkable
class ISubscription(Protocol):
    """
    Handle on a live log subscription.

    Domain expectations:
    - Delivery stops after `unsubscribe()`; calling it again is a no-op.
    - Transport faults after setup are reported through `err()` and never
      raised into the caller's task.
    """

    def unsubscribe(self) -> None:
        """Stop delivery and release the server-side resources."""
        ...

    def err(self) -> asyncio.Future[BaseException | None]:
        """
        Future resolved once the subscription ends.

        The result is the transport fault that ended it, or None when it
        ended through `unsubscribe()`. The future never holds an exception
        itself, so awaiting it does not raise.
        """
        ...


# ---------------------------------------------------------------------------
# ILogsBackend
# ---------------------------------------------------------------------------

@runtime_checkable
class ILogsBackend(Protocol):
    """
    Abstract source of EVM logs, both historic and live.

    Domain expectations:
    - It returns EventLog objects already mapped into internal domain models.
    - It hides the underlying RPC / websocket / archive technology.
    """

    async def filter_logs(self, log_filter: LogFilter) -> List[EventLog]:
        """
        Return all logs matching the filter, in chain order, up to the head.

        Implementations:
        - RPC-based (eth_getLogs)
        - In-memory or scripted provider for testing
        """
        ...

    async def subscribe_filter_logs(
        self,
        log_filter: LogFilter,
        sink: asyncio.Queue[EventLog],
    ) -> ISubscription:
        """
        Start delivering logs matching the filter into `sink`.

        Entries are put in production order, waiting while `sink` is full.

        Implementations:
        - Filter polling (eth_newFilter / eth_getFilterChanges)
        - eth_subscribe over a websocket
        - Scripted provider for testing
        """
        ...
