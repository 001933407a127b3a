"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits that serves
  both historic queries (eth_getLogs) and live delivery through installed
  log filters (eth_newFilter / eth_getFilterChanges).

It returns `EventLog` records and implements `ILogsBackend`.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any

import httpx

from evmstream.clients.subscription import PollingSubscription
from evmstream.constants import POLL_INTERVAL_S
from evmstream.core.errors import RPCError
from evmstream.core.models import EventLog, LogFilter

logger = logging.getLogger(__name__)


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    poll_interval_s : float
        Delay between two eth_getFilterChanges calls of a subscription.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override (tests use `httpx.MockTransport`).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: int = 20,
        max_connections: int = 64,
        poll_interval_s: float = POLL_INTERVAL_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.poll_interval_s = poll_interval_s
        self._ids = itertools.count(1)
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=True,
            transport=transport,
        )

    async def _call(self, method: str, params: list[Any]) -> Any:
        """POST one JSON-RPC request and return its `result`."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        r = await self.client.post(self.url, json=payload)
        r.raise_for_status()
        data = r.json()
        if "error" in data:
            e = data["error"]
            if isinstance(e, dict):
                raise RPCError(e.get("code"), e.get("message"))
            raise RPCError(None, str(e))
        return data.get("result")

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        return int(await self._call("eth_blockNumber", []), 16)

    async def filter_logs(self, log_filter: LogFilter) -> list[EventLog]:
        """Fetch all logs matching the filter (eth_getLogs)."""
        result = await self._call("eth_getLogs", [log_filter.to_rpc_params()])
        return [EventLog.from_rpc(rl) for rl in result or []]

    async def new_filter(self, log_filter: LogFilter) -> str:
        """Install a log filter on the node and return its id."""
        return str(await self._call("eth_newFilter", [log_filter.to_rpc_params()]))

    async def get_filter_changes(self, filter_id: str) -> list[EventLog]:
        """Logs matched by an installed filter since the previous poll."""
        result = await self._call("eth_getFilterChanges", [filter_id])
        return [EventLog.from_rpc(rl) for rl in result or []]

    async def uninstall_filter(self, filter_id: str) -> bool:
        """Remove an installed filter; False when the node did not know it."""
        return bool(await self._call("eth_uninstallFilter", [filter_id]))

    async def subscribe_filter_logs(
        self,
        log_filter: LogFilter,
        sink: asyncio.Queue[EventLog],
    ) -> PollingSubscription:
        """Install a filter and start polling it into `sink`."""
        filter_id = await self.new_filter(log_filter)
        logger.debug("installed log filter %s", filter_id)
        return PollingSubscription(self, filter_id, sink, poll_interval_s=self.poll_interval_s)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
