"""Application layer: history + live logs from an RPC node.

This module provides two layers:

1) `open_stream(...)`:
   - Wires the concrete `RPC` backend into a `Reader` and runs the
     history/live reconciliation.
   - Hands back the client so the caller owns its lifecycle.

2) `stream_logs(...)` (convenience wrapper for CLI / script usage):
   - Feeds history then live entries to a callback and the optional sinks.
   - Always unsubscribes and closes the client on exit.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from evmstream.clients.rpc import RPC
from evmstream.clients.subscription import PollingSubscription
from evmstream.core.config import StreamConfig
from evmstream.core.models import EventLog, LogFilter
from evmstream.core.use_cases.reconcile import Reader, ReconcileResult
from evmstream.storage.history import write_history_parquet
from evmstream.storage.jsonl import JsonlLogWriter

logger = logging.getLogger(__name__)

OnLog = Callable[[EventLog, bool], None]


# ---------------------------------------------------------------------------
# Output DTO
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class StreamStats:
    """Counters for one `stream_logs` run."""

    historic: int = 0
    live: int = 0
    fault: BaseException | None = None


def build_filter(config: StreamConfig) -> LogFilter:
    """Filter for the configured emitters and topic0 alternatives."""
    return LogFilter(
        addresses=tuple(a.lower() for a in config.addresses),
        topics=(tuple(t.lower() for t in config.topic0s),) if config.topic0s else (),
        from_block=config.from_block,
    )


# ---------------------------------------------------------------------------
# 1) Wiring
# ---------------------------------------------------------------------------


async def open_stream(
    config: StreamConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[RPC, ReconcileResult]:
    """Connect, subscribe and fetch history. The caller closes the RPC client."""
    rpc = RPC(
        config.rpc_url,
        timeout_s=config.timeout_s,
        poll_interval_s=config.poll_interval_s,
        transport=transport,
    )
    reader = Reader(rpc, config.reconcile_config())
    try:
        result = await reader.query_with_history(build_filter(config))
    except BaseException:
        await rpc.aclose()
        raise
    return rpc, result


# ---------------------------------------------------------------------------
# 2) Convenience wrapper
# ---------------------------------------------------------------------------


async def stream_logs(
    config: StreamConfig,
    on_log: OnLog,
    *,
    max_live: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> StreamStats:
    """Deliver history then live logs to `on_log(log, is_live)`.

    Returns once `max_live` live entries were delivered, or when the
    subscription ends (transport fault), or on cancellation.
    """
    rpc, result = await open_stream(config, transport=transport)
    stats = StreamStats()
    writer = JsonlLogWriter(config.jsonl_out) if config.jsonl_out else None
    try:
        if config.history_parquet:
            await asyncio.to_thread(write_history_parquet, config.history_parquet, result.history)
            logger.info("history snapshot written to %s", config.history_parquet)

        for log in result.history:
            on_log(log, False)
            if writer:
                await writer.append(log)
            stats.historic += 1

        if max_live is None or max_live > 0:
            async for log in result.live:
                on_log(log, True)
                if writer:
                    await writer.append(log)
                stats.live += 1
                if max_live is not None and stats.live >= max_live:
                    break
    finally:
        result.subscription.unsubscribe()
        done = result.subscription.err()
        if done.done() and not done.cancelled():
            stats.fault = done.result()
        if isinstance(result.subscription, PollingSubscription):
            await result.subscription.wait_closed()
        await rpc.aclose()
    return stats
