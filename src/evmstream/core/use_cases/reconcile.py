from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from evmstream.abi_events import AbiEvent, get_event_topic0
from evmstream.core.channel import LogChannel, first_or_none
from evmstream.core.config import ReconcileConfig
from evmstream.core.errors import ChannelClosedError, LogMismatchError, NoOverlapError, SetupTimeoutError
from evmstream.core.interfaces import ILogsBackend, ISubscription
from evmstream.core.models import EventLog, LogFilter
from evmstream.core.order import order

logger = logging.getLogger(__name__)

# Relay tasks are only referenced from here while they run.
_relay_tasks: set[asyncio.Task] = set()


# ---------------------------------------------------------------------------
# Output DTO
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class ReconcileResult:
    """Historic snapshot plus the live continuation that follows it."""

    live: LogChannel
    subscription: ISubscription
    history: tuple[EventLog, ...]


# ---------------------------------------------------------------------------
# Overlap detection
# ---------------------------------------------------------------------------


async def _next_live(intake: asyncio.Queue[EventLog], wait_s: float) -> EventLog | None:
    """Next intake entry, or None when nothing arrives within `wait_s`."""
    try:
        return await asyncio.wait_for(intake.get(), wait_s)
    except asyncio.TimeoutError:
        return None


def _check_identity(live: EventLog, historic: EventLog) -> None:
    """Same position must also mean same transaction."""
    if live.tx_hash and historic.tx_hash and live.tx_hash.lower() != historic.tx_hash.lower():
        raise LogMismatchError(
            f"log at {live.position} has transaction {live.tx_hash} live "
            f"but {historic.tx_hash} in history"
        )


async def count_overlap(
    history: Sequence[EventLog],
    intake: asyncio.Queue[EventLog],
    wait_s: float,
) -> int:
    """
    Consume the live entries that repeat the tail of `history`.

    The subscription was opened before the historic query ran, so the first
    live entry, when one arrives within `wait_s`, must already be part of the
    history. It is located walking backward from the end; each following live
    entry must then match the next historic entry until the history runs out.
    A wait that times out ends the walk early.

    Returns
    -------
    int
        Number of live entries consumed (all duplicates).

    Raises
    ------
    NoOverlapError
        A live entry is missing from the history or breaks the sequence.
    LogMismatchError
        A live entry matches a historic position with another transaction.
    """
    if not history:
        return 0

    first = await _next_live(intake, wait_s)
    if first is None:
        return 0

    j = len(history) - 1
    while j >= 0:
        o = order(first, history[j])
        if o == 0:
            break
        if o > 0:
            if j == len(history) - 1:
                raise NoOverlapError(
                    f"live feed starts at {first.position}, past the historic tail {history[j].position}"
                )
            raise NoOverlapError(f"live entry at {first.position} is missing from history")
        j -= 1
    else:
        raise NoOverlapError(f"live entry at {first.position} precedes the history")
    _check_identity(first, history[j])

    k = 1
    for expected in history[j + 1 :]:
        nxt = await _next_live(intake, wait_s)
        if nxt is None:
            break
        if order(nxt, expected) != 0:
            raise NoOverlapError(f"live entry at {nxt.position}, want {expected.position} from history")
        _check_identity(nxt, expected)
        k += 1
    return k


# ---------------------------------------------------------------------------
# Relay
# ---------------------------------------------------------------------------


async def relay(
    intake: asyncio.Queue[EventLog],
    live: LogChannel,
    subscription: ISubscription,
) -> None:
    """Forward intake entries to `live` until the subscription ends, then close it."""
    done = subscription.err()
    try:
        while not done.done():
            ok, log = await first_or_none(intake.get(), done)
            if not ok:
                break
            try:
                if live.qsize() < live.capacity:
                    live.put_nowait(log)  # type: ignore[arg-type]
                    continue
                ok, _ = await first_or_none(live.put(log), done)  # type: ignore[arg-type]
            except ChannelClosedError:
                # closed by the reader
                return
            if not ok:
                # dropped under backpressure
                break

        fault = None if done.cancelled() else done.result()
        if fault is not None:
            logger.warning("live subscription failed: %s", fault)
            # keep what the transport delivered before the fault
            while not intake.empty() and not live.closed and live.qsize() < live.capacity:
                live.put_nowait(intake.get_nowait())
    finally:
        live.close()


# ---------------------------------------------------------------------------
# Domain service - Reader
# ---------------------------------------------------------------------------


class Reader:
    """
    Joins a historic log query with a live subscription.

    It depends only on the abstract `ILogsBackend`; wiring a concrete RPC
    client is the application layer's job (see `orchestration.streamer`).
    """

    def __init__(self, backend: ILogsBackend, config: ReconcileConfig | None = None) -> None:
        self._backend = backend
        self._config = config or ReconcileConfig()

    @property
    def config(self) -> ReconcileConfig:
        return self._config

    async def query_with_history(self, log_filter: LogFilter) -> ReconcileResult:
        """
        Fetch all logs matching `log_filter` so far and follow up with live ones.

        Parameters
        ----------
        log_filter : LogFilter
            Used as is for the subscription. The historic query uses the same
            filter without an upper block bound.

        Notes
        -----
        - The subscription is opened before the historic query, so the live
          feed starts at or before the end of the history. Live entries that
          repeat the historic tail are dropped.
        - Setup errors (transport, overlap, cancellation, timeout) are raised
          here, after the subscription was torn down. Later faults are only
          visible through `subscription.err()`; the live channel closes then.
        """
        if self._config.setup_timeout_s is None:
            return await self._setup(log_filter)
        try:
            return await asyncio.wait_for(self._setup(log_filter), self._config.setup_timeout_s)
        except asyncio.TimeoutError as e:
            raise SetupTimeoutError(
                f"log stream setup exceeded {self._config.setup_timeout_s}s"
            ) from e

    async def events_with_history(
        self,
        event: AbiEvent | str,
        *,
        addresses: tuple[str, ...] = (),
    ) -> ReconcileResult:
        """Like `query_with_history` for a single event (ABI entry or topic0 hex)."""
        topic0 = event if isinstance(event, str) else get_event_topic0(event)
        return await self.query_with_history(LogFilter.for_topic0(topic0, addresses=addresses))

    async def _setup(self, log_filter: LogFilter) -> ReconcileResult:
        cfg = self._config
        intake: asyncio.Queue[EventLog] = asyncio.Queue(maxsize=cfg.buffer_size)

        # 1) Live first, so nothing produced during the query is missed
        subscription = await self._backend.subscribe_filter_logs(log_filter, intake)
        try:
            # 2) History up to now
            history = tuple(await self._backend.filter_logs(log_filter.open_ended()))

            # 3) Drop the live prefix that repeats the historic tail
            overlap = await count_overlap(history, intake, cfg.overlap_wait_s)
        except BaseException:
            subscription.unsubscribe()
            raise

        logger.debug(
            "log stream ready: %d historic, %d live duplicates dropped",
            len(history),
            overlap,
        )

        # 4) Relay the remainder for the lifetime of the subscription
        live = LogChannel(cfg.buffer_size)
        task = asyncio.create_task(relay(intake, live, subscription))
        _relay_tasks.add(task)
        task.add_done_callback(_relay_tasks.discard)

        return ReconcileResult(live=live, subscription=subscription, history=history)
