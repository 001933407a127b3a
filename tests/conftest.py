import asyncio
from collections.abc import Sequence
from unittest.mock import AsyncMock

import pytest

from evmstream.core.models import EventLog, LogFilter


def build_log(
    block_number: int,
    *,
    tx_index: int = 0,
    log_index: int = 0,
    tx_hash: str = "",
) -> EventLog:
    """Synthetic log entry: only the ordering fields are meaningful."""
    return EventLog(
        address="0x0000000000000000000000000000000000000001",
        topics=(),
        data_hex="0x",
        block_number=block_number,
        tx_hash=tx_hash,
        log_index=log_index,
        tx_index=tx_index,
    )


class SubscriptionStub:
    def __init__(self) -> None:
        self._err: asyncio.Future = asyncio.get_running_loop().create_future()
        self.feeder: asyncio.Task | None = None
        self.unsubscribed = 0

    def unsubscribe(self) -> None:
        self.unsubscribed += 1
        if self.feeder is not None:
            self.feeder.cancel()
        if not self._err.done():
            self._err.set_result(None)

    def err(self) -> asyncio.Future:
        return self._err

    def fail(self, exc: BaseException) -> None:
        if self.feeder is not None:
            self.feeder.cancel()
        if not self._err.done():
            self._err.set_result(exc)


class LogStub:
    """Backend replaying a scripted history and live feed.

    Both calls check they received the expected filter, the historic query
    without its upper block bound.
    """

    def __init__(
        self,
        *,
        historic: Sequence[EventLog],
        live: Sequence[EventLog],
        want_filter: LogFilter,
        subscribe_error: Exception | None = None,
        query_error: Exception | None = None,
        query_delay_s: float = 0.0,
    ) -> None:
        self.historic = list(historic)
        self.live = list(live)
        self.want_filter = want_filter
        self.subscribe_error = subscribe_error
        self.query_error = query_error
        self.query_delay_s = query_delay_s
        self.subscription: SubscriptionStub | None = None
        self.queries = 0

    @classmethod
    def counted(cls, historic_n: int, live_n: int, overlap_n: int, want_filter: LogFilter) -> "LogStub":
        """History is blocks 0..historic_n-1; live repeats its last overlap_n blocks."""
        assert historic_n >= overlap_n, "irrational test parameter"
        return cls(
            historic=[build_log(i) for i in range(historic_n)],
            live=[build_log(i + historic_n - overlap_n) for i in range(live_n)],
            want_filter=want_filter,
        )

    async def filter_logs(self, log_filter: LogFilter) -> list[EventLog]:
        self.queries += 1
        if log_filter != self.want_filter.open_ended():
            raise RuntimeError(f"filter_logs got {log_filter}, want {self.want_filter.open_ended()}")
        if self.query_delay_s:
            await asyncio.sleep(self.query_delay_s)
        if self.query_error is not None:
            raise self.query_error
        return list(self.historic)

    async def subscribe_filter_logs(self, log_filter: LogFilter, sink: asyncio.Queue) -> SubscriptionStub:
        if log_filter != self.want_filter:
            raise RuntimeError(f"subscribe_filter_logs got {log_filter}, want {self.want_filter}")
        if self.subscribe_error is not None:
            raise self.subscribe_error

        sub = SubscriptionStub()

        async def feed() -> None:
            for log in self.live:
                await sink.put(log)

        sub.feeder = asyncio.create_task(feed())
        self.subscription = sub
        return sub


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.filter_logs = AsyncMock(return_value=[])
    rpc.latest_block = AsyncMock(return_value=100)
    rpc.aclose = AsyncMock()
    return rpc


@pytest.fixture
def make_log():
    return build_log


@pytest.fixture
def log_stub():
    return LogStub


@pytest.fixture
def subscription_stub():
    return SubscriptionStub
