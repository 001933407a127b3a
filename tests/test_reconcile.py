import asyncio
from unittest.mock import AsyncMock

import pytest

from evmstream.abi_events import AbiEvent, AbiInput
from evmstream.constants import STREAM_BUFFER_SIZE, TRANSFER_T0
from evmstream.core.channel import LogChannel
from evmstream.core.config import ReconcileConfig
from evmstream.core.errors import ChannelClosedError, LogMismatchError, NoOverlapError, SetupTimeoutError
from evmstream.core.models import LogFilter
from evmstream.core.use_cases.reconcile import Reader, relay

SIG_HASH = "0x" + "beef" * 16
FAST = ReconcileConfig(overlap_wait_s=0.05)


@pytest.mark.asyncio
async def test_events_with_history_drops_overlap(log_stub) -> None:
    stub = log_stub.counted(1, 1, 1, LogFilter(topics=((SIG_HASH,),)))

    result = await Reader(stub, FAST).events_with_history(SIG_HASH)

    assert len(result.history) == 1
    assert result.subscription is stub.subscription
    # live entry overlaps with historic one
    await asyncio.sleep(0.05)
    with pytest.raises(asyncio.QueueEmpty):
        result.live.get_nowait()
    result.subscription.unsubscribe()


@pytest.mark.asyncio
async def test_no_live(log_stub) -> None:
    stub = log_stub.counted(99, 0, 0, LogFilter(to_block=1001))

    result = await Reader(stub, FAST).query_with_history(LogFilter(to_block=1001))

    assert len(result.history) == 99
    await asyncio.sleep(0.05)
    with pytest.raises(asyncio.QueueEmpty):
        result.live.get_nowait()
    result.subscription.unsubscribe()


@pytest.mark.asyncio
async def test_no_history(log_stub) -> None:
    stub = log_stub.counted(0, 2, 0, LogFilter(from_block=1001))

    result = await Reader(stub, FAST).query_with_history(LogFilter(from_block=1001))

    assert result.history == ()
    first = await asyncio.wait_for(result.live.get(), 0.1)
    second = await asyncio.wait_for(result.live.get(), 0.1)
    assert first.block_number == 0
    assert second.block_number == 1
    result.subscription.unsubscribe()


@pytest.mark.asyncio
async def test_no_overlap(log_stub) -> None:
    stub = log_stub.counted(1, 1, 0, LogFilter(topics=((SIG_HASH,),)))

    with pytest.raises(NoOverlapError):
        await Reader(stub, FAST).events_with_history(SIG_HASH)
    assert stub.subscription.unsubscribed == 1


@pytest.mark.asyncio
async def test_overlap_within_history_tail(log_stub) -> None:
    # history 0..4, live repeats 3 and 4 then continues with 5
    stub = log_stub.counted(5, 3, 2, LogFilter())

    result = await Reader(stub, FAST).query_with_history(LogFilter())

    assert [log.block_number for log in result.history] == [0, 1, 2, 3, 4]
    nxt = await asyncio.wait_for(result.live.get(), 0.1)
    assert nxt.block_number == 5
    await asyncio.sleep(0.02)
    with pytest.raises(asyncio.QueueEmpty):
        result.live.get_nowait()
    result.subscription.unsubscribe()


@pytest.mark.asyncio
async def test_overlap_stops_when_live_goes_quiet(log_stub, make_log) -> None:
    stub = log_stub(
        historic=[make_log(0), make_log(1), make_log(2)],
        live=[make_log(1)],
        want_filter=LogFilter(),
    )

    result = await Reader(stub, FAST).query_with_history(LogFilter())

    assert len(result.history) == 3
    await asyncio.sleep(0.02)
    with pytest.raises(asyncio.QueueEmpty):
        result.live.get_nowait()
    result.subscription.unsubscribe()


@pytest.mark.asyncio
async def test_gap_inside_history_is_rejected(log_stub, make_log) -> None:
    stub = log_stub(
        historic=[make_log(0), make_log(2)],
        live=[make_log(1)],
        want_filter=LogFilter(),
    )

    with pytest.raises(NoOverlapError, match="missing from history"):
        await Reader(stub, FAST).query_with_history(LogFilter())
    assert stub.subscription.unsubscribed == 1


@pytest.mark.asyncio
async def test_broken_continuation_is_rejected(log_stub, make_log) -> None:
    stub = log_stub(
        historic=[make_log(0), make_log(1), make_log(2)],
        live=[make_log(1), make_log(3)],
        want_filter=LogFilter(),
    )

    with pytest.raises(NoOverlapError):
        await Reader(stub, FAST).query_with_history(LogFilter())


@pytest.mark.asyncio
async def test_same_position_other_transaction(log_stub, make_log) -> None:
    stub = log_stub(
        historic=[make_log(5, tx_hash="0x" + "aa" * 32)],
        live=[make_log(5, tx_hash="0x" + "bb" * 32)],
        want_filter=LogFilter(),
    )

    with pytest.raises(LogMismatchError):
        await Reader(stub, FAST).query_with_history(LogFilter())
    assert stub.subscription.unsubscribed == 1


@pytest.mark.asyncio
async def test_historic_query_is_open_ended(log_stub) -> None:
    want = LogFilter(addresses=("0xabc",), from_block=10, to_block=20)
    stub = log_stub.counted(2, 0, 0, want)

    result = await Reader(stub, FAST).query_with_history(want)

    assert len(result.history) == 2
    result.subscription.unsubscribe()


@pytest.mark.asyncio
async def test_subscribe_failure_skips_query(mock_rpc) -> None:
    mock_rpc.subscribe_filter_logs = AsyncMock(side_effect=ConnectionError("refused"))

    with pytest.raises(ConnectionError):
        await Reader(mock_rpc, FAST).query_with_history(LogFilter())
    mock_rpc.filter_logs.assert_not_awaited()


@pytest.mark.asyncio
async def test_query_failure_unsubscribes(log_stub) -> None:
    stub = log_stub(historic=[], live=[], want_filter=LogFilter(), query_error=ConnectionError("reset"))

    with pytest.raises(ConnectionError):
        await Reader(stub, FAST).query_with_history(LogFilter())
    assert stub.subscription.unsubscribed == 1


@pytest.mark.asyncio
async def test_setup_timeout_unsubscribes(log_stub) -> None:
    stub = log_stub(historic=[], live=[], want_filter=LogFilter(), query_delay_s=1.0)
    reader = Reader(stub, ReconcileConfig(overlap_wait_s=0.05, setup_timeout_s=0.05))

    with pytest.raises(SetupTimeoutError) as exc_info:
        await reader.query_with_history(LogFilter())
    assert isinstance(exc_info.value, TimeoutError)
    assert stub.subscription.unsubscribed == 1


@pytest.mark.asyncio
async def test_cancel_during_setup_unsubscribes(log_stub) -> None:
    stub = log_stub(historic=[], live=[], want_filter=LogFilter(), query_delay_s=1.0)

    task = asyncio.create_task(Reader(stub, FAST).query_with_history(LogFilter()))
    await asyncio.sleep(0.02)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert stub.subscription.unsubscribed == 1


@pytest.mark.asyncio
async def test_unsubscribe_closes_live_channel(log_stub) -> None:
    stub = log_stub.counted(0, 1, 0, LogFilter())
    result = await Reader(stub, FAST).query_with_history(LogFilter())

    assert (await asyncio.wait_for(result.live.get(), 0.1)).block_number == 0
    result.subscription.unsubscribe()

    with pytest.raises(ChannelClosedError):
        await asyncio.wait_for(result.live.get(), 0.1)
    assert await result.subscription.err() is None


@pytest.mark.asyncio
async def test_transport_fault_closes_live_channel(log_stub) -> None:
    stub = log_stub.counted(0, 0, 0, LogFilter())
    result = await Reader(stub, FAST).query_with_history(LogFilter())

    fault = ConnectionError("connection lost")
    stub.subscription.fail(fault)

    with pytest.raises(ChannelClosedError):
        await asyncio.wait_for(result.live.get(), 0.1)
    assert await result.subscription.err() is fault


@pytest.mark.asyncio
async def test_unsubscribe_releases_blocked_relay(log_stub) -> None:
    stub = log_stub.counted(0, 3, 0, LogFilter())
    result = await Reader(stub, ReconcileConfig(buffer_size=1, overlap_wait_s=0.05)).query_with_history(LogFilter())

    # nobody reads: relay fills the single slot and blocks
    await asyncio.sleep(0.05)
    result.subscription.unsubscribe()
    await asyncio.sleep(0.01)

    assert result.live.get_nowait().block_number == 0
    with pytest.raises(ChannelClosedError):
        await asyncio.wait_for(result.live.get(), 0.1)


@pytest.mark.asyncio
async def test_default_buffer_size(log_stub) -> None:
    stub = log_stub.counted(1, 0, 0, LogFilter())
    result = await Reader(stub, FAST).query_with_history(LogFilter())

    assert result.live.capacity == STREAM_BUFFER_SIZE == 60
    result.subscription.unsubscribe()


@pytest.mark.asyncio
async def test_events_with_history_from_abi_event(log_stub) -> None:
    transfer = AbiEvent(
        name="Transfer",
        type="event",
        inputs=[
            AbiInput(indexed=True, name="from", type="address"),
            AbiInput(indexed=True, name="to", type="address"),
            AbiInput(indexed=False, name="value", type="uint256"),
        ],
    )
    want = LogFilter(addresses=("0xabc",), topics=((TRANSFER_T0,),))
    stub = log_stub.counted(0, 0, 0, want)

    result = await Reader(stub, FAST).events_with_history(transfer, addresses=("0xABC",))

    assert result.history == ()
    result.subscription.unsubscribe()


@pytest.mark.asyncio
async def test_transport_fault_forwards_buffered_entries(make_log, subscription_stub) -> None:
    intake: asyncio.Queue = asyncio.Queue(maxsize=4)
    for block in (7, 8, 9):
        intake.put_nowait(make_log(block))
    live = LogChannel(4)
    sub = subscription_stub()
    sub.fail(ConnectionError("connection lost"))

    await asyncio.wait_for(relay(intake, live, sub), 1)

    assert [log.block_number async for log in live] == [7, 8, 9]
    with pytest.raises(ChannelClosedError):
        live.get_nowait()
    assert intake.empty()


@pytest.mark.asyncio
async def test_transport_fault_forwards_only_what_fits(make_log, subscription_stub) -> None:
    intake: asyncio.Queue = asyncio.Queue(maxsize=4)
    for block in (7, 8, 9):
        intake.put_nowait(make_log(block))
    live = LogChannel(2)
    sub = subscription_stub()
    sub.fail(ConnectionError("connection lost"))

    await asyncio.wait_for(relay(intake, live, sub), 1)

    assert live.closed
    assert [log.block_number async for log in live] == [7, 8]
    # no room left for the rest; it is dropped with the subscription
    assert intake.qsize() == 1
