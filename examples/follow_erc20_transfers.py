import asyncio

from evmstream import TRANSFER_T0, Reader
from evmstream.clients.rpc import RPC
from evmstream.constants import POLL_MARGIN_S
from evmstream.core.config import ReconcileConfig
from evmstream.core.models import LogFilter

RPC_URL = "https://base-rpc.publicnode.com"
USDC = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"  # USDC on Base


async def main():
    rpc = RPC(RPC_URL, poll_interval_s=1.0)
    # duplicates of the historic tail show up on the next filter poll
    reader = Reader(rpc, ReconcileConfig(overlap_wait_s=1.0 + POLL_MARGIN_S))

    latest = await rpc.latest_block()
    log_filter = LogFilter(
        addresses=(USDC,),
        topics=((TRANSFER_T0,),),
        from_block=latest - 20,
    )
    result = await reader.query_with_history(log_filter)
    try:
        print(f"{len(result.history)} historic transfers, {result.live.capacity}-slot live buffer")

        for _ in range(10):
            log = await result.live.get()
            print(log.block_number, log.log_index, log.tx_hash)
    finally:
        result.subscription.unsubscribe()
        await rpc.aclose()


if __name__ == "__main__":
    asyncio.run(main())
