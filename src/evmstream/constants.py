from __future__ import annotations

# live channel capacity (intake and outward), in entries
STREAM_BUFFER_SIZE = 60

# bounded wait per live entry while matching the historic tail, in seconds
OVERLAP_WAIT_S = 0.25

# eth_getFilterChanges polling period, in seconds
POLL_INTERVAL_S = 2.0

# slack for one eth_getFilterChanges round trip on top of the polling period
POLL_MARGIN_S = 0.5

# ERC-20 Transfer(address,address,uint256)
TRANSFER_T0 = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
