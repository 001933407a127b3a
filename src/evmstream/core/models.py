"""Core data models for log streaming.

This module defines:
- `EventLog`: one matched log entry, minimally normalized from JSON-RPC.
- `LogFilter`: the query descriptor shared by the range query and the
   live subscription.

Design notes
------------
- Hex strings (addresses, topics, hashes) are lowercased on ingestion.
- Ordering only looks at (block_number, tx_index, log_index) and, as a last
  resort, tx_hash. Everything else is payload.
- `LogFilter` compares by value so two calls can be checked for using the
  identical filter.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, replace
from typing import Any


def _hex_int(v: Any) -> int:
    """Parse a JSON-RPC quantity (0x-hex string or int)."""
    if v is None:
        return 0
    if isinstance(v, int):
        return v
    s = str(v)
    return int(s, 16) if s.lower().startswith("0x") else int(s)


def to_hex_block(block: int | str) -> str:
    """Convert block number to hex string if integer, else return the tag as is."""
    if isinstance(block, int):
        return hex(block)
    return block


# === RPC record ===


@dataclass(slots=True, frozen=True)
class EventLog:
    """Log entry as fetched from RPC, minimally normalized."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x...
    data_hex: str  # "0x..."
    block_number: int
    tx_hash: str  # lowercased 0x..., "" when unknown
    log_index: int
    tx_index: int = 0
    block_hash: str = ""
    removed: bool = False  # set by the node on chain reorganisation
    block_timestamp: int | None = None

    @property
    def position(self) -> tuple[int, int, int]:
        """Chain position (block_number, tx_index, log_index)."""
        return (self.block_number, self.tx_index, self.log_index)

    def to_json_line(self) -> str:
        """Serialize as a compact JSON line."""
        return json.dumps(asdict(self), separators=(",", ":")) + "\n"

    @classmethod
    def from_rpc(cls, rl: dict[str, Any]) -> EventLog:
        """Build from a JSON-RPC log object (eth_getLogs / eth_getFilterChanges)."""
        topics = tuple((t if isinstance(t, str) else t.decode()).lower() for t in rl.get("topics", []))
        ts = rl.get("blockTimestamp")
        return cls(
            address=str(rl.get("address") or "").lower(),
            topics=topics,
            data_hex=str(rl.get("data") or "0x"),
            block_number=_hex_int(rl.get("blockNumber")),
            tx_hash=str(rl.get("transactionHash") or "").lower(),
            log_index=_hex_int(rl.get("logIndex")),
            tx_index=_hex_int(rl.get("transactionIndex")),
            block_hash=str(rl.get("blockHash") or "").lower(),
            removed=bool(rl.get("removed", False)),
            block_timestamp=None if ts is None else _hex_int(ts),
        )


# === Query descriptor ===


@dataclass(frozen=True)
class LogFilter:
    """Log filter as understood by eth_getLogs and eth_newFilter.

    `topics` holds one entry per topic position: a tuple of alternatives
    (OR-ed) or None as a wildcard. `to_block=None` means "latest".
    """

    addresses: tuple[str, ...] = ()
    topics: tuple[tuple[str, ...] | None, ...] = ()
    from_block: int | str | None = None
    to_block: int | str | None = None

    @classmethod
    def for_topic0(cls, topic0: str, *, addresses: tuple[str, ...] = ()) -> LogFilter:
        """Filter matching a single event signature."""
        return cls(
            addresses=tuple(a.lower() for a in addresses),
            topics=((topic0.lower(),),),
        )

    def open_ended(self) -> LogFilter:
        """Same filter without an upper block bound."""
        return replace(self, to_block=None)

    def to_rpc_params(self) -> dict[str, Any]:
        """Format as the single params object of eth_getLogs / eth_newFilter."""
        params: dict[str, Any] = {}
        if len(self.addresses) == 1:
            params["address"] = self.addresses[0].lower()
        elif self.addresses:
            params["address"] = [a.lower() for a in self.addresses]
        if self.topics:
            params["topics"] = [
                None if alts is None else [t.lower() for t in alts] for alts in self.topics
            ]
        if self.from_block is not None:
            params["fromBlock"] = to_hex_block(self.from_block)
        if self.to_block is not None:
            params["toBlock"] = to_hex_block(self.to_block)
        return params
