"""Parquet snapshot of a historic log batch.

Layout is fixed: one row per log, up to four topic columns (None when the
log has fewer), rows sorted by chain position.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from evmstream.core.models import EventLog
from evmstream.core.order import position_key

HISTORY_SCHEMA = pa.schema(
    [
        pa.field("block_number", pa.uint64()),
        pa.field("tx_index", pa.uint32()),
        pa.field("log_index", pa.uint32()),
        pa.field("tx_hash", pa.string()),
        pa.field("block_hash", pa.string()),
        pa.field("address", pa.string()),
        pa.field("topic0", pa.string()),
        pa.field("topic1", pa.string()),
        pa.field("topic2", pa.string()),
        pa.field("topic3", pa.string()),
        pa.field("data", pa.string()),
        pa.field("removed", pa.bool_()),
    ]
)


def history_table(logs: Sequence[EventLog]) -> pa.Table:
    """Build the Arrow table for `logs` in chain order."""
    rows = sorted(logs, key=position_key)

    def topic(i: int) -> list[str | None]:
        return [lg.topics[i] if len(lg.topics) > i else None for lg in rows]

    arrays = {
        "block_number": [lg.block_number for lg in rows],
        "tx_index": [lg.tx_index for lg in rows],
        "log_index": [lg.log_index for lg in rows],
        "tx_hash": [lg.tx_hash for lg in rows],
        "block_hash": [lg.block_hash for lg in rows],
        "address": [lg.address for lg in rows],
        "topic0": topic(0),
        "topic1": topic(1),
        "topic2": topic(2),
        "topic3": topic(3),
        "data": [lg.data_hex for lg in rows],
        "removed": [lg.removed for lg in rows],
    }
    return pa.Table.from_pydict(arrays, schema=HISTORY_SCHEMA)


def write_history_parquet(path: Path, logs: Sequence[EventLog], *, codec: str = "zstd") -> Path:
    """Write `logs` to a single Parquet file and return its path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    pq.write_table(history_table(logs), path, compression=codec)
    return path
