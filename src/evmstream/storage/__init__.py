"""Sinks for streamed logs.

This package provides:
- JsonlLogWriter: append-only JSONL writer for historic and live entries
- write_history_parquet: Parquet snapshot of the historic batch
"""

from evmstream.storage.history import history_table, write_history_parquet
from evmstream.storage.jsonl import JsonlLogWriter

__all__ = [
    "JsonlLogWriter",
    "history_table",
    "write_history_parquet",
]
