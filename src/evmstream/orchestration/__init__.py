"""Wiring of the RPC backend and the history/live reader.

This package provides:
- open_stream: subscribe + historic query against an RPC node
- stream_logs: drive history then live entries into a callback and sinks
"""

from evmstream.orchestration.streamer import StreamStats, build_filter, open_stream, stream_logs

__all__ = [
    "StreamStats",
    "build_filter",
    "open_stream",
    "stream_logs",
]
