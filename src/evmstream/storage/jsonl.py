from __future__ import annotations

import asyncio
import os

from evmstream.core.models import EventLog


class JsonlLogWriter:
    """Append-only JSONL writer for streamed log entries.

    Every append is flushed and synced so a crash loses at most the line
    being written.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        """Create the file (and parent directories) if missing.

        Args:
            path: File path for the JSONL output
        """
        self.path = os.fspath(path)
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        open(self.path, "a").close()
        self._lock = asyncio.Lock()

    async def append(self, log: EventLog) -> None:
        """Append one entry as a JSON line."""
        line = log.to_json_line()
        async with self._lock:
            await asyncio.to_thread(self._write_line, self.path, line)

    @staticmethod
    def _write_line(path: str, line: str) -> None:
        """Write a line to file with immediate flush and sync."""
        with open(path, "a", buffering=1) as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())
