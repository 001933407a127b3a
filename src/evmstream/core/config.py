from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from evmstream.constants import OVERLAP_WAIT_S, POLL_INTERVAL_S, POLL_MARGIN_S, STREAM_BUFFER_SIZE


@dataclass(frozen=True)
class ReconcileConfig:
    """
    Domain-level configuration for joining history and live logs.

    Free of infrastructure concerns (no RPC URL, no paths).
    """

    buffer_size: int = STREAM_BUFFER_SIZE
    overlap_wait_s: float = OVERLAP_WAIT_S
    setup_timeout_s: float | None = None  # None waits as long as the backend does


@dataclass(frozen=True)
class StreamConfig:
    """Configuration for streaming logs from an RPC node (CLI / scripts)."""

    rpc_url: str
    topic0s: list[str]
    addresses: list[str] = field(default_factory=list)
    from_block: int | str | None = None
    timeout_s: int = 20
    poll_interval_s: float = POLL_INTERVAL_S
    buffer_size: int = STREAM_BUFFER_SIZE
    overlap_wait_s: float = OVERLAP_WAIT_S
    setup_timeout_s: float | None = None
    # Optional sinks
    jsonl_out: Path | None = None
    history_parquet: Path | None = None

    @property
    def effective_overlap_wait_s(self) -> float:
        """Overlap wait for the polling backend.

        Live entries only surface on the next filter poll, so waiting for
        less than one polling period would forward the historic tail again.
        """
        return max(self.overlap_wait_s, self.poll_interval_s + POLL_MARGIN_S)

    def reconcile_config(self) -> ReconcileConfig:
        return ReconcileConfig(
            buffer_size=self.buffer_size,
            overlap_wait_s=self.effective_overlap_wait_s,
            setup_timeout_s=self.setup_timeout_s,
        )
