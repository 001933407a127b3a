from __future__ import annotations

from .constants import STREAM_BUFFER_SIZE, TRANSFER_T0
from .core.channel import LogChannel
from .core.config import ReconcileConfig, StreamConfig
from .core.errors import LogMismatchError, NoOverlapError, RPCError, SetupTimeoutError
from .core.models import EventLog, LogFilter
from .core.order import order
from .core.use_cases.reconcile import Reader, ReconcileResult

__all__ = [
    "Reader",
    "ReconcileResult",
    "ReconcileConfig",
    "StreamConfig",
    "EventLog",
    "LogFilter",
    "LogChannel",
    "order",
    "NoOverlapError",
    "LogMismatchError",
    "RPCError",
    "SetupTimeoutError",
    "STREAM_BUFFER_SIZE",
    "TRANSFER_T0",
]
