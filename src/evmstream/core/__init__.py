"""Core data models, configurations, and the history/live reconciliation.

This package provides:
- Data models (EventLog, LogFilter)
- Configuration classes (ReconcileConfig, StreamConfig)
- The log order comparator and the bounded LogChannel
- Error types
"""

from evmstream.core.channel import LogChannel
from evmstream.core.config import ReconcileConfig, StreamConfig
from evmstream.core.errors import (
    ChannelClosedError,
    EvmStreamError,
    LogMismatchError,
    NoOverlapError,
    RPCError,
    SetupTimeoutError,
)
from evmstream.core.models import EventLog, LogFilter
from evmstream.core.order import order, position_key, same_event

__all__ = [
    "ChannelClosedError",
    "EventLog",
    "EvmStreamError",
    "LogChannel",
    "LogFilter",
    "LogMismatchError",
    "NoOverlapError",
    "RPCError",
    "ReconcileConfig",
    "SetupTimeoutError",
    "StreamConfig",
    "order",
    "position_key",
    "same_event",
]
