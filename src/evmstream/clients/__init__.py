"""JSON-RPC backend for historic and live logs."""

from evmstream.clients.rpc import RPC
from evmstream.clients.subscription import PollingSubscription

__all__ = [
    "RPC",
    "PollingSubscription",
]
