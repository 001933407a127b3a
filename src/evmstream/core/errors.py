from __future__ import annotations


class EvmStreamError(Exception):
    """Base class for errors raised by evmstream."""


class RPCError(EvmStreamError, RuntimeError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, code: int | None, message: str | None) -> None:
        super().__init__(f"RPC error: {code} {message}")
        self.code = code
        self.message = message


class NoOverlapError(EvmStreamError):
    """Live feed does not continue the historic batch without a gap."""


class LogMismatchError(NoOverlapError):
    """Historic and live entry share a chain position but not a transaction hash."""


class SetupTimeoutError(EvmStreamError, TimeoutError):
    """Subscription plus historic query did not complete in time."""


class ChannelClosedError(EvmStreamError):
    """Live channel is closed and drained."""
