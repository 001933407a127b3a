"""Total order over log entries.

`order(a, b)` compares chain positions with a five-valued result:

    -1 / +1   a before / after b, decided by block number or transaction index
    -2 / +2   same transaction, decided by log index
     0        same event

The magnitude only tells at which level the difference was found; callers
that need ordering should look at the sign.
"""

from __future__ import annotations

from evmstream.core.models import EventLog


def _cmp(x: int | str, y: int | str) -> int:
    return (x > y) - (x < y)


def order(a: EventLog, b: EventLog) -> int:
    """Compare `a` with `b` by (block_number, tx_index, log_index, tx_hash)."""
    c = _cmp(a.block_number, b.block_number)
    if c:
        return c
    c = _cmp(a.tx_index, b.tx_index)
    if c:
        return c
    c = _cmp(a.log_index, b.log_index)
    if c:
        return 2 * c
    # All-zero positions carry no information (synthetic entries).
    if a.block_number == 0 and a.tx_index == 0 and a.log_index == 0:
        return _cmp(a.tx_hash.lower(), b.tx_hash.lower())
    return 0


def same_event(a: EventLog, b: EventLog) -> bool:
    """Whether both entries denote the same log occurrence."""
    return order(a, b) == 0


def position_key(log: EventLog) -> tuple[int, int, int, str]:
    """Sort key that orders like `order` wherever `order` is non-zero.

    Entries at the same non-zero position compare equal under `order` but
    may still get distinct keys through `tx_hash`.
    """
    return (log.block_number, log.tx_index, log.log_index, log.tx_hash.lower())
