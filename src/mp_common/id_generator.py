"""Snowflake-style ID generator for business IDs (products, bids, transactions).

IDs are monotonically increasing per process and rendered with a short
entity prefix (``bid_…``, ``txn_…``) so a bare id in a log line or a gateway
metadata field says what it refers to.
"""

import threading
import time

PRODUCT_PREFIX = "prd"
BID_PREFIX = "bid"
TRANSACTION_PREFIX = "txn"
PAYOUT_PREFIX = "pyt"
REVIEW_PREFIX = "rev"
LISTING_PAYMENT_PREFIX = "lpy"


class SnowflakeIdGenerator:
    """Layout (64 bits): 41 bits ms since epoch | 10 bits machine | 12 bits sequence."""

    _EPOCH_MS = 1_700_000_000_000
    _MACHINE_BITS = 10
    _SEQUENCE_BITS = 12
    _MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1

    def __init__(self, machine_id: int = 0) -> None:
        if not (0 <= machine_id < (1 << self._MACHINE_BITS)):
            raise ValueError(f"machine_id must be 0-{(1 << self._MACHINE_BITS) - 1}")
        self._machine_id = machine_id
        self._sequence = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_int(self) -> int:
        with self._lock:
            now_ms = int(time.time() * 1000)
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & self._MAX_SEQUENCE
                if self._sequence == 0:
                    while now_ms <= self._last_ms:
                        now_ms = int(time.time() * 1000)
            else:
                self._sequence = 0
            self._last_ms = now_ms
            return (
                ((now_ms - self._EPOCH_MS) << (self._MACHINE_BITS + self._SEQUENCE_BITS))
                | (self._machine_id << self._SEQUENCE_BITS)
                | self._sequence
            )

    def next_id(self, prefix: str) -> str:
        return f"{prefix}_{self.next_int()}"


_default_generator = SnowflakeIdGenerator()


def generate_id(prefix: str) -> str:
    """Generate a unique prefixed id using the module-level default generator."""
    return _default_generator.next_id(prefix)
