"""
Time-ordered identifiers.

Version ids are UUIDv7 (RFC 9562): a 48-bit millisecond timestamp followed
by random bits. Within one process ids are strictly increasing, so sorting
versions by id sorts them by creation time.
"""

import os
import threading
import time
from uuid import UUID

_lock = threading.Lock()
_last_ms = 0
_last_seq = 0

# 12 bits of rand_a are used as a counter within one millisecond
_SEQ_MAX = 0xFFF


def uuid7() -> UUID:
    """Return a new, monotonically increasing version-7 UUID."""
    global _last_ms, _last_seq

    with _lock:
        now_ms = time.time_ns() // 1_000_000
        if now_ms > _last_ms:
            _last_ms = now_ms
            _last_seq = int.from_bytes(os.urandom(2), "big") & 0x7FF
        else:
            _last_seq += 1
            if _last_seq > _SEQ_MAX:
                # Counter exhausted: borrow the next millisecond
                _last_ms += 1
                _last_seq = 0
        ms = _last_ms
        seq = _last_seq

    rand_b = int.from_bytes(os.urandom(8), "big") & ((1 << 62) - 1)

    value = (ms & ((1 << 48) - 1)) << 80
    value |= 0x7 << 76
    value |= seq << 64
    value |= 0b10 << 62
    value |= rand_b
    return UUID(int=value)


def uuid7_timestamp_ms(value: UUID) -> int:
    """Extract the millisecond timestamp from a version-7 UUID."""
    return value.int >> 80
