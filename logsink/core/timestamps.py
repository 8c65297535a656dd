"""
logsink Timestamp Allocator

Issues strictly increasing nanosecond timestamps for log rows.

The destination table uses the timestamp as part of the row identity, so two
entries written within the same clock tick would overwrite each other.
Each issued value stays equal to the requested one whenever it can, and only
during collisions falls back to lastIssued + 1.

Invariants:
- Every issued value is greater than every value issued before it
- candidate > lastIssued  -> issued == candidate
- candidate <= lastIssued -> issued == lastIssued + 1
- Compare and assign happen under one lock (threads and asyncio tasks)

Scope: one allocator per connection, created on open and dropped on close.
Nothing is persisted; a new connection starts a new sequence.

Property of Uncompromising Sensors LLC.
"""

import threading


# Lowest signed 64-bit value, below any real Unix nanosecond timestamp
INT64_MIN = -(1 << 63)


class TimestampAllocator:
    """Mutex-guarded monotonic nanosecond counter."""

    __slots__ = ("_lastIssued", "_lock")

    def __init__(self, initial: int = INT64_MIN):
        """
        Args:
            initial: Starting lastIssued value; the first candidate above it
                     is returned unchanged
        """
        self._lastIssued = initial
        self._lock = threading.Lock()

    @property
    def lastIssued(self) -> int:
        """Last value handed out (or the initial sentinel)."""
        with self._lock:
            return self._lastIssued

    def allocate(self, candidate: int) -> int:
        """
        Issue a timestamp for a candidate value.

        Args:
            candidate: Requested Unix timestamp in nanoseconds

        Returns:
            candidate if it is above every previously issued value,
            otherwise lastIssued + 1
        """
        with self._lock:
            if candidate > self._lastIssued:
                self._lastIssued = candidate
            else:
                self._lastIssued += 1
            return self._lastIssued

    def __repr__(self) -> str:
        return f"TimestampAllocator(lastIssued={self._lastIssued})"
