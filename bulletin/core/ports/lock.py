"""
Send Lock Interface.

Exclusive, expiring lease keyed by newsletter identity. Guarantees at
most one send orchestration per newsletter at a time.

Implementations:
1. InMemorySendLock: process-local (threading.Lock)
2. SQLiteSendLock: shared through the database (send_locks table)
"""

from __future__ import annotations

from typing import Protocol


class SendLockPort(Protocol):
    """Lease lock interface."""

    def acquire(self, key: str, ttl_seconds: int) -> bool:
        """
        Take the lease for ``key``.

        An expired lease may be taken over.

        Returns:
            True if the caller now holds the lease
        """
        ...

    def release(self, key: str) -> None:
        """Release the lease. Releasing a free key is a no-op."""
        ...
