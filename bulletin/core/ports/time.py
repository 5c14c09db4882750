"""
Time Interface.

All timestamps are timezone-aware UTC. Injected so scheduling and
batch timing can be tested with a fixed clock.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...

    def is_future(self, utc_dt: datetime, grace_seconds: int = 0) -> bool:
        """Check if datetime is strictly after now (minus grace)."""
        ...
