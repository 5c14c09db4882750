from datetime import UTC, datetime, timedelta


class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(UTC)

    def is_future(self, utc_dt: datetime, grace_seconds: int = 0) -> bool:
        return utc_dt > (self.now_utc() - timedelta(seconds=grace_seconds))


class FixedClock:
    """Clock pinned to one instant; advance() moves it forward."""

    def __init__(self, now: datetime) -> None:
        self._now = now

    def now_utc(self) -> datetime:
        return self._now

    def is_future(self, utc_dt: datetime, grace_seconds: int = 0) -> bool:
        return utc_dt > (self._now - timedelta(seconds=grace_seconds))

    def advance(self, **kwargs: float) -> None:
        self._now = self._now + timedelta(**kwargs)
