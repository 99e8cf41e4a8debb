"""Clock adapters."""

from datetime import date, datetime, timezone as dt_timezone

from comensales.domain.schedule.dates import local_date


class SystemClock:
    """Wall clock (UTC)."""

    def now(self) -> datetime:
        return datetime.now(dt_timezone.utc)

    def today(self, timezone: str) -> date:
        return local_date(self.now(), timezone)


class FixedClock:
    """
    Clock frozen at a given instant.

    Example:
        >>> clock = FixedClock(datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc))
        >>> clock.today("Europe/Madrid")
        datetime.date(2025, 1, 6)
    """

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=dt_timezone.utc)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def today(self, timezone: str) -> date:
        return local_date(self._instant, timezone)
