"""
Clock Tool
Injectable time source so that pending/missed classification,
streaks and analysis windows can be pinned in tests
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from config import settings


def get_timezone(name: Optional[str] = None) -> ZoneInfo:
    """Zone used for calendar days and slot wall-clock times"""
    return ZoneInfo(name or settings.TIMEZONE)


class Clock:
    """Time source interface"""

    def __init__(self, tz: Optional[ZoneInfo] = None):
        self.tz = tz or get_timezone()

    def now(self) -> datetime:
        """Current time as an aware datetime in the configured zone"""
        raise NotImplementedError

    def timestamp(self) -> int:
        """Current time in epoch seconds"""
        return int(self.now().timestamp())

    def today(self):
        return self.now().date()


class SystemClock(Clock):
    """Wall clock of the host"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self.tz)


class FixedClock(Clock):
    """Clock pinned to a given instant; advance() moves it forward"""

    def __init__(self, instant: datetime, tz: Optional[ZoneInfo] = None):
        super().__init__(tz)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=self.tz)
        self._instant = instant.astimezone(self.tz)

    def now(self) -> datetime:
        return self._instant

    def advance(self, **kwargs) -> None:
        self._instant = self._instant + timedelta(**kwargs)

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=self.tz)
        self._instant = instant.astimezone(self.tz)


system_clock = SystemClock()
