from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo


class Clock:
    """Wall-clock source. All stored timestamps are naive UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def current_date(self, tz_name: str) -> date:
        """Calendar date 'today' as observed in the given IANA timezone."""
        utc_now = self.now().replace(tzinfo=timezone.utc)
        return utc_now.astimezone(ZoneInfo(tz_name)).date()
