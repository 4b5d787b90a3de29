import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

MONTH_KEY_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
DEFAULT_TIMEZONE = "UTC"


@dataclass(frozen=True)
class MonthPeriod:
    key: str  # YYYY-MM
    year: int
    month: int

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        last_day = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, last_day)

    @property
    def label(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"


def today_in(timezone_name: str) -> date:
    """Current calendar date in the named IANA timezone."""
    return datetime.now(ZoneInfo(timezone_name)).date()


def month_key_for(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def parse_month(value: str) -> MonthPeriod:
    clean = value.strip()
    if not MONTH_KEY_RE.match(clean):
        raise ValueError("Month must use the YYYY-MM format")
    year_str, month_str = clean.split("-", 1)
    return MonthPeriod(clean, int(year_str), int(month_str))


def resolve_month(
    month: Optional[str], *, today: Optional[date] = None
) -> MonthPeriod:
    """Return the requested month, or the month containing ``today``."""
    if month and month.strip():
        return parse_month(month)
    today = today or today_in(DEFAULT_TIMEZONE)
    return parse_month(month_key_for(today))


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 date or date-time string.

    Offset-aware values are normalized to UTC and returned naive, so that
    "2024-03-31T23:30:00-02:00" lands in April. Returns None when the value
    cannot be parsed.
    """
    if not value:
        return None
    clean = value.strip()
    if not clean:
        return None
    try:
        parsed = datetime.fromisoformat(clean)
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    except (ValueError, OverflowError):
        # OverflowError: the offset shifts the instant outside years 1..9999
        return None
    return parsed


def month_key(value: Optional[str]) -> Optional[str]:
    parsed = parse_iso_datetime(value)
    if parsed is None:
        return None
    return month_key_for(parsed)
