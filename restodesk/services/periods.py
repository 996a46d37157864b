import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from restodesk.models.common import utcnow, as_utc

REPORT_TYPES = ("weekly", "monthly", "quarterly", "yearly")


@dataclass(frozen=True)
class ReportPeriod:
    """Half-open window [start, end)."""
    start: datetime
    end: datetime

    def contains(self, ts: datetime) -> bool:
        ts = as_utc(ts)
        return self.start <= ts < self.end


def shift_months(dt: datetime, months: int) -> datetime:
    # move by whole calendar months, clamping the day to the target month's end
    idx = dt.year * 12 + (dt.month - 1) + months
    year, month = divmod(idx, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def normalize_report_type(report_type: str | None) -> str:
    token = (report_type or "").strip().lower()
    return token if token in REPORT_TYPES else "weekly"


def resolve_period(report_type: str | None, now: datetime | None = None) -> ReportPeriod:
    """Map a report type token to its window ending at `now`; unknown tokens mean weekly."""
    now = as_utc(now) or utcnow()
    kind = normalize_report_type(report_type)
    if kind == "monthly":
        start = shift_months(now, -1)
    elif kind == "quarterly":
        start = shift_months(now, -3)
    elif kind == "yearly":
        start = shift_months(now, -12)
    else:
        start = now - timedelta(days=7)
    return ReportPeriod(start=start, end=now)


def start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def month_windows(now: datetime | None = None) -> tuple[ReportPeriod, ReportPeriod]:
    """(this month so far, all of last month); last.end == this.start."""
    now = as_utc(now) or utcnow()
    this_start = start_of_month(now)
    last_start = shift_months(this_start, -1)
    return ReportPeriod(this_start, now), ReportPeriod(last_start, this_start)


def trailing_months(months: int, now: datetime | None = None) -> ReportPeriod:
    now = as_utc(now) or utcnow()
    return ReportPeriod(shift_months(now, -months), now)


def day_window(day: datetime) -> ReportPeriod:
    start = start_of_day(as_utc(day))
    return ReportPeriod(start, start + timedelta(days=1))


def metric_windows(now: datetime | None = None) -> dict[str, ReportPeriod]:
    """Windows for the dashboard metrics: last 24h, week (from Sunday), month, year to date."""
    now = as_utc(now) or utcnow()
    today = start_of_day(now)
    # weekday(): Monday == 0, so Sunday is 6
    week_start = today - timedelta(days=(today.weekday() + 1) % 7)
    year_start = today.replace(month=1, day=1)
    return {
        "daily": ReportPeriod(now - timedelta(days=1), now),
        "weekly": ReportPeriod(week_start, now),
        "monthly": ReportPeriod(start_of_month(now), now),
        "yearToDate": ReportPeriod(year_start, now),
    }


def parse_day(value: str | None) -> datetime | None:
    """Parse YYYY-MM-DD (or full ISO) into an aware UTC datetime."""
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
