# test_periods.py
from datetime import datetime, timedelta, timezone

from restodesk.services.attendance import attendance_window
from restodesk.services.periods import (
    ReportPeriod, day_window, metric_windows, month_windows, normalize_report_type,
    parse_day, resolve_period, shift_months, trailing_months,
)

UTC = timezone.utc
NOW = datetime(2024, 3, 31, 15, 30, tzinfo=UTC)  # a Sunday


def test_weekly_is_seven_days_back():
    p = resolve_period("weekly", NOW)
    assert p.end == NOW
    assert p.start == NOW - timedelta(days=7)


def test_unknown_and_missing_tokens_fall_back_to_weekly():
    for token in ("fortnightly", "", None, "  "):
        assert resolve_period(token, NOW) == resolve_period("weekly", NOW)
    assert normalize_report_type("Monthly") == "monthly"
    assert normalize_report_type("daily") == "weekly"


def test_month_based_windows_clamp_day():
    assert resolve_period("monthly", NOW).start == datetime(2024, 2, 29, 15, 30, tzinfo=UTC)
    assert resolve_period("quarterly", NOW).start == datetime(2023, 12, 31, 15, 30, tzinfo=UTC)
    assert resolve_period("yearly", NOW).start == datetime(2023, 3, 31, 15, 30, tzinfo=UTC)


def test_shift_months_crosses_year_boundary():
    assert shift_months(datetime(2024, 1, 15, tzinfo=UTC), -1) == datetime(2023, 12, 15, tzinfo=UTC)
    assert shift_months(datetime(2023, 12, 31, tzinfo=UTC), 2) == datetime(2024, 2, 29, tzinfo=UTC)


def test_month_windows_are_contiguous():
    this, last = month_windows(NOW)
    assert this.start == datetime(2024, 3, 1, tzinfo=UTC)
    assert this.end == NOW
    assert last.start == datetime(2024, 2, 1, tzinfo=UTC)
    assert last.end == this.start


def test_period_is_half_open():
    p = ReportPeriod(datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 1, 2, tzinfo=UTC))
    assert p.contains(datetime(2024, 1, 1, tzinfo=UTC))
    assert not p.contains(datetime(2024, 1, 2, tzinfo=UTC))
    # naive values are read as UTC
    assert p.contains(datetime(2024, 1, 1, 12))


def test_trailing_months_and_day_window():
    assert trailing_months(3, NOW).start == datetime(2023, 12, 31, 15, 30, tzinfo=UTC)
    d = day_window(NOW)
    assert d.start == datetime(2024, 3, 31, tzinfo=UTC)
    assert d.end == datetime(2024, 4, 1, tzinfo=UTC)


def test_metric_windows():
    w = metric_windows(NOW)
    assert w["daily"].start == NOW - timedelta(days=1)
    # NOW is a Sunday so the week starts today
    assert w["weekly"].start == datetime(2024, 3, 31, tzinfo=UTC)
    assert w["monthly"].start == datetime(2024, 3, 1, tzinfo=UTC)
    assert w["yearToDate"].start == datetime(2024, 1, 1, tzinfo=UTC)
    assert all(p.end == NOW for p in w.values())


def test_parse_day():
    assert parse_day(None) is None
    assert parse_day("2024-05-01") == datetime(2024, 5, 1, tzinfo=UTC)


def test_attendance_window_views():
    wed = datetime(2024, 4, 3, 10, tzinfo=UTC)
    week = attendance_window("week", now=wed)
    assert week.start == datetime(2024, 3, 31, tzinfo=UTC)
    assert week.end == datetime(2024, 4, 7, tzinfo=UTC)

    month = attendance_window("month", now=wed)
    assert month.start == datetime(2024, 4, 1, tzinfo=UTC)
    assert month.end == datetime(2024, 5, 1, tzinfo=UTC)

    default = attendance_window("all", now=wed)
    assert default.start == datetime(2024, 3, 4, tzinfo=UTC)
    assert default.end == datetime(2024, 4, 4, tzinfo=UTC)

    explicit = attendance_window("week", "2024-01-10", "2024-01-12", now=wed)
    assert explicit.start == datetime(2024, 1, 10, tzinfo=UTC)
    assert explicit.end == datetime(2024, 1, 13, tzinfo=UTC)
