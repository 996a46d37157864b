from datetime import datetime, timedelta
from typing import Iterable

from restodesk.models.common import utcnow, as_utc
from restodesk.models.core import Shift, ShiftStatus, Staff
from restodesk.services.periods import (
    ReportPeriod, start_of_day, start_of_month, shift_months, parse_day,
)

ROSTER_ROLES = ("waiter", "chef", "bartender", "host", "manager", "cleaner")
ON_DUTY = (ShiftStatus.ACTIVE, ShiftStatus.LATE)
LOW_ATTENDANCE_RATE = 70


def _iso(dt: datetime | None) -> str | None:
    return as_utc(dt).isoformat() if dt else None


def attendance_window(view: str | None, start: str | None = None, end: str | None = None,
                      now: datetime | None = None) -> ReportPeriod:
    """Resolve the attendance-records window.

    An explicit start/end pair wins and covers both days in full. Otherwise
    ``week`` is Sunday through Saturday, ``month`` the calendar month and
    anything else the last 30 days through today.
    """
    now = as_utc(now) or utcnow()
    s, e = parse_day(start), parse_day(end)
    if s and e:
        return ReportPeriod(start_of_day(s), start_of_day(e) + timedelta(days=1))
    today = start_of_day(now)
    if view == "week":
        first = today - timedelta(days=(today.weekday() + 1) % 7)
        return ReportPeriod(first, first + timedelta(days=7))
    if view == "month":
        first = start_of_month(now)
        return ReportPeriod(first, shift_months(first, 1))
    return ReportPeriod(today - timedelta(days=30), today + timedelta(days=1))


def duration_minutes(shift: Shift) -> int | None:
    if shift.start_time is None or shift.end_time is None:
        return None
    return round((as_utc(shift.end_time) - as_utc(shift.start_time)).total_seconds() / 60)


def format_duration(minutes: int | None) -> str:
    if minutes is None:
        return "In progress"
    return f"{minutes // 60}h {minutes % 60}m"


def format_clock(dt: datetime | None) -> str:
    if dt is None:
        return ""
    h = dt.hour % 12 or 12
    return f"{h}:{dt.minute:02d} {'PM' if dt.hour >= 12 else 'AM'}"


def shift_out(s: Shift) -> dict:
    mins = duration_minutes(s)
    return {
        "id": s.id,
        "staffId": s.staff_id,
        "staffName": s.staff.user.name if s.staff and s.staff.user else "Unknown",
        "role": s.staff.position if s.staff else "Unknown",
        "status": s.status.value,
        "startTime": _iso(s.start_time),
        "endTime": _iso(s.end_time),
        "duration": mins or 0,
        "durationFormatted": format_duration(mins),
        "notes": s.notes,
    }


def attendance_stats(shifts: Iterable[Shift]) -> dict:
    shifts = list(shifts)
    total = len(shifts)
    completed = sum(1 for s in shifts if s.status == ShiftStatus.COMPLETED)
    late = sum(1 for s in shifts if s.status == ShiftStatus.LATE)
    absent = sum(1 for s in shifts if s.status == ShiftStatus.ABSENT)
    return {
        "totalShifts": total,
        "completedShifts": completed,
        "lateShifts": late,
        "absentShifts": absent,
        "attendanceRate": round(completed / total * 100) if total else 0,
    }


def staff_attendance(staff: Staff, shifts: list[Shift]) -> dict:
    by_date: dict[str, list[dict]] = {}
    for s in shifts:
        by_date.setdefault(as_utc(s.start_time).date().isoformat(), []).append({
            "id": s.id,
            "startTime": _iso(s.start_time),
            "endTime": _iso(s.end_time),
            "status": s.status.value,
            "duration": duration_minutes(s),
            "notes": s.notes,
        })
    return {
        "id": staff.id,
        "name": staff.user.name,
        "role": staff.position,
        "userId": staff.user_id,
        "contactNumber": staff.contact_number,
        "hireDate": _iso(staff.hire_date),
        "shiftsByDate": by_date,
        "statistics": attendance_stats(shifts),
    }


def roster_entry(staff: Staff, today_shift: Shift | None) -> dict:
    if today_shift:
        shift_time = f"{format_clock(today_shift.start_time)} - {format_clock(today_shift.end_time)}".rstrip(" -")
    else:
        shift_time = "Off Today"
    return {
        "id": staff.id,
        "name": staff.user.name,
        "role": staff.position,
        "status": today_shift.status.value if today_shift else "OFF",
        "shiftTime": shift_time,
        "imageUrl": staff.user.image_url,
    }


def roster_counts(entries: list[tuple[Staff, Shift | None]]) -> dict:
    by_role = {r: {"total": 0, "onDuty": 0} for r in ROSTER_ROLES}
    on_duty = 0
    for staff, shift in entries:
        duty = shift is not None and shift.status in ON_DUTY
        on_duty += duty
        bucket = by_role.get(staff.position.lower())
        if bucket is not None:
            bucket["total"] += 1
            bucket["onDuty"] += duty
    return {"total": len(entries), "onDuty": on_duty, "byRole": by_role}
