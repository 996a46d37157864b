import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload

from restodesk.db import get_db
from restodesk.deps import require_manager
from restodesk.models.common import utcnow, as_utc
from restodesk.models.core import Staff, Shift, ShiftStatus, User
from restodesk.services import attendance
from restodesk.services.periods import ReportPeriod, day_window, parse_day
from restodesk.util.audit import audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/manager", tags=["staff"])


def _shifts_in(db: Session, window: ReportPeriod, staff_id: str | None = None):
    q = (
        db.query(Shift)
        .options(selectinload(Shift.staff).selectinload(Staff.user))
        .filter(Shift.start_time >= window.start, Shift.start_time < window.end)
    )
    if staff_id:
        q = q.filter(Shift.staff_id == staff_id)
    return q


def _by_staff(shifts: list[Shift]) -> dict[str, list[Shift]]:
    out: dict[str, list[Shift]] = {}
    for s in shifts:
        out.setdefault(s.staff_id, []).append(s)
    return out


def _staff_or_404(db: Session, staff_id: str | None) -> Staff:
    if not staff_id:
        raise HTTPException(400, detail="Staff ID is required")
    st = db.get(Staff, staff_id)
    if not st:
        raise HTTPException(404, detail="Staff not found")
    return st


# ── Roster ──────────────────────────────────────────────────────────────────

@router.get("/staff-data", summary="Today's roster with on-duty counts")
def staff_data(db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    staff = db.query(Staff).options(selectinload(Staff.user)).all()
    today = _by_staff(_shifts_in(db, day_window(utcnow())).order_by(Shift.start_time.asc()).all())
    entries = [(st, (today.get(st.id) or [None])[0]) for st in staff]
    return {
        "staffCount": attendance.roster_counts(entries),
        "staff": [attendance.roster_entry(st, sh) for st, sh in entries],
    }


@router.post("/staff-data/create")
def create_staff(body: dict, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    """
    body: {userId, position, hourlyRate?, hireDate?, contactNumber?, address?}
    """
    if not body.get("userId") or not body.get("position"):
        raise HTTPException(400, detail="Missing required fields: userId and position are required")
    user = db.get(User, body["userId"])
    if not user:
        raise HTTPException(404, detail="User not found")
    if user.staff:
        raise HTTPException(400, detail="Staff record already exists for this user")

    try:
        rate = float(body["hourlyRate"]) if body.get("hourlyRate") else 10.0
        hire = parse_day(body.get("hireDate")) or utcnow()
    except (TypeError, ValueError):
        raise HTTPException(400, detail="Invalid hourlyRate or hireDate")

    st = Staff(
        user_id=user.id,
        position=body["position"],
        hire_date=hire,
        hourly_rate=rate,
        contact_number=body.get("contactNumber") or "(000) 000-0000",
        address=body.get("address") or "No address provided",
    )
    db.add(st)
    db.flush()
    audit(db, sub, "staff", st.id, "ADD_STAFF", {"userId": user.id, "position": st.position})
    db.commit()
    logger.info("staff record %s created for user %s", st.id, user.id)
    return {
        "success": True,
        "message": "Staff member created successfully",
        "staff": {
            "id": st.id,
            "userId": st.user_id,
            "name": user.name,
            "position": st.position,
            "hourlyRate": st.hourly_rate,
            "hireDate": as_utc(st.hire_date).isoformat(),
        },
    }


# ── Staff management ────────────────────────────────────────────────────────

@router.get("/staff", summary="Staff with 30-day attendance stats")
def list_staff(role: str | None = None, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    q = db.query(Staff).options(selectinload(Staff.user))
    if role and role != "all":
        q = q.filter(Staff.position == role)
    staff = q.all()

    now = utcnow()
    recent = _by_staff(
        _shifts_in(db, ReportPeriod(now - timedelta(days=30), now + timedelta(days=1)))
        .order_by(Shift.start_time.desc()).all()
    )
    today = _by_staff(_shifts_in(db, day_window(now)).filter(Shift.status == ShiftStatus.ACTIVE).all())

    rows, by_role = [], {}
    for st in staff:
        shifts = recent.get(st.id, [])[:10]
        total = len(shifts)
        present = sum(1 for s in shifts if s.status == ShiftStatus.COMPLETED)
        by_role[st.position] = by_role.get(st.position, 0) + 1
        rows.append({
            "id": st.id,
            "userId": st.user_id,
            "name": st.user.name,
            "email": st.user.email,
            "position": st.position,
            "hourlyRate": st.hourly_rate,
            "active": bool(st.user.active),
            "attendanceStats": {
                "total": total,
                "present": present,
                "rate": round(present / total * 100) if total else 0,
            },
        })

    issues = sum(
        1 for r in rows
        if r["attendanceStats"]["total"] > 0 and r["attendanceStats"]["rate"] < attendance.LOW_ATTENDANCE_RATE
    )
    return {
        "staff": rows,
        "staffCount": {
            "total": len(rows),
            "active": sum(1 for r in rows if r["active"]),
            "onDutyToday": len(today),
            "attendanceIssues": issues,
            "byRole": by_role,
        },
    }


@router.put("/staff")
def update_staff(body: dict, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    """body: {id, position?, hourlyRate?, active?}"""
    st = _staff_or_404(db, body.get("id"))
    changes = {}
    if body.get("position"):
        st.position = changes["position"] = body["position"]
    if body.get("hourlyRate") is not None:
        try:
            st.hourly_rate = changes["hourlyRate"] = float(body["hourlyRate"])
        except (TypeError, ValueError):
            raise HTTPException(400, detail="Invalid hourlyRate")
    if body.get("active") is not None:
        st.user.active = changes["active"] = bool(body["active"])
    audit(db, sub, "staff", st.id, "UPDATE_STAFF", changes)
    db.commit()
    return {
        "success": True,
        "message": "Staff member updated successfully",
        "staff": {
            "id": st.id,
            "name": st.user.name,
            "position": st.position,
            "hourlyRate": st.hourly_rate,
            "active": bool(st.user.active),
        },
    }


# ── Shifts ──────────────────────────────────────────────────────────────────

@router.get("/staff-shifts")
def list_shifts(staffId: str | None = None, date: str | None = None,
                db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    try:
        day = parse_day(date) or utcnow()
    except ValueError:
        raise HTTPException(400, detail="Invalid date")
    rows = _shifts_in(db, day_window(day), staffId).order_by(Shift.start_time.desc()).all()
    return [attendance.shift_out(s) for s in rows]


@router.post("/staff-shifts", summary="Start or end today's shift")
def manage_shift(body: dict, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    st = _staff_or_404(db, body.get("staffId"))
    action = body.get("action")
    if action not in ("start", "end"):
        raise HTTPException(400, detail='Invalid action. Use "start" or "end"')

    now = utcnow()
    active = (
        _shifts_in(db, day_window(now), st.id)
        .filter(Shift.status == ShiftStatus.ACTIVE)
        .first()
    )
    if action == "start":
        if active:
            raise HTTPException(400, detail="Staff already has an active shift")
        shift = Shift(staff_id=st.id, start_time=now, status=ShiftStatus.ACTIVE)
        db.add(shift)
        db.flush()
        message = "Shift started successfully"
    else:
        if not active:
            raise HTTPException(400, detail="No active shift found for this staff member")
        shift = active
        shift.end_time = now
        shift.status = ShiftStatus.COMPLETED
        message = "Shift ended successfully"

    audit(db, sub, "shift", shift.id, f"SHIFT_{action.upper()}", {"staffId": st.id})
    db.commit()
    db.refresh(shift)
    return {"success": True, "message": message, "shift": attendance.shift_out(shift)}


# ── Attendance ──────────────────────────────────────────────────────────────

@router.get("/attendance-records")
def attendance_records(staffId: str | None = None, role: str | None = None,
                       startDate: str | None = None, endDate: str | None = None,
                       view: str = "week",
                       db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    try:
        window = attendance.attendance_window(view, startDate, endDate)
    except ValueError:
        raise HTTPException(400, detail="Invalid date range")

    q = db.query(Staff).options(selectinload(Staff.user))
    if staffId:
        q = q.filter(Staff.id == staffId)
    elif role:
        q = q.filter(Staff.position == role)
    staff = q.all()

    shifts = _by_staff(_shifts_in(db, window).order_by(Shift.start_time.asc()).all())
    records = [attendance.staff_attendance(st, shifts.get(st.id, [])) for st in staff]
    return {
        "success": True,
        "dateRange": {"start": window.start.isoformat(), "end": window.end.isoformat(), "view": view},
        "staffCount": len(records),
        "records": records,
    }


@router.post("/attendance-records/mark")
def mark_attendance(body: dict, db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    """
    body: {staffId, status, date?}
    Updates the status of the staff member's shift on that day or creates one.
    """
    if not body.get("status"):
        raise HTTPException(400, detail="Status is required")
    st = _staff_or_404(db, body.get("staffId"))
    try:
        status = ShiftStatus(str(body["status"]).upper())
        day = parse_day(body.get("date"))
    except ValueError:
        raise HTTPException(400, detail="Invalid status or date")

    start = day or utcnow()
    existing = _shifts_in(db, day_window(start), st.id).first()
    if existing:
        existing.status = status
        shift, action = existing, "UPDATE_SHIFT"
    else:
        # a completed mark carries no worked hours
        shift = Shift(
            staff_id=st.id,
            start_time=start,
            end_time=start if status == ShiftStatus.COMPLETED else None,
            status=status,
        )
        db.add(shift)
        db.flush()
        action = "CREATE_SHIFT"

    audit(db, sub, "shift", shift.id, action, {"staffId": st.id, "status": status.value})
    db.commit()
    db.refresh(shift)
    return {
        "success": True,
        "message": f"Attendance {'updated' if existing else 'marked'} successfully",
        "shift": attendance.shift_out(shift),
    }
