"""Attendance scans, day records, shifts, holidays and warnings.

A worker's day goes no-record -> checked-in -> completed. The first accepted
scan of a day is the check-in, the next one the check-out, anything after that
is refused. Manual edits of a day are stored as given.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from models.attendance import (
    AttendanceDay,
    AttendanceScan,
    AttendanceStatus,
    Holiday,
    ScanType,
    WorkerWarning,
    WorkShift,
)
from models.membership import Area
from models.worker import Worker
from services.errors import BusinessRuleError, NotFoundError, ValidationError
from services.ledger import get_owned
from services.tenant import TenantContext
from services.values import clean_str, minute_of_day, one_of, parse_date, parse_hhmm, to_id


log = logging.getLogger(__name__)


# -------------------------
# Scan rules
# -------------------------
def next_scan_type(day: AttendanceDay | None) -> str:
    if day is None or day.check_in is None:
        return ScanType.IN_
    if day.check_out is None:
        return ScanType.OUT
    raise BusinessRuleError("Attendance for this day is already complete")


def late_minutes_at(shift: WorkShift | None, minute: int) -> int:
    if shift is None:
        return 0
    start = minute_of_day(shift.start_time)
    if minute > start + (shift.late_tolerance_minutes or 0):
        return minute - start
    return 0


def leave_minutes_at(shift: WorkShift | None, minute: int) -> tuple[int, int]:
    """(early_leave_minutes, overtime_minutes) for a check-out at ``minute``."""
    if shift is None:
        return 0, 0
    end = minute_of_day(shift.end_time)
    early = end - minute if minute < end - (shift.early_leave_minutes or 0) else 0
    overtime = max(0, minute - end - (shift.overtime_after_minutes or 0))
    return early, overtime


def day_status(late: int, early: int) -> str:
    return AttendanceStatus.LATE if late > 0 or early > 0 else AttendanceStatus.PRESENT


def _find_worker(db: Session, ctx: TenantContext, worker_id=None, worker_number=None) -> Worker:
    q = db.query(Worker).filter(Worker.company_id == ctx.root_company_id)
    if worker_id not in (None, ""):
        q = q.filter(Worker.id == to_id(worker_id, "worker_id"))
    elif worker_number not in (None, ""):
        q = q.filter(Worker.worker_number == str(worker_number).strip())
    else:
        raise ValidationError("worker_id or worker_number is required")
    w = q.with_for_update().one_or_none()
    if w is None:
        raise NotFoundError("Worker not found")
    return w


def process_scan(
    db: Session,
    ctx: TenantContext,
    *,
    worker_id=None,
    worker_number=None,
    now: datetime | None = None,
    cooldown_minutes: int = 10,
) -> tuple[str, AttendanceDay]:
    """Record one punch and fold it into the worker's day. Returns (scan type, day)."""
    ctx.require(Area.ATTENDANCE)
    now = now or datetime.now()
    w = _find_worker(db, ctx, worker_id, worker_number)
    if not w.is_active:
        raise BusinessRuleError("Worker is not active")

    last = (
        db.query(AttendanceScan)
        .filter(AttendanceScan.worker_id == w.id)
        .order_by(AttendanceScan.scan_time.desc(), AttendanceScan.id.desc())
        .first()
    )
    if last is not None and now - last.scan_time < timedelta(minutes=cooldown_minutes):
        raise BusinessRuleError(f"Duplicate scan. Wait {cooldown_minutes} minutes between scans")

    day = (
        db.query(AttendanceDay)
        .filter(AttendanceDay.worker_id == w.id, AttendanceDay.date == now.date())
        .with_for_update()
        .one_or_none()
    )
    kind = next_scan_type(day)
    minute = now.hour * 60 + now.minute
    hhmm = now.strftime("%H:%M")

    if day is None:
        day = AttendanceDay(company_id=ctx.root_company_id, worker_id=w.id, date=now.date())
        db.add(day)

    if kind == ScanType.IN_:
        day.check_in = hhmm
        day.late_minutes = late_minutes_at(w.shift, minute)
        day.early_leave_minutes = 0
        day.overtime_minutes = 0
    else:
        day.check_out = hhmm
        day.early_leave_minutes, day.overtime_minutes = leave_minutes_at(w.shift, minute)
    day.status = day_status(day.late_minutes or 0, day.early_leave_minutes or 0)

    db.add(AttendanceScan(company_id=ctx.root_company_id, worker_id=w.id, type=kind, scan_time=now))
    db.flush()
    log.info("scan %s worker=%s at=%s status=%s", kind, w.id, hhmm, day.status)
    return kind, day


# -------------------------
# Day records (manual)
# -------------------------
def list_days(db: Session, ctx: TenantContext, *, date_from=None, date_to=None, worker_id=None) -> list[AttendanceDay]:
    ctx.require(Area.ATTENDANCE)
    q = db.query(AttendanceDay).filter(AttendanceDay.company_id == ctx.root_company_id)
    start = parse_date(date_from, "from")
    end = parse_date(date_to, "to")
    if start:
        q = q.filter(AttendanceDay.date >= start)
    if end:
        q = q.filter(AttendanceDay.date <= end)
    if worker_id:
        q = q.filter(AttendanceDay.worker_id == to_id(worker_id, "worker_id"))
    return q.order_by(AttendanceDay.date.desc(), AttendanceDay.worker_id.asc()).all()


def _minutes(val, field: str) -> int:
    try:
        n = int(val or 0)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a whole number of minutes") from None
    if n < 0:
        raise ValidationError(f"{field} cannot be negative")
    return n


def _apply_day_fields(day: AttendanceDay, data: dict) -> None:
    for f in ("check_in", "check_out"):
        if f in data:
            raw = data.get(f)
            setattr(day, f, None if raw in (None, "") else parse_hhmm(raw, f))
    if "status" in data:
        day.status = one_of(data.get("status"), AttendanceStatus.ALL, "status")
    for f in ("late_minutes", "early_leave_minutes", "overtime_minutes"):
        if f in data:
            setattr(day, f, _minutes(data.get(f), f))


def create_day(db: Session, ctx: TenantContext, data: dict) -> AttendanceDay:
    ctx.require(Area.ATTENDANCE)
    w = get_owned(db, Worker, to_id(data.get("worker_id"), "worker_id"), ctx, label="Worker")
    d = parse_date(data.get("date"))
    if d is None:
        raise ValidationError("date is required")

    exists = db.query(AttendanceDay.id).filter(AttendanceDay.worker_id == w.id, AttendanceDay.date == d).first()
    if exists is not None:
        raise BusinessRuleError("Attendance for this worker and date already exists")

    day = AttendanceDay(
        company_id=ctx.root_company_id,
        worker_id=w.id,
        date=d,
        status=AttendanceStatus.PRESENT,
        late_minutes=0,
        early_leave_minutes=0,
        overtime_minutes=0,
    )
    _apply_day_fields(day, data)
    db.add(day)
    db.flush()
    return day


def update_day(db: Session, ctx: TenantContext, day_id: int, data: dict) -> AttendanceDay:
    """Overwrite stored values; nothing is recomputed from the shift."""
    ctx.require(Area.ATTENDANCE)
    day = get_owned(db, AttendanceDay, day_id, ctx, label="Attendance record", for_update=True)
    _apply_day_fields(day, data)
    return day


def delete_day(db: Session, ctx: TenantContext, day_id: int) -> None:
    ctx.require(Area.ATTENDANCE)
    db.delete(get_owned(db, AttendanceDay, day_id, ctx, label="Attendance record"))


# -------------------------
# Shifts
# -------------------------
def list_shifts(db: Session, ctx: TenantContext) -> list[WorkShift]:
    ctx.require(Area.ATTENDANCE)
    return db.query(WorkShift).filter(WorkShift.company_id == ctx.root_company_id).order_by(WorkShift.name.asc()).all()


def create_shift(db: Session, ctx: TenantContext, data: dict) -> WorkShift:
    ctx.require(Area.ATTENDANCE)
    s = WorkShift(
        company_id=ctx.root_company_id,
        name=clean_str(data.get("name"), "name", max_len=80),
        start_time=parse_hhmm(data.get("start_time"), "start_time"),
        end_time=parse_hhmm(data.get("end_time"), "end_time"),
        late_tolerance_minutes=_minutes(data.get("late_tolerance_minutes"), "late_tolerance_minutes"),
        early_leave_minutes=_minutes(data.get("early_leave_minutes"), "early_leave_minutes"),
        overtime_after_minutes=_minutes(data.get("overtime_after_minutes"), "overtime_after_minutes"),
    )
    db.add(s)
    db.flush()
    return s


def delete_shift(db: Session, ctx: TenantContext, shift_id: int) -> None:
    ctx.require(Area.ATTENDANCE)
    s = get_owned(db, WorkShift, shift_id, ctx, label="Shift")
    db.query(Worker).filter(Worker.shift_id == s.id).update({Worker.shift_id: None}, synchronize_session="fetch")
    db.delete(s)


# -------------------------
# Holidays / warnings
# -------------------------
def list_holidays(db: Session, ctx: TenantContext) -> list[Holiday]:
    ctx.require(Area.ATTENDANCE)
    return db.query(Holiday).filter(Holiday.company_id == ctx.root_company_id).order_by(Holiday.date.asc()).all()


def create_holiday(db: Session, ctx: TenantContext, *, date, name=None) -> Holiday:
    ctx.require(Area.ATTENDANCE)
    d = parse_date(date)
    if d is None:
        raise ValidationError("date is required")
    exists = db.query(Holiday.id).filter(Holiday.company_id == ctx.root_company_id, Holiday.date == d).first()
    if exists is not None:
        raise BusinessRuleError("This date is already a holiday")
    h = Holiday(company_id=ctx.root_company_id, date=d, name=clean_str(name, max_len=120))
    db.add(h)
    db.flush()
    return h


def delete_holiday(db: Session, ctx: TenantContext, holiday_id: int) -> None:
    ctx.require(Area.ATTENDANCE)
    db.delete(get_owned(db, Holiday, holiday_id, ctx, label="Holiday"))


def list_warnings(
    db: Session, ctx: TenantContext, *, date_from=None, date_to=None, worker_id=None
) -> list[WorkerWarning]:
    ctx.require(Area.ATTENDANCE)
    q = db.query(WorkerWarning).filter(WorkerWarning.company_id == ctx.root_company_id)
    start = parse_date(date_from, "from")
    end = parse_date(date_to, "to")
    if start:
        q = q.filter(WorkerWarning.date >= start)
    if end:
        q = q.filter(WorkerWarning.date <= end)
    if worker_id:
        q = q.filter(WorkerWarning.worker_id == to_id(worker_id, "worker_id"))
    return q.order_by(WorkerWarning.date.desc(), WorkerWarning.id.desc()).all()


def create_warning(db: Session, ctx: TenantContext, *, worker_id, date=None, reason=None) -> WorkerWarning:
    ctx.require(Area.ATTENDANCE)
    w = get_owned(db, Worker, to_id(worker_id, "worker_id"), ctx, label="Worker")
    warning = WorkerWarning(
        company_id=ctx.root_company_id,
        worker_id=w.id,
        date=parse_date(date, default=datetime.now().date()),
        reason=clean_str(reason, max_len=2000),
    )
    db.add(warning)
    db.flush()
    return warning


def delete_warning(db: Session, ctx: TenantContext, warning_id: int) -> None:
    ctx.require(Area.ATTENDANCE)
    db.delete(get_owned(db, WorkerWarning, warning_id, ctx, label="Warning"))
