"""Bonus and salary statement computations.

Everything here is computed on request from attendance, holidays, warnings and
worker transactions; nothing is stored. Weekend days and holidays never count
against a worker.
"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from models.attendance import AttendanceDay, AttendanceStatus, Holiday, WorkerWarning
from models.membership import Area
from models.worker import Worker, WorkerTransaction, WorkerTxType
from services.errors import ValidationError
from services.tenant import TenantContext
from services.values import CENT, as_money, parse_date


DEFAULT_BONUS = Decimal("5000")
# date.weekday(): Thursday, Friday
WEEKEND_DAYS = (3, 4)
SATURDAY = 5

SATURDAY_ABSENCE = Decimal("2.0")
ABSENCE = Decimal("1.5")
LATE = Decimal("0.5")
WARNING = Decimal("0.5")

ZERO = Decimal("0")


def working_days(start: date, end: date, holidays, weekend_days=WEEKEND_DAYS) -> list[date]:
    days = []
    d = start
    while d <= end:
        if d.weekday() not in weekend_days and d not in holidays:
            days.append(d)
        d += timedelta(days=1)
    return days


def penalty_days(days: list[date], records: dict, warning_count: int) -> tuple[Decimal, Decimal]:
    """(absence_days, late_days) for one worker over the given working days."""
    absence = ZERO
    late = ZERO
    for d in days:
        rec = records.get(d)
        if rec is None or rec.status == AttendanceStatus.ABSENT:
            absence += SATURDAY_ABSENCE if d.weekday() == SATURDAY else ABSENCE
        elif rec.status == AttendanceStatus.LATE:
            late += LATE
    late += WARNING * warning_count
    return absence, late


def bonus_after_penalties(base_bonus, absence: Decimal, late: Decimal) -> tuple[Decimal, Decimal]:
    """(deductions, final_bonus) using the graduated penalty tiers."""
    base = as_money(base_bonus)
    total = absence + late
    if total > 2:
        return base, ZERO.quantize(CENT)
    if total == 2:
        deductions = absence * 2000 + late * 1000
    else:
        deductions = absence * 1000 + late * 500
    deductions = deductions.quantize(CENT)
    return deductions, max(ZERO, base - deductions).quantize(CENT)


def _index(attendance_days, warnings):
    records = defaultdict(dict)
    for a in attendance_days:
        records[a.worker_id][a.date] = a
    warning_counts = defaultdict(int)
    for w in warnings:
        warning_counts[w.worker_id] += 1
    return records, warning_counts


def _in_window(rows, start: date, end: date, key) -> list:
    return [r for r in rows if start <= key(r) <= end]


def calculate_bonuses(
    workers,
    attendance_days,
    holidays,
    warnings,
    start: date,
    end: date,
    *,
    default_bonus=DEFAULT_BONUS,
    weekend_days=WEEKEND_DAYS,
) -> list[dict]:
    holiday_dates = {h.date if hasattr(h, "date") else h for h in holidays}
    days = working_days(start, end, holiday_dates, weekend_days)
    records, warning_counts = _index(
        _in_window(attendance_days, start, end, lambda a: a.date),
        _in_window(warnings, start, end, lambda w: w.date),
    )

    rows = []
    for w in workers:
        base = as_money(w.bonus if w.bonus is not None else default_bonus)
        count = warning_counts[w.id]
        absence, late = penalty_days(days, records[w.id], count)
        deductions, final = bonus_after_penalties(base, absence, late)
        rows.append({
            "worker_id": w.id,
            "name": w.name,
            "worker_number": w.worker_number,
            "base_bonus": base,
            "absence_days": absence,
            "late_days": late,
            "warnings": count,
            "warning_days": WARNING * count,
            "total_penalty": absence + late,
            "deductions": deductions,
            "final_bonus": final,
        })
    return rows


def overtime_hours(minutes: int) -> Decimal:
    return (Decimal(minutes) / Decimal(60)).quantize(CENT, rounding=ROUND_HALF_UP)


def salary_statement(
    workers,
    attendance_days,
    holidays,
    warnings,
    transactions,
    start: date,
    end: date,
    *,
    default_bonus=DEFAULT_BONUS,
    weekend_days=WEEKEND_DAYS,
) -> list[dict]:
    """Per worker: wage, overtime, bonus, advances in the window and what is left to pay.

    The wage is flat for the window; it is not prorated by days present.
    """
    holiday_dates = {h.date if hasattr(h, "date") else h for h in holidays}
    days = working_days(start, end, holiday_dates, weekend_days)
    bonuses = {
        r["worker_id"]: r
        for r in calculate_bonuses(
            workers, attendance_days, holidays, warnings, start, end,
            default_bonus=default_bonus, weekend_days=weekend_days,
        )
    }
    records, _ = _index(_in_window(attendance_days, start, end, lambda a: a.date), [])

    advances = defaultdict(lambda: ZERO.quantize(CENT))
    for t in transactions:
        if t.type == WorkerTxType.ADVANCE and start <= t.effective_date <= end:
            advances[t.worker_id] += as_money(t.amount)

    rows = []
    for w in workers:
        worker_records = records[w.id]
        present = [
            worker_records[d]
            for d in days
            if d in worker_records and worker_records[d].status != AttendanceStatus.ABSENT
        ]
        ot_minutes = sum(r.overtime_minutes or 0 for r in present)
        ot_hours = overtime_hours(ot_minutes)
        ot_amount = (ot_hours * as_money(w.overtime_rate)).quantize(CENT)

        bonus = bonuses[w.id]
        deserved = as_money(w.wage)
        total_deserved = deserved + ot_amount + bonus["final_bonus"]
        paid = advances[w.id]

        rows.append({
            "worker_id": w.id,
            "name": w.name,
            "worker_number": w.worker_number,
            "working_days": len(days),
            "days_present": len(present),
            "total_overtime_minutes": ot_minutes,
            "overtime_hours": ot_hours,
            "overtime_rate": as_money(w.overtime_rate),
            "overtime_amount": ot_amount,
            "deserved_amount": deserved,
            "absence_days": bonus["absence_days"],
            "late_days": bonus["late_days"],
            "warning_days": bonus["warning_days"],
            "base_bonus": bonus["base_bonus"],
            "bonus_deductions": bonus["deductions"],
            "bonus": bonus["final_bonus"],
            "total_deserved": total_deserved,
            "advances": paid,
            "total_paid": paid,
            "remaining": total_deserved - paid,
        })
    return rows


# -------------------------
# Loading the window
# -------------------------
def parse_window(start_date, end_date) -> tuple[date, date]:
    start = parse_date(start_date, "startDate")
    end = parse_date(end_date, "endDate")
    if start is None or end is None:
        raise ValidationError("startDate and endDate are required")
    if end < start:
        raise ValidationError("endDate cannot be before startDate")
    return start, end


def _load(db: Session, ctx: TenantContext, start: date, end: date) -> dict:
    root = ctx.root_company_id
    return {
        "workers": (
            db.query(Worker)
            .filter(Worker.company_id == root, Worker.is_active.is_(True))
            .order_by(Worker.name.asc())
            .all()
        ),
        "attendance_days": (
            db.query(AttendanceDay)
            .filter(AttendanceDay.company_id == root, AttendanceDay.date >= start, AttendanceDay.date <= end)
            .all()
        ),
        "holidays": (
            db.query(Holiday)
            .filter(Holiday.company_id == root, Holiday.date >= start, Holiday.date <= end)
            .all()
        ),
        "warnings": (
            db.query(WorkerWarning)
            .filter(WorkerWarning.company_id == root, WorkerWarning.date >= start, WorkerWarning.date <= end)
            .all()
        ),
    }


def bonus_report(db: Session, ctx: TenantContext, *, start_date, end_date, **rules) -> list[dict]:
    ctx.require(Area.ATTENDANCE)
    start, end = parse_window(start_date, end_date)
    data = _load(db, ctx, start, end)
    return calculate_bonuses(
        data["workers"], data["attendance_days"], data["holidays"], data["warnings"], start, end, **rules
    )


def salary_report(db: Session, ctx: TenantContext, *, start_date, end_date, **rules) -> list[dict]:
    ctx.require(Area.ATTENDANCE)
    start, end = parse_window(start_date, end_date)
    data = _load(db, ctx, start, end)
    transactions = (
        db.query(WorkerTransaction)
        .filter(
            WorkerTransaction.company_id == ctx.root_company_id,
            WorkerTransaction.type == WorkerTxType.ADVANCE,
        )
        .all()
    )
    return salary_statement(
        data["workers"], data["attendance_days"], data["holidays"], data["warnings"], transactions,
        start, end, **rules,
    )
