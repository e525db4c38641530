from decimal import Decimal

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from models import db
from routes.guards import idempotent, payload, require_context, tenant_context
from services import attendance, payroll
from services.ledger import atomic


attendance_bp = Blueprint("attendance", __name__, url_prefix="/api")


def _payroll_rules() -> dict:
    cfg = current_app.config
    return {
        "default_bonus": Decimal(str(cfg.get("DEFAULT_WORKER_BONUS", payroll.DEFAULT_BONUS))),
        "weekend_days": tuple(cfg.get("WEEKEND_DAYS", payroll.WEEKEND_DAYS)),
    }


def _filters() -> dict:
    """Date window and worker filter; ``startDate``/``endDate``/``workerId`` like the payroll reports."""
    args = request.args
    return {
        "date_from": args.get("startDate") or args.get("from"),
        "date_to": args.get("endDate") or args.get("to"),
        "worker_id": args.get("workerId") or args.get("worker_id"),
    }


# -------------------------
# Shifts
# -------------------------
@attendance_bp.get("/work-shifts")
@login_required
@require_context()
def list_shifts():
    return jsonify([s.to_dict() for s in attendance.list_shifts(db.session, tenant_context())])


@attendance_bp.post("/work-shifts")
@login_required
@require_context()
def create_shift():
    with atomic(db.session):
        s = attendance.create_shift(db.session, tenant_context(), payload())
    return jsonify(s.to_dict()), 201


@attendance_bp.delete("/work-shifts/<int:shift_id>")
@login_required
@require_context()
def delete_shift(shift_id: int):
    with atomic(db.session):
        attendance.delete_shift(db.session, tenant_context(), shift_id)
    return jsonify({"ok": True})


# -------------------------
# Scans and day records
# -------------------------
@attendance_bp.post("/attendance/scan")
@login_required
@require_context()
@idempotent
def scan():
    data = payload()
    with atomic(db.session):
        kind, day = attendance.process_scan(
            db.session,
            tenant_context(),
            worker_id=data.get("worker_id"),
            worker_number=data.get("worker_number"),
            cooldown_minutes=current_app.config.get("ATTENDANCE_SCAN_COOLDOWN_MINUTES", 10),
        )
    return jsonify({"type": kind, "day": day.to_dict()}), 201


@attendance_bp.get("/attendance-days")
@login_required
@require_context()
def list_days():
    filters = _filters()
    date = request.args.get("date")
    if date:
        filters.update(date_from=date, date_to=date)
    rows = attendance.list_days(db.session, tenant_context(), **filters)
    return jsonify([d.to_dict() for d in rows])


@attendance_bp.post("/attendance-days")
@login_required
@require_context()
def create_day():
    with atomic(db.session):
        d = attendance.create_day(db.session, tenant_context(), payload())
    return jsonify(d.to_dict()), 201


@attendance_bp.patch("/attendance-days/<int:day_id>")
@login_required
@require_context()
def update_day(day_id: int):
    with atomic(db.session):
        d = attendance.update_day(db.session, tenant_context(), day_id, payload())
    return jsonify(d.to_dict())


@attendance_bp.delete("/attendance-days/<int:day_id>")
@login_required
@require_context()
def delete_day(day_id: int):
    with atomic(db.session):
        attendance.delete_day(db.session, tenant_context(), day_id)
    return jsonify({"ok": True})


# -------------------------
# Holidays / warnings
# -------------------------
@attendance_bp.get("/holidays")
@login_required
@require_context()
def list_holidays():
    return jsonify([h.to_dict() for h in attendance.list_holidays(db.session, tenant_context())])


@attendance_bp.post("/holidays")
@login_required
@require_context()
def create_holiday():
    data = payload()
    with atomic(db.session):
        h = attendance.create_holiday(db.session, tenant_context(), date=data.get("date"), name=data.get("name"))
    return jsonify(h.to_dict()), 201


@attendance_bp.delete("/holidays/<int:holiday_id>")
@login_required
@require_context()
def delete_holiday(holiday_id: int):
    with atomic(db.session):
        attendance.delete_holiday(db.session, tenant_context(), holiday_id)
    return jsonify({"ok": True})


@attendance_bp.get("/worker-warnings")
@login_required
@require_context()
def list_warnings():
    rows = attendance.list_warnings(db.session, tenant_context(), **_filters())
    return jsonify([w.to_dict() for w in rows])


@attendance_bp.post("/worker-warnings")
@login_required
@require_context()
def create_warning():
    data = payload()
    with atomic(db.session):
        w = attendance.create_warning(
            db.session,
            tenant_context(),
            worker_id=data.get("worker_id"),
            date=data.get("date"),
            reason=data.get("reason"),
        )
    return jsonify(w.to_dict()), 201


@attendance_bp.delete("/worker-warnings/<int:warning_id>")
@login_required
@require_context()
def delete_warning(warning_id: int):
    with atomic(db.session):
        attendance.delete_warning(db.session, tenant_context(), warning_id)
    return jsonify({"ok": True})


# -------------------------
# Payroll
# -------------------------
@attendance_bp.get("/bonus-calculation")
@login_required
@require_context()
def bonus_calculation():
    rows = payroll.bonus_report(
        db.session,
        tenant_context(),
        start_date=request.args.get("startDate"),
        end_date=request.args.get("endDate"),
        **_payroll_rules(),
    )
    return jsonify(rows)


@attendance_bp.get("/salary-statement")
@login_required
@require_context()
def salary_statement():
    rows = payroll.salary_report(
        db.session,
        tenant_context(),
        start_date=request.args.get("startDate"),
        end_date=request.args.get("endDate"),
        **_payroll_rules(),
    )
    return jsonify(rows)
