from datetime import datetime

from models import SerializerMixin, db


class ScanType:
    IN_ = "in"
    OUT = "out"

    ALL = {IN_, OUT}


class AttendanceStatus:
    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"

    ALL = {PRESENT, LATE, ABSENT}


class WorkShift(db.Model, SerializerMixin):
    """Shift configuration. Times are "HH:MM" strings, tolerances in minutes."""

    __tablename__ = "work_shifts"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    name = db.Column(db.String(80), nullable=False)
    start_time = db.Column(db.String(5), nullable=False)
    end_time = db.Column(db.String(5), nullable=False)

    late_tolerance_minutes = db.Column(db.Integer, nullable=False, default=0)
    early_leave_minutes = db.Column(db.Integer, nullable=False, default=0)
    overtime_after_minutes = db.Column(db.Integer, nullable=False, default=0)


class AttendanceScan(db.Model, SerializerMixin):
    """Raw punch event, kept for the duplicate-scan guard and audit."""

    __tablename__ = "attendance_scans"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id", ondelete="CASCADE"), nullable=False)

    type = db.Column(db.String(5), nullable=False)
    scan_time = db.Column(db.DateTime, nullable=False)

    __table_args__ = (
        db.Index("ix_attendance_scans_worker_time", "worker_id", "scan_time"),
    )


class AttendanceDay(db.Model, SerializerMixin):
    """One row per worker and date.

    Built from the in/out scans; once edited by hand the stored values are
    authoritative and nothing is recomputed.
    """

    __tablename__ = "attendance_days"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id", ondelete="CASCADE"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False, index=True)
    check_in = db.Column(db.String(5), nullable=True)
    check_out = db.Column(db.String(5), nullable=True)

    status = db.Column(db.String(10), nullable=False, default=AttendanceStatus.PRESENT)
    late_minutes = db.Column(db.Integer, nullable=False, default=0)
    early_leave_minutes = db.Column(db.Integer, nullable=False, default=0)
    overtime_minutes = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("worker_id", "date", name="uq_attendance_worker_date"),
    )

    def __repr__(self) -> str:
        return f"<AttendanceDay worker={self.worker_id} {self.date} {self.status}>"


class Holiday(db.Model, SerializerMixin):
    __tablename__ = "holidays"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False)
    name = db.Column(db.String(120), nullable=True)

    __table_args__ = (
        db.UniqueConstraint("company_id", "date", name="uq_holiday_company_date"),
    )


class WorkerWarning(db.Model, SerializerMixin):
    __tablename__ = "worker_warnings"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id", ondelete="CASCADE"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
