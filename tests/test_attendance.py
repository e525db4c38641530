from datetime import datetime
from types import SimpleNamespace

import pytest

from models.attendance import AttendanceScan, AttendanceStatus, ScanType, WorkShift
from services import attendance, workers
from services.attendance import day_status, late_minutes_at, leave_minutes_at, next_scan_type
from services.errors import BusinessRuleError, NotFoundError


SHIFT = SimpleNamespace(
    start_time="08:00",
    end_time="16:00",
    late_tolerance_minutes=15,
    early_leave_minutes=15,
    overtime_after_minutes=30,
)


def at(hhmm: str) -> int:
    h, m = hhmm.split(":")
    return int(h) * 60 + int(m)


def test_next_scan_type_follows_the_day():
    assert next_scan_type(None) == ScanType.IN_
    assert next_scan_type(SimpleNamespace(check_in=None, check_out=None)) == ScanType.IN_
    assert next_scan_type(SimpleNamespace(check_in="08:00", check_out=None)) == ScanType.OUT
    with pytest.raises(BusinessRuleError):
        next_scan_type(SimpleNamespace(check_in="08:00", check_out="16:00"))


def test_late_only_past_tolerance():
    assert late_minutes_at(SHIFT, at("08:15")) == 0
    assert late_minutes_at(SHIFT, at("08:20")) == 20
    assert late_minutes_at(None, at("11:00")) == 0


def test_early_leave_and_overtime():
    assert leave_minutes_at(SHIFT, at("15:50")) == (0, 0)
    assert leave_minutes_at(SHIFT, at("15:30")) == (30, 0)
    assert leave_minutes_at(SHIFT, at("16:20")) == (0, 0)
    assert leave_minutes_at(SHIFT, at("16:45")) == (0, 15)


def test_day_status():
    assert day_status(0, 0) == AttendanceStatus.PRESENT
    assert day_status(5, 0) == AttendanceStatus.LATE
    assert day_status(0, 5) == AttendanceStatus.LATE


@pytest.fixture
def scanner(svc):
    session, ctx = svc
    shift = session.query(WorkShift).filter_by(company_id=ctx.root_company_id).first()
    w = workers.create_worker(session, ctx, {"name": "Sara", "worker_number": "W-7", "shift_id": shift.id})
    session.commit()

    def scan(when: str, **ident):
        ident = ident or {"worker_id": w.id}
        kind, day = attendance.process_scan(
            session, ctx, now=datetime.strptime(when, "%Y-%m-%d %H:%M"), **ident
        )
        session.commit()
        return kind, day

    return session, w, scan


def test_scan_sequence_with_cooldown(scanner):
    session, w, scan = scanner

    kind, day = scan("2026-10-19 08:05")
    assert kind == ScanType.IN_
    assert (day.check_in, day.status, day.late_minutes) == ("08:05", AttendanceStatus.PRESENT, 0)

    with pytest.raises(BusinessRuleError):
        scan("2026-10-19 08:14")
    session.rollback()

    kind, day = scan("2026-10-19 16:40", worker_number="W-7")
    assert kind == ScanType.OUT
    assert day.check_out == "16:40"
    assert day.overtime_minutes == 10

    with pytest.raises(BusinessRuleError):
        scan("2026-10-19 17:30")
    session.rollback()

    assert session.query(AttendanceScan).filter_by(worker_id=w.id).count() == 2


def test_late_check_in_marks_day_late(scanner):
    _, _, scan = scanner
    _, day = scan("2026-10-19 08:40")
    assert day.status == AttendanceStatus.LATE
    assert day.late_minutes == 40


def test_inactive_or_unknown_worker_cannot_scan(scanner, svc):
    session, ctx = svc
    _, w, scan = scanner
    workers.update_worker(session, ctx, w.id, {"is_active": False})
    session.commit()

    with pytest.raises(BusinessRuleError):
        scan("2026-10-19 08:00")
    session.rollback()
    with pytest.raises(NotFoundError):
        scan("2026-10-19 08:00", worker_number="nobody")


def test_manual_edit_is_kept_as_given(scanner, svc):
    session, ctx = svc
    _, w, scan = scanner
    _, day = scan("2026-10-19 08:40")

    attendance.update_day(session, ctx, day.id, {"status": "present", "late_minutes": 0, "check_out": "16:00"})
    session.commit()

    assert (day.status, day.late_minutes, day.check_out) == ("present", 0, "16:00")
    with pytest.raises(BusinessRuleError):
        attendance.create_day(session, ctx, {"worker_id": w.id, "date": "2026-10-19"})


def test_scan_endpoint(client):
    w = client.post("/api/managed-workers", json={"name": "Omar", "worker_number": "55"}).get_json()

    first = client.post("/api/attendance/scan", json={"worker_number": "55"})
    assert first.status_code == 201
    assert first.get_json()["type"] == "in"

    again = client.post("/api/attendance/scan", json={"worker_id": w["id"]})
    assert again.status_code == 409


def test_worker_numbers_are_unique_per_tenant(client):
    a = client.post("/api/managed-workers", json={"name": "Ali", "worker_number": "7"}).get_json()
    dup = client.post("/api/managed-workers", json={"name": "Badr", "worker_number": "7"})
    assert dup.status_code == 409

    b = client.post("/api/managed-workers", json={"name": "Badr", "worker_number": "8"}).get_json()
    assert client.patch(f"/api/managed-workers/{b['id']}", json={"worker_number": "7"}).status_code == 409
    # saving a worker with its own number is fine
    assert client.patch(f"/api/managed-workers/{a['id']}", json={"worker_number": "7"}).status_code == 200

    scan = client.post("/api/attendance/scan", json={"worker_number": "7"})
    assert scan.status_code == 201
    assert scan.get_json()["day"]["worker_id"] == a["id"]


def test_days_and_warnings_filter_by_window(client):
    w = client.post("/api/managed-workers", json={"name": "Huda"}).get_json()
    other = client.post("/api/managed-workers", json={"name": "Rami"}).get_json()
    for worker, day in ((w, "2024-01-10"), (w, "2024-03-10"), (other, "2024-03-11")):
        client.post("/api/attendance-days", json={"worker_id": worker["id"], "date": day, "check_in": "08:00"})
        client.post("/api/worker-warnings", json={"worker_id": worker["id"], "date": day, "reason": "late"})

    window = "startDate=2024-03-01&endDate=2024-03-31"

    days = client.get(f"/api/attendance-days?{window}&workerId={w['id']}").get_json()
    assert [d["date"] for d in days] == ["2024-03-10"]
    assert len(client.get(f"/api/attendance-days?{window}").get_json()) == 2

    warnings = client.get(f"/api/worker-warnings?{window}").get_json()
    assert sorted(x["date"] for x in warnings) == ["2024-03-10", "2024-03-11"]
    mine = client.get(f"/api/worker-warnings?{window}&workerId={w['id']}").get_json()
    assert [x["date"] for x in mine] == ["2024-03-10"]
    assert len(client.get("/api/worker-warnings").get_json()) == 3

    assert client.get("/api/worker-warnings?startDate=03/01/2024").status_code == 400
