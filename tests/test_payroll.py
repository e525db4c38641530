from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from models.attendance import AttendanceStatus
from models.worker import WorkerTxType
from services.errors import ValidationError
from services.payroll import (
    bonus_after_penalties,
    calculate_bonuses,
    overtime_hours,
    parse_window,
    salary_statement,
    working_days,
)


# 2026-10-17 is a Saturday; Thursday/Friday are the weekend
SATURDAY = date(2026, 10, 17)
SUNDAY = date(2026, 10, 18)
THURSDAY = date(2026, 10, 15)
FRIDAY = date(2026, 10, 16)


def worker(id=1, bonus=None, wage="0", overtime_rate="0"):
    return SimpleNamespace(
        id=id,
        name=f"Worker {id}",
        worker_number=str(id),
        bonus=None if bonus is None else Decimal(bonus),
        wage=Decimal(wage),
        overtime_rate=Decimal(overtime_rate),
    )


def day(d, status=AttendanceStatus.PRESENT, worker_id=1, overtime=0):
    return SimpleNamespace(worker_id=worker_id, date=d, status=status, overtime_minutes=overtime)


def bonus_row(days, workers=None, attendance=(), holidays=(), warnings=()):
    start, end = days
    return calculate_bonuses(workers or [worker()], list(attendance), list(holidays), list(warnings), start, end)[0]


@pytest.mark.parametrize(
    "absence, late, deductions, final",
    [
        ("0", "0", "0", "5000"),
        ("0", "0.5", "250", "4750"),
        ("1.5", "0", "1500", "3500"),
        # exactly two penalty days uses the heavier tier
        ("1.5", "0.5", "3500", "1500"),
        ("0", "2", "2000", "3000"),
        ("2", "0", "4000", "1000"),
        ("2", "0.5", "5000", "0"),
        ("3", "0", "5000", "0"),
    ],
)
def test_bonus_tiers(absence, late, deductions, final):
    got = bonus_after_penalties(Decimal("5000"), Decimal(absence), Decimal(late))
    assert got == (Decimal(deductions), Decimal(final))


def test_working_days_skip_weekend_and_holidays():
    days = working_days(THURSDAY, SUNDAY, {SUNDAY})
    assert days == [SATURDAY]


def test_absence_on_weekend_or_holiday_is_free():
    row = bonus_row((THURSDAY, FRIDAY))
    assert row["absence_days"] == 0
    assert row["final_bonus"] == Decimal("5000")

    monday = date(2026, 10, 19)
    row = bonus_row((monday, monday), holidays=[SimpleNamespace(date=monday)])
    assert row["absence_days"] == 0


def test_saturday_absence_weighs_two_days():
    row = bonus_row((SATURDAY, SATURDAY))
    assert row["absence_days"] == Decimal("2.0")
    assert row["final_bonus"] == Decimal("1000")

    monday = date(2026, 10, 19)
    row = bonus_row((monday, monday))
    assert row["absence_days"] == Decimal("1.5")


def test_late_days_and_warnings_add_half_a_day_each():
    monday = date(2026, 10, 19)
    row = bonus_row(
        (monday, monday),
        attendance=[day(monday, AttendanceStatus.LATE)],
        warnings=[SimpleNamespace(worker_id=1, date=monday)],
    )
    assert row["late_days"] == Decimal("1.0")
    assert row["warnings"] == 1
    assert row["warning_days"] == Decimal("0.5")
    assert row["deductions"] == Decimal("500")


def test_worker_bonus_overrides_default():
    monday = date(2026, 10, 19)
    row = bonus_row((monday, monday), workers=[worker(bonus="8000")], attendance=[day(monday)])
    assert row["base_bonus"] == Decimal("8000")
    assert row["final_bonus"] == Decimal("8000")


def test_overtime_hours_round_half_up():
    assert overtime_hours(90) == Decimal("1.50")
    assert overtime_hours(1) == Decimal("0.02")
    assert overtime_hours(0) == Decimal("0.00")


def test_salary_statement_full_month():
    # four Saturday-to-Friday weeks: 20 working days
    start = date(2026, 10, 3)
    end = start + timedelta(days=27)
    w = worker(bonus="5000", wage="30000", overtime_rate="200")
    days = working_days(start, end, set())
    assert len(days) == 20

    advance = SimpleNamespace(
        worker_id=1,
        type=WorkerTxType.ADVANCE,
        amount=Decimal("5000"),
        effective_date=date(2026, 10, 10),
    )
    outside = SimpleNamespace(
        worker_id=1,
        type=WorkerTxType.ADVANCE,
        amount=Decimal("999"),
        effective_date=date(2026, 11, 10),
    )

    row = salary_statement([w], [day(d) for d in days], [], [], [advance, outside], start, end)[0]

    assert row["working_days"] == 20
    assert row["days_present"] == 20
    assert row["absence_days"] == 0
    assert row["late_days"] == 0
    assert row["bonus"] == Decimal("5000")
    assert row["deserved_amount"] == Decimal("30000")
    assert row["overtime_amount"] == 0
    assert row["total_deserved"] == Decimal("35000")
    assert row["advances"] == Decimal("5000")
    assert row["remaining"] == Decimal("30000")


def test_salary_statement_overtime():
    monday = date(2026, 10, 19)
    w = worker(wage="1000", overtime_rate="200")
    row = salary_statement([w], [day(monday, overtime=90)], [], [], [], monday, monday)[0]
    assert row["total_overtime_minutes"] == 90
    assert row["overtime_hours"] == Decimal("1.50")
    assert row["overtime_amount"] == Decimal("300.00")
    assert row["total_deserved"] == Decimal("6300.00")


def test_parse_window():
    assert parse_window("2026-10-01", "2026-10-31") == (date(2026, 10, 1), date(2026, 10, 31))
    with pytest.raises(ValidationError):
        parse_window("2026-10-31", "2026-10-01")
    with pytest.raises(ValidationError):
        parse_window(None, "2026-10-01")


def test_bonus_report_through_api(client):
    created = client.post("/api/managed-workers", json={"name": "Ali", "wage": "30000"})
    assert created.status_code == 201

    resp = client.get("/api/bonus-calculation?startDate=2026-10-19&endDate=2026-10-19")
    assert resp.status_code == 200
    rows = resp.get_json()
    assert [r["worker_id"] for r in rows] == [created.get_json()["id"]]
    assert rows[0]["absence_days"] == 1.5
    assert rows[0]["final_bonus"] == 3500.0

    assert client.get("/api/salary-statement?startDate=2026-10-19").status_code == 400
