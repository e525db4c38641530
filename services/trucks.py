"""Trucks, their income/expense entries and trips.

A trip only reaches the balances through its ``net_result``; an edit moves
truck and parent by the difference between the old and new figure.
"""

import logging
from collections import defaultdict
from decimal import Decimal

from sqlalchemy.orm import Session

from models.membership import Area
from models.truck import Truck, TruckExpense, TruckExpenseCategory, TruckExpenseType, TruckTrip
from services.errors import BusinessRuleError, ValidationError
from services.ledger import LedgerEvent, apply_ledger_effect, get_owned, lock_parent
from services.tenant import TenantContext
from services.values import (
    CENT,
    as_money,
    clean_str,
    one_of,
    optional_money,
    parse_date,
    to_money,
    to_rate,
)


log = logging.getLogger(__name__)

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

TRIP_COSTS = (
    "fuel_expense",
    "food_expense",
    "spare_parts_expense",
    "driver_wage_entry",
    "commission_entry",
)

TRIP_FIELDS = ("old_odometer", "new_odometer", "trip_fare") + TRIP_COSTS

EXPENSE_EVENTS = {
    TruckExpenseType.INCOME: LedgerEvent.TRUCK_INCOME,
    TruckExpenseType.EXPENSE: LedgerEvent.TRUCK_EXPENSE,
}


# -------------------------
# Trucks
# -------------------------
def list_trucks(db: Session, ctx: TenantContext) -> list[Truck]:
    ctx.require(Area.TRUCKS)
    return db.query(Truck).filter(Truck.company_id == ctx.root_company_id).order_by(Truck.number.asc()).all()


def get_truck(db: Session, ctx: TenantContext, truck_id: int) -> Truck:
    ctx.require(Area.TRUCKS)
    return get_owned(db, Truck, truck_id, ctx, label="Truck")


def _number_taken(db: Session, ctx: TenantContext, number: str, exclude_id=None) -> bool:
    q = db.query(Truck.id).filter(Truck.company_id == ctx.root_company_id, Truck.number == number)
    if exclude_id is not None:
        q = q.filter(Truck.id != exclude_id)
    return q.first() is not None


def create_truck(
    db: Session,
    ctx: TenantContext,
    *,
    number,
    driver_name=None,
    fuel_formula=None,
    driver_wage=None,
    driver_commission_rate=None,
) -> Truck:
    ctx.require(Area.TRUCKS)
    number = clean_str(number, "number", max_len=40)
    if _number_taken(db, ctx, number):
        raise BusinessRuleError("A truck with this number already exists")

    truck = Truck(
        company_id=ctx.root_company_id,
        number=number,
        driver_name=clean_str(driver_name, max_len=120),
        balance=ZERO,
        fuel_formula=to_rate(fuel_formula, "fuel_formula"),
        driver_wage=optional_money(driver_wage, "driver_wage"),
        driver_commission_rate=to_rate(
            driver_commission_rate, "driver_commission_rate", places=CENT, max_value=HUNDRED
        ),
    )
    db.add(truck)
    db.flush()
    return truck


def update_truck(db: Session, ctx: TenantContext, truck_id: int, data: dict) -> Truck:
    """Edit truck settings. The balance is never set directly."""
    ctx.require(Area.TRUCKS)
    truck = get_owned(db, Truck, truck_id, ctx, label="Truck")

    if "number" in data:
        number = clean_str(data.get("number"), "number", max_len=40)
        if _number_taken(db, ctx, number, exclude_id=truck.id):
            raise BusinessRuleError("A truck with this number already exists")
        truck.number = number
    if "driver_name" in data:
        truck.driver_name = clean_str(data.get("driver_name"), max_len=120)
    if "fuel_formula" in data:
        truck.fuel_formula = to_rate(data.get("fuel_formula"), "fuel_formula")
    if "driver_wage" in data:
        truck.driver_wage = optional_money(data.get("driver_wage"), "driver_wage")
    if "driver_commission_rate" in data:
        truck.driver_commission_rate = to_rate(
            data.get("driver_commission_rate"), "driver_commission_rate", places=CENT, max_value=HUNDRED
        )
    return truck


def delete_truck(db: Session, ctx: TenantContext, truck_id: int) -> None:
    """Delete a truck with its entries and trips, taking their effect back out of the parent."""
    ctx.require(Area.TRUCKS)
    parent = lock_parent(db, ctx)
    truck = get_owned(db, Truck, truck_id, ctx, label="Truck", for_update=True)

    for e in truck.expenses:
        apply_ledger_effect(EXPENSE_EVENTS[e.type], e.amount, parent=parent, sink=truck, reverse=True)
    for t in truck.trips:
        apply_ledger_effect(LedgerEvent.TRUCK_TRIP, t.net_result, parent=parent, sink=truck, reverse=True)

    log.info("truck deleted id=%s number=%s", truck.id, truck.number)
    db.delete(truck)


# -------------------------
# Income / expense entries
# -------------------------
def list_expenses(db: Session, ctx: TenantContext, truck_id: int) -> list[TruckExpense]:
    truck = get_truck(db, ctx, truck_id)
    return (
        db.query(TruckExpense)
        .filter(TruckExpense.truck_id == truck.id)
        .order_by(TruckExpense.created_at.desc(), TruckExpense.id.desc())
        .all()
    )


def create_expense(
    db: Session,
    ctx: TenantContext,
    truck_id: int,
    *,
    type,
    amount,
    category=None,
    description=None,
    entry_date=None,
) -> TruckExpense:
    ctx.require(Area.TRUCKS)
    kind = one_of(type, TruckExpenseType.ALL, "type")
    cat = one_of(category, TruckExpenseCategory.ALL, "category", default=TruckExpenseCategory.GENERAL)
    amt = to_money(amount, allow_zero=False)

    parent = lock_parent(db, ctx)
    truck = get_owned(db, Truck, truck_id, ctx, label="Truck", for_update=True)
    apply_ledger_effect(EXPENSE_EVENTS[kind], amt, parent=parent, sink=truck)

    e = TruckExpense(
        company_id=ctx.root_company_id,
        truck_id=truck.id,
        type=kind,
        category=cat,
        amount=amt,
        description=clean_str(description, max_len=2000),
        entry_date=parse_date(entry_date),
    )
    db.add(e)
    db.flush()
    return e


def _owned_expense(db: Session, ctx: TenantContext, truck: Truck, expense_id: int) -> TruckExpense:
    e = get_owned(db, TruckExpense, expense_id, ctx, label="Truck expense", for_update=True)
    if e.truck_id != truck.id:
        raise ValidationError("Entry does not belong to this truck")
    return e


def update_expense(db: Session, ctx: TenantContext, truck_id: int, expense_id: int, data: dict) -> TruckExpense:
    ctx.require(Area.TRUCKS)
    parent = lock_parent(db, ctx)
    truck = get_owned(db, Truck, truck_id, ctx, label="Truck", for_update=True)
    e = _owned_expense(db, ctx, truck, expense_id)

    old_type, old_amount = e.type, as_money(e.amount)
    new_type = one_of(data.get("type"), TruckExpenseType.ALL, "type") if "type" in data else old_type
    new_amount = to_money(data.get("amount"), allow_zero=False) if "amount" in data else old_amount

    if new_type == old_type:
        diff = new_amount - old_amount
        if diff:
            apply_ledger_effect(EXPENSE_EVENTS[new_type], diff, parent=parent, sink=truck)
    else:
        apply_ledger_effect(EXPENSE_EVENTS[old_type], old_amount, parent=parent, sink=truck, reverse=True)
        apply_ledger_effect(EXPENSE_EVENTS[new_type], new_amount, parent=parent, sink=truck)

    e.type = new_type
    e.amount = new_amount
    if "category" in data:
        e.category = one_of(data.get("category"), TruckExpenseCategory.ALL, "category")
    if "description" in data:
        e.description = clean_str(data.get("description"), max_len=2000)
    if "entry_date" in data:
        e.entry_date = parse_date(data.get("entry_date"))
    return e


def delete_expense(db: Session, ctx: TenantContext, truck_id: int, expense_id: int) -> None:
    ctx.require(Area.TRUCKS)
    parent = lock_parent(db, ctx)
    truck = get_owned(db, Truck, truck_id, ctx, label="Truck", for_update=True)
    e = _owned_expense(db, ctx, truck, expense_id)
    apply_ledger_effect(EXPENSE_EVENTS[e.type], e.amount, parent=parent, sink=truck, reverse=True)
    db.delete(e)


# -------------------------
# Trips
# -------------------------
def compute_trip(values: dict, fuel_formula) -> dict:
    """Derive ``km``, ``expected_fuel`` and ``net_result`` from the entered figures."""
    old = as_money(values["old_odometer"])
    new = as_money(values["new_odometer"])
    if new < old:
        raise ValidationError("new_odometer cannot be lower than old_odometer")

    km = new - old
    expected_fuel = (km * Decimal(str(fuel_formula or 0))).quantize(CENT)
    costs = sum((as_money(values[f]) for f in TRIP_COSTS), ZERO)
    net_result = as_money(values["trip_fare"]) - costs
    return {"km": km, "expected_fuel": expected_fuel, "net_result": net_result}


def list_trips(db: Session, ctx: TenantContext, truck_id: int) -> list[TruckTrip]:
    truck = get_truck(db, ctx, truck_id)
    return (
        db.query(TruckTrip)
        .filter(TruckTrip.truck_id == truck.id)
        .order_by(TruckTrip.created_at.desc(), TruckTrip.id.desc())
        .all()
    )


def last_trip(db: Session, ctx: TenantContext, truck_id: int) -> TruckTrip | None:
    truck = get_truck(db, ctx, truck_id)
    return _last_trip(db, truck.id)


def _last_trip(db: Session, truck_id: int) -> TruckTrip | None:
    return (
        db.query(TruckTrip)
        .filter(TruckTrip.truck_id == truck_id)
        .order_by(TruckTrip.created_at.desc(), TruckTrip.id.desc())
        .first()
    )


def create_trip(db: Session, ctx: TenantContext, truck_id: int, data: dict) -> TruckTrip:
    ctx.require(Area.TRUCKS)
    parent = lock_parent(db, ctx)
    truck = get_owned(db, Truck, truck_id, ctx, label="Truck", for_update=True)

    values = {f: optional_money(data.get(f), f) for f in TRIP_FIELDS}
    if data.get("old_odometer") in (None, ""):
        prev = _last_trip(db, truck.id)
        values["old_odometer"] = as_money(prev.new_odometer) if prev else ZERO
    derived = compute_trip(values, truck.fuel_formula)

    apply_ledger_effect(LedgerEvent.TRUCK_TRIP, derived["net_result"], parent=parent, sink=truck)

    trip = TruckTrip(
        company_id=ctx.root_company_id,
        truck_id=truck.id,
        departure_location=clean_str(data.get("departure_location"), max_len=160),
        arrival_location=clean_str(data.get("arrival_location"), max_len=160),
        entry_date=parse_date(data.get("entry_date")),
        **values,
        **derived,
    )
    db.add(trip)
    db.flush()
    return trip


def _owned_trip(db: Session, ctx: TenantContext, truck: Truck, trip_id: int) -> TruckTrip:
    trip = get_owned(db, TruckTrip, trip_id, ctx, label="Trip", for_update=True)
    if trip.truck_id != truck.id:
        raise ValidationError("Trip does not belong to this truck")
    return trip


def update_trip(db: Session, ctx: TenantContext, truck_id: int, trip_id: int, data: dict) -> TruckTrip:
    ctx.require(Area.TRUCKS)
    parent = lock_parent(db, ctx)
    truck = get_owned(db, Truck, truck_id, ctx, label="Truck", for_update=True)
    trip = _owned_trip(db, ctx, truck, trip_id)

    values = {
        f: optional_money(data.get(f), f) if f in data else as_money(getattr(trip, f))
        for f in TRIP_FIELDS
    }
    derived = compute_trip(values, truck.fuel_formula)

    diff = derived["net_result"] - as_money(trip.net_result)
    if diff:
        apply_ledger_effect(LedgerEvent.TRUCK_TRIP, diff, parent=parent, sink=truck)

    for k, v in {**values, **derived}.items():
        setattr(trip, k, v)
    for f in ("departure_location", "arrival_location"):
        if f in data:
            setattr(trip, f, clean_str(data.get(f), max_len=160))
    if "entry_date" in data:
        trip.entry_date = parse_date(data.get("entry_date"))
    return trip


def delete_trip(db: Session, ctx: TenantContext, truck_id: int, trip_id: int) -> None:
    ctx.require(Area.TRUCKS)
    parent = lock_parent(db, ctx)
    truck = get_owned(db, Truck, truck_id, ctx, label="Truck", for_update=True)
    trip = _owned_trip(db, ctx, truck, trip_id)
    apply_ledger_effect(LedgerEvent.TRUCK_TRIP, trip.net_result, parent=parent, sink=truck, reverse=True)
    db.delete(trip)


# -------------------------
# Monthly statement
# -------------------------
def monthly_statement(truck: Truck, trips: list[TruckTrip], expenses: list[TruckExpense]) -> list[dict]:
    """Per month of trip date: trip totals, driver commission and final result.

    Commission is ``driver_commission_rate`` percent of the month's net after
    the driver wage, and zero when that net is not positive. Newest month first.
    """
    months = defaultdict(lambda: {
        "trips": 0,
        "total_fare": ZERO,
        "fuel": ZERO,
        "food": ZERO,
        "spare_parts": ZERO,
        "paid_commission": ZERO,
    })

    for t in trips:
        m = months[t.effective_date.strftime("%Y-%m")]
        m["trips"] += 1
        m["total_fare"] += as_money(t.trip_fare)
        m["fuel"] += as_money(t.fuel_expense)
        m["food"] += as_money(t.food_expense)
        m["spare_parts"] += as_money(t.spare_parts_expense)

    for e in expenses:
        if e.type == TruckExpenseType.EXPENSE and e.category == TruckExpenseCategory.DRIVER_COMMISSION:
            months[e.effective_date.strftime("%Y-%m")]["paid_commission"] += as_money(e.amount)

    wage = as_money(truck.driver_wage)
    rate = Decimal(str(truck.driver_commission_rate or 0))

    rows = []
    for month in sorted(months, reverse=True):
        m = months[month]
        gross = m["total_fare"] - m["fuel"] - m["food"] - m["spare_parts"]
        net_after_wage = gross - wage
        commission = (net_after_wage * rate / HUNDRED).quantize(CENT) if net_after_wage > 0 else ZERO
        rows.append({
            "month": month,
            "trips": m["trips"],
            "total_fare": m["total_fare"],
            "fuel": m["fuel"],
            "food": m["food"],
            "spare_parts": m["spare_parts"],
            "gross_profit": gross,
            "driver_wage": wage,
            "net_after_wage": net_after_wage,
            "commission": commission,
            "paid_commission": m["paid_commission"],
            "remaining_commission": commission - m["paid_commission"],
            "final_result": net_after_wage - commission,
        })
    return rows
