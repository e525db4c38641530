"""Factory: cash balance, workshops, machines and their daily output, spare
parts and raw materials.

Purchases and workshop expenses are paid from the factory balance and reach
the parent balance too; spare part consumption only moves quantities.
"""

import calendar
import logging
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from models.factory import (
    FactorySettings,
    FundDirection,
    Machine,
    MachineDailyEntry,
    MachineType,
    RawMaterial,
    RawMaterialPurchase,
    SparePartConsumption,
    SparePartItem,
    SparePartPurchase,
    Workshop,
    WorkshopExpense,
    WorkshopExpenseCategory,
)
from models.membership import Area
from models.worker import Worker
from services.errors import ValidationError
from services.ledger import LedgerEvent, apply_ledger_effect, get_owned, lock_parent
from services.stock import add_stock, remove_stock
from services.tenant import TenantContext
from services.values import CENT, MILLI, clean_str, one_of, optional_money, parse_date, to_id, to_money, to_qty, to_rate


log = logging.getLogger(__name__)

HUNDRED = Decimal("100")

FUND_EVENTS = {
    FundDirection.ADD: LedgerEvent.FACTORY_FUND_ADD,
    FundDirection.WITHDRAW: LedgerEvent.FACTORY_FUND_WITHDRAW,
}


# -------------------------
# Settings / balance
# -------------------------
def get_factory(db: Session, ctx: TenantContext, *, for_update: bool = False) -> FactorySettings:
    """The tenant's factory row, created on first use."""
    q = db.query(FactorySettings).filter(FactorySettings.company_id == ctx.root_company_id)
    if for_update:
        q = q.with_for_update()
    fs = q.one_or_none()
    if fs is None:
        fs = FactorySettings(company_id=ctx.root_company_id, balance=0)
        db.add(fs)
        db.flush()
    return fs


def get_settings(db: Session, ctx: TenantContext) -> FactorySettings:
    ctx.require(Area.FACTORY)
    return get_factory(db, ctx)


def move_balance(db: Session, ctx: TenantContext, *, direction, amount) -> FactorySettings:
    """Fund the factory from the parent (add) or hand money back (withdraw)."""
    ctx.require(Area.FACTORY)
    kind = one_of(direction, FundDirection.ALL, "direction")
    amt = to_money(amount, allow_zero=False)

    parent = lock_parent(db, ctx)
    fs = get_factory(db, ctx, for_update=True)
    apply_ledger_effect(FUND_EVENTS[kind], amt, parent=parent, sink=fs)
    return fs


# -------------------------
# Workshops, expenses, machines
# -------------------------
def list_workshops(db: Session, ctx: TenantContext) -> list[Workshop]:
    ctx.require(Area.FACTORY)
    return db.query(Workshop).filter(Workshop.company_id == ctx.root_company_id).order_by(Workshop.name.asc()).all()


def create_workshop(db: Session, ctx: TenantContext, *, name) -> Workshop:
    ctx.require(Area.FACTORY)
    w = Workshop(company_id=ctx.root_company_id, name=clean_str(name, "name", max_len=120))
    db.add(w)
    db.flush()
    return w


def delete_workshop(db: Session, ctx: TenantContext, workshop_id: int) -> None:
    """Delete a workshop with its machines and expenses, refunding the expenses."""
    ctx.require(Area.FACTORY)
    parent = lock_parent(db, ctx)
    fs = get_factory(db, ctx, for_update=True)
    w = get_owned(db, Workshop, workshop_id, ctx, label="Workshop", for_update=True)

    for e in w.expenses:
        apply_ledger_effect(LedgerEvent.WORKSHOP_EXPENSE, e.amount, parent=parent, sink=fs, reverse=True)
    for m in w.machines:
        _detach_consumptions(db, m.id)
    db.delete(w)


def list_expense_categories(db: Session, ctx: TenantContext) -> list[WorkshopExpenseCategory]:
    ctx.require(Area.FACTORY)
    return (
        db.query(WorkshopExpenseCategory)
        .filter(WorkshopExpenseCategory.company_id == ctx.root_company_id)
        .order_by(WorkshopExpenseCategory.name.asc())
        .all()
    )


def create_expense_category(db: Session, ctx: TenantContext, *, name) -> WorkshopExpenseCategory:
    ctx.require(Area.FACTORY)
    c = WorkshopExpenseCategory(company_id=ctx.root_company_id, name=clean_str(name, "name", max_len=120))
    db.add(c)
    db.flush()
    return c


def delete_expense_category(db: Session, ctx: TenantContext, category_id: int) -> None:
    ctx.require(Area.FACTORY)
    db.delete(get_owned(db, WorkshopExpenseCategory, category_id, ctx, label="Category"))


def list_workshop_expenses(db: Session, ctx: TenantContext, workshop_id: int) -> list[WorkshopExpense]:
    ctx.require(Area.FACTORY)
    w = get_owned(db, Workshop, workshop_id, ctx, label="Workshop")
    return (
        db.query(WorkshopExpense)
        .filter(WorkshopExpense.workshop_id == w.id)
        .order_by(WorkshopExpense.created_at.desc(), WorkshopExpense.id.desc())
        .all()
    )


def create_workshop_expense(
    db: Session,
    ctx: TenantContext,
    workshop_id: int,
    *,
    amount,
    category=None,
    description=None,
    entry_date=None,
) -> WorkshopExpense:
    ctx.require(Area.FACTORY)
    amt = to_money(amount, allow_zero=False)

    parent = lock_parent(db, ctx)
    fs = get_factory(db, ctx, for_update=True)
    w = get_owned(db, Workshop, workshop_id, ctx, label="Workshop")
    apply_ledger_effect(LedgerEvent.WORKSHOP_EXPENSE, amt, parent=parent, sink=fs)

    e = WorkshopExpense(
        company_id=ctx.root_company_id,
        workshop_id=w.id,
        category=clean_str(category, max_len=120),
        amount=amt,
        description=clean_str(description, max_len=2000),
        entry_date=parse_date(entry_date),
    )
    db.add(e)
    db.flush()
    return e


def delete_workshop_expense(db: Session, ctx: TenantContext, expense_id: int) -> None:
    ctx.require(Area.FACTORY)
    parent = lock_parent(db, ctx)
    fs = get_factory(db, ctx, for_update=True)
    e = get_owned(db, WorkshopExpense, expense_id, ctx, label="Workshop expense")
    apply_ledger_effect(LedgerEvent.WORKSHOP_EXPENSE, e.amount, parent=parent, sink=fs, reverse=True)
    db.delete(e)


def list_machines(db: Session, ctx: TenantContext, workshop_id: int | None = None) -> list[Machine]:
    ctx.require(Area.FACTORY)
    q = db.query(Machine).filter(Machine.company_id == ctx.root_company_id)
    if workshop_id is not None:
        w = get_owned(db, Workshop, workshop_id, ctx, label="Workshop")
        q = q.filter(Machine.workshop_id == w.id)
    return q.order_by(Machine.name.asc()).all()


def create_machine(
    db: Session,
    ctx: TenantContext,
    workshop_id: int,
    *,
    name,
    type=None,
    expected_daily_output=None,
    unit=None,
) -> Machine:
    ctx.require(Area.FACTORY)
    w = get_owned(db, Workshop, workshop_id, ctx, label="Workshop")
    m = Machine(
        company_id=ctx.root_company_id,
        workshop_id=w.id,
        name=clean_str(name, "name", max_len=120),
        type=one_of(type, MachineType.ALL, "type", default=MachineType.COUNTER),
        expected_daily_output=to_rate(expected_daily_output, "expected_daily_output", places=MILLI),
        unit=clean_str(unit, max_len=20),
    )
    db.add(m)
    db.flush()
    return m


def _detach_consumptions(db: Session, machine_id: int) -> None:
    (
        db.query(SparePartConsumption)
        .filter(SparePartConsumption.machine_id == machine_id)
        .update({SparePartConsumption.machine_id: None}, synchronize_session="fetch")
    )


def delete_machine(db: Session, ctx: TenantContext, machine_id: int) -> None:
    ctx.require(Area.FACTORY)
    m = get_owned(db, Machine, machine_id, ctx, label="Machine")
    _detach_consumptions(db, m.id)
    db.delete(m)


# -------------------------
# Machine daily output
# -------------------------
class EntryRating:
    BELOW = "below"
    NORMAL = "normal"
    ABOVE = "above"


class MachineStatus:
    IDLE = "idle"
    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"


GOOD_PERFORMANCE = Decimal("70")


def _dec(val) -> Decimal:
    return Decimal(str(val if val is not None else 0))


def entry_output(machine_type: str, *, output_value=None, old_counter=None, new_counter=None):
    """Return ``(output, old_counter, new_counter)`` for one day's reading."""
    if machine_type == MachineType.WEIGHT:
        return to_rate(output_value, "output_value", places=MILLI), None, None

    old = to_rate(old_counter, "old_counter", places=MILLI)
    new = to_rate(new_counter, "new_counter", places=MILLI)
    if new < old:
        raise ValidationError("new_counter cannot be lower than old_counter")
    return new - old, old, new


def entry_rating(output, expected) -> str:
    output, expected = _dec(output), _dec(expected)
    if expected <= 0 or output == expected:
        return EntryRating.NORMAL
    return EntryRating.BELOW if output < expected else EntryRating.ABOVE


def list_machine_entries(
    db: Session, ctx: TenantContext, *, machine_id=None, date_from=None, date_to=None
) -> list[MachineDailyEntry]:
    ctx.require(Area.FACTORY)
    q = db.query(MachineDailyEntry).filter(MachineDailyEntry.company_id == ctx.root_company_id)
    if machine_id:
        q = q.filter(MachineDailyEntry.machine_id == to_id(machine_id, "machine_id"))
    start = parse_date(date_from, "from")
    end = parse_date(date_to, "to")
    day = MachineDailyEntry.effective_date_column()
    if start:
        q = q.filter(day >= start)
    if end:
        q = q.filter(day <= end)
    return q.order_by(MachineDailyEntry.created_at.desc(), MachineDailyEntry.id.desc()).all()


def create_machine_entry(
    db: Session,
    ctx: TenantContext,
    machine_id: int,
    *,
    worker_id=None,
    output_value=None,
    old_counter=None,
    new_counter=None,
    note=None,
    entry_date=None,
) -> MachineDailyEntry:
    ctx.require(Area.FACTORY)
    machine = get_owned(db, Machine, machine_id, ctx, label="Machine")
    worker = None
    if worker_id not in (None, ""):
        worker = get_owned(db, Worker, to_id(worker_id, "worker_id"), ctx, label="Worker")

    output, old, new = entry_output(
        machine.type, output_value=output_value, old_counter=old_counter, new_counter=new_counter
    )
    e = MachineDailyEntry(
        company_id=ctx.root_company_id,
        machine_id=machine.id,
        worker_id=worker.id if worker else None,
        output_value=output,
        old_counter=old,
        new_counter=new,
        note=clean_str(note),
        entry_date=parse_date(entry_date),
    )
    db.add(e)
    db.flush()
    log.info("machine output machine=%s output=%s expected=%s", machine.id, output, machine.expected_daily_output)
    return e


def delete_machine_entry(db: Session, ctx: TenantContext, entry_id: int) -> None:
    ctx.require(Area.FACTORY)
    db.delete(get_owned(db, MachineDailyEntry, entry_id, ctx, label="Machine entry"))


def month_bounds(month) -> tuple[date, date]:
    """``YYYY-MM`` to its first and last day; blank means the current month."""
    raw = str(month).strip() if month is not None else ""
    try:
        first = datetime.strptime(raw, "%Y-%m").date() if raw else date.today().replace(day=1)
    except ValueError:
        raise ValidationError("month must be YYYY-MM") from None
    last = first.replace(day=calendar.monthrange(first.year, first.month)[1])
    return first, last


def performance_row(machine: Machine, entries: list, consumptions: list) -> dict:
    """One machine's month: output against ``expected_daily_output`` per worked day."""
    days = len(entries)
    total = sum((_dec(e.output_value) for e in entries), Decimal("0"))
    expected_total = _dec(machine.expected_daily_output) * days
    performance = (total / expected_total * HUNDRED).quantize(CENT) if expected_total > 0 else Decimal("0.00")

    if days == 0:
        status = MachineStatus.IDLE
    elif performance >= HUNDRED:
        status = MachineStatus.EXCELLENT
    elif performance >= GOOD_PERFORMANCE:
        status = MachineStatus.GOOD
    else:
        status = MachineStatus.POOR

    parts = defaultdict(lambda: Decimal("0"))
    for c in consumptions:
        parts[c.item.name] += _dec(c.quantity)

    return {
        "machine_id": machine.id,
        "machine": machine.name,
        "workshop": machine.workshop.name,
        "unit": machine.unit,
        "days_worked": days,
        "total_output": total,
        "avg_output": (total / days).quantize(MILLI) if days else Decimal("0"),
        "expected_total": expected_total,
        "performance": performance,
        "status": status,
        "spare_parts": [{"name": name, "quantity": qty} for name, qty in sorted(parts.items())],
    }


def machine_performance(db: Session, ctx: TenantContext, *, month=None) -> list[dict]:
    ctx.require(Area.FACTORY)
    start, end = month_bounds(month)
    entries = list_machine_entries(db, ctx, date_from=start, date_to=end)

    day = SparePartConsumption.effective_date_column()
    consumptions = (
        db.query(SparePartConsumption)
        .filter(SparePartConsumption.company_id == ctx.root_company_id, day >= start, day <= end)
        .all()
    )

    by_machine = defaultdict(list)
    for e in entries:
        by_machine[e.machine_id].append(e)
    used = defaultdict(list)
    for c in consumptions:
        used[c.machine_id].append(c)

    return [performance_row(m, by_machine[m.id], used[m.id]) for m in list_machines(db, ctx)]


# -------------------------
# Spare parts and raw materials
# -------------------------
def _list_items(db: Session, ctx: TenantContext, model) -> list:
    ctx.require(Area.FACTORY)
    return db.query(model).filter(model.company_id == ctx.root_company_id).order_by(model.name.asc()).all()


def _create_item(db: Session, ctx: TenantContext, model, *, name, unit=None):
    ctx.require(Area.FACTORY)
    item = model(
        company_id=ctx.root_company_id,
        name=clean_str(name, "name", max_len=160),
        unit=clean_str(unit, max_len=20),
        quantity=0,
    )
    db.add(item)
    db.flush()
    return item


def _purchase(db: Session, ctx: TenantContext, item_model, purchase_model, event: str, item_id: int, *,
              quantity, cost, entry_date=None):
    ctx.require(Area.FACTORY)
    qty = to_qty(quantity)
    amt = optional_money(cost, "cost")

    parent = lock_parent(db, ctx)
    fs = get_factory(db, ctx, for_update=True)
    item = get_owned(db, item_model, item_id, ctx, label="Item", for_update=True)

    add_stock(item, qty)
    apply_ledger_effect(event, amt, parent=parent, sink=fs)

    p = purchase_model(
        company_id=ctx.root_company_id,
        item_id=item.id,
        quantity=qty,
        cost=amt,
        entry_date=parse_date(entry_date),
    )
    db.add(p)
    db.flush()
    return p


def _delete_purchase(db: Session, ctx: TenantContext, item_model, purchase_model, event: str, purchase_id: int) -> None:
    ctx.require(Area.FACTORY)
    parent = lock_parent(db, ctx)
    fs = get_factory(db, ctx, for_update=True)
    p = get_owned(db, purchase_model, purchase_id, ctx, label="Purchase")
    item = get_owned(db, item_model, p.item_id, ctx, label="Item", for_update=True)

    remove_stock(item, p.quantity)
    apply_ledger_effect(event, p.cost, parent=parent, sink=fs, reverse=True)
    db.delete(p)


def _delete_item(db: Session, ctx: TenantContext, item_model, event: str, item_id: int) -> None:
    """Delete an item and its purchases, refunding their cost to factory and parent."""
    ctx.require(Area.FACTORY)
    parent = lock_parent(db, ctx)
    fs = get_factory(db, ctx, for_update=True)
    item = get_owned(db, item_model, item_id, ctx, label="Item", for_update=True)
    for p in item.purchases:
        apply_ledger_effect(event, p.cost, parent=parent, sink=fs, reverse=True)
    db.delete(item)


def _item_purchases(db: Session, ctx: TenantContext, item_model, purchase_model, item_id: int) -> list:
    ctx.require(Area.FACTORY)
    item = get_owned(db, item_model, item_id, ctx, label="Item")
    return (
        db.query(purchase_model)
        .filter(purchase_model.item_id == item.id)
        .order_by(purchase_model.created_at.desc(), purchase_model.id.desc())
        .all()
    )


def list_spare_parts(db: Session, ctx: TenantContext) -> list[SparePartItem]:
    return _list_items(db, ctx, SparePartItem)


def create_spare_part(db: Session, ctx: TenantContext, *, name, unit=None) -> SparePartItem:
    return _create_item(db, ctx, SparePartItem, name=name, unit=unit)


def delete_spare_part(db: Session, ctx: TenantContext, item_id: int) -> None:
    _delete_item(db, ctx, SparePartItem, LedgerEvent.SPARE_PART_PURCHASE, item_id)


def list_spare_part_purchases(db: Session, ctx: TenantContext, item_id: int) -> list[SparePartPurchase]:
    return _item_purchases(db, ctx, SparePartItem, SparePartPurchase, item_id)


def purchase_spare_part(db: Session, ctx: TenantContext, item_id: int, *, quantity, cost, entry_date=None) -> SparePartPurchase:
    return _purchase(
        db, ctx, SparePartItem, SparePartPurchase, LedgerEvent.SPARE_PART_PURCHASE, item_id,
        quantity=quantity, cost=cost, entry_date=entry_date,
    )


def delete_spare_part_purchase(db: Session, ctx: TenantContext, purchase_id: int) -> None:
    _delete_purchase(db, ctx, SparePartItem, SparePartPurchase, LedgerEvent.SPARE_PART_PURCHASE, purchase_id)


def list_raw_materials(db: Session, ctx: TenantContext) -> list[RawMaterial]:
    return _list_items(db, ctx, RawMaterial)


def create_raw_material(db: Session, ctx: TenantContext, *, name, unit=None) -> RawMaterial:
    return _create_item(db, ctx, RawMaterial, name=name, unit=unit)


def delete_raw_material(db: Session, ctx: TenantContext, item_id: int) -> None:
    _delete_item(db, ctx, RawMaterial, LedgerEvent.RAW_MATERIAL_PURCHASE, item_id)


def list_raw_material_purchases(db: Session, ctx: TenantContext, item_id: int) -> list[RawMaterialPurchase]:
    return _item_purchases(db, ctx, RawMaterial, RawMaterialPurchase, item_id)


def purchase_raw_material(db: Session, ctx: TenantContext, item_id: int, *, quantity, cost, entry_date=None) -> RawMaterialPurchase:
    return _purchase(
        db, ctx, RawMaterial, RawMaterialPurchase, LedgerEvent.RAW_MATERIAL_PURCHASE, item_id,
        quantity=quantity, cost=cost, entry_date=entry_date,
    )


def delete_raw_material_purchase(db: Session, ctx: TenantContext, purchase_id: int) -> None:
    _delete_purchase(db, ctx, RawMaterial, RawMaterialPurchase, LedgerEvent.RAW_MATERIAL_PURCHASE, purchase_id)


# -------------------------
# Consumption (quantity only)
# -------------------------
def list_consumptions(db: Session, ctx: TenantContext, *, machine_id=None, item_id=None) -> list[SparePartConsumption]:
    ctx.require(Area.FACTORY)
    q = db.query(SparePartConsumption).filter(SparePartConsumption.company_id == ctx.root_company_id)
    if machine_id:
        q = q.filter(SparePartConsumption.machine_id == to_id(machine_id, "machine_id"))
    if item_id:
        q = q.filter(SparePartConsumption.item_id == to_id(item_id, "item_id"))
    return q.order_by(SparePartConsumption.created_at.desc(), SparePartConsumption.id.desc()).all()


def consume_spare_part(
    db: Session,
    ctx: TenantContext,
    machine_id: int,
    *,
    item_id,
    quantity,
    note=None,
    entry_date=None,
) -> SparePartConsumption:
    ctx.require(Area.FACTORY)
    qty = to_qty(quantity)
    machine = get_owned(db, Machine, machine_id, ctx, label="Machine")
    item = get_owned(db, SparePartItem, to_id(item_id, "item_id"), ctx, label="Spare part", for_update=True)

    remove_stock(item, qty)

    c = SparePartConsumption(
        company_id=ctx.root_company_id,
        item_id=item.id,
        machine_id=machine.id,
        quantity=qty,
        note=clean_str(note),
        entry_date=parse_date(entry_date),
    )
    db.add(c)
    db.flush()
    log.info("spare part consumed item=%s machine=%s qty=%s left=%s", item.id, machine.id, qty, item.quantity)
    return c


def delete_consumption(db: Session, ctx: TenantContext, consumption_id: int) -> None:
    ctx.require(Area.FACTORY)
    c = get_owned(db, SparePartConsumption, consumption_id, ctx, label="Consumption")
    item = get_owned(db, SparePartItem, c.item_id, ctx, label="Spare part", for_update=True)
    add_stock(item, c.quantity)
    db.delete(c)
