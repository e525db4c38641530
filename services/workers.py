import logging

from sqlalchemy.orm import Session

from models.attendance import AttendanceDay, AttendanceScan, WorkerWarning, WorkShift
from models.factory import MachineDailyEntry
from models.membership import Area
from models.worker import Worker, WorkerTransaction, WorkerTxType
from services.errors import BusinessRuleError, ValidationError
from services.ledger import LedgerEvent, apply_ledger_effect, get_owned, lock_parent
from services.tenant import TenantContext
from services.values import clean_str, one_of, optional_money, parse_date, to_id, to_money


log = logging.getLogger(__name__)

TX_EVENTS = {
    WorkerTxType.SALARY: LedgerEvent.WORKER_SALARY,
    WorkerTxType.ADVANCE: LedgerEvent.WORKER_ADVANCE,
    WorkerTxType.DEDUCTION: LedgerEvent.WORKER_DEDUCTION,
}


def list_workers(db: Session, ctx: TenantContext, *, active_only: bool = False) -> list[Worker]:
    ctx.require(Area.WORKERS)
    q = db.query(Worker).filter(Worker.company_id == ctx.root_company_id)
    if active_only:
        q = q.filter(Worker.is_active.is_(True))
    return q.order_by(Worker.name.asc()).all()


def _shift_id(db: Session, ctx: TenantContext, val):
    if val in (None, ""):
        return None
    return get_owned(db, WorkShift, to_id(val, "shift_id"), ctx, label="Shift").id


def _number_taken(db: Session, ctx: TenantContext, number: str, exclude_id=None) -> bool:
    q = db.query(Worker.id).filter(Worker.company_id == ctx.root_company_id, Worker.worker_number == number)
    if exclude_id is not None:
        q = q.filter(Worker.id != exclude_id)
    return q.first() is not None


def _apply_fields(db: Session, ctx: TenantContext, w: Worker, data: dict) -> None:
    if "name" in data:
        w.name = clean_str(data.get("name"), "name", max_len=120)
    if "worker_number" in data:
        number = clean_str(data.get("worker_number"), max_len=40)
        # scans look workers up by number
        if number is not None and _number_taken(db, ctx, number, exclude_id=w.id):
            raise BusinessRuleError("A worker with this number already exists")
        w.worker_number = number
    if "phone" in data:
        w.phone = clean_str(data.get("phone"), max_len=40)
    if "wage" in data:
        w.wage = optional_money(data.get("wage"), "wage")
    if "bonus" in data:
        raw = data.get("bonus")
        w.bonus = None if raw in (None, "") else to_money(raw, "bonus")
    if "overtime_rate" in data:
        w.overtime_rate = optional_money(data.get("overtime_rate"), "overtime_rate")
    if "shift_id" in data:
        w.shift_id = _shift_id(db, ctx, data.get("shift_id"))
    if "contract_end_date" in data:
        w.contract_end_date = parse_date(data.get("contract_end_date"), "contract_end_date")
    if "is_active" in data:
        w.is_active = bool(data.get("is_active"))


def create_worker(db: Session, ctx: TenantContext, data: dict) -> Worker:
    ctx.require(Area.WORKERS)
    w = Worker(company_id=ctx.root_company_id, balance=0, wage=0, overtime_rate=0, is_active=True)
    _apply_fields(db, ctx, w, {"name": None, **data})
    db.add(w)
    db.flush()
    return w


def update_worker(db: Session, ctx: TenantContext, worker_id: int, data: dict) -> Worker:
    """Edit profile and pay settings. ``balance`` only moves through transactions."""
    ctx.require(Area.WORKERS)
    w = get_owned(db, Worker, worker_id, ctx, label="Worker")
    _apply_fields(db, ctx, w, data)
    return w


def delete_worker(db: Session, ctx: TenantContext, worker_id: int) -> None:
    ctx.require(Area.WORKERS)
    parent = lock_parent(db, ctx)
    w = get_owned(db, Worker, worker_id, ctx, label="Worker", for_update=True)

    for t in w.transactions:
        apply_ledger_effect(TX_EVENTS[t.type], t.amount, parent=parent, sink=w, reverse=True)

    for model in (AttendanceScan, AttendanceDay, WorkerWarning):
        db.query(model).filter(model.worker_id == w.id).delete(synchronize_session=False)
    # output history stays with the machine
    (
        db.query(MachineDailyEntry)
        .filter(MachineDailyEntry.worker_id == w.id)
        .update({MachineDailyEntry.worker_id: None}, synchronize_session="fetch")
    )

    log.info("worker deleted id=%s name=%s", w.id, w.name)
    db.delete(w)


def list_transactions(db: Session, ctx: TenantContext, worker_id: int) -> list[WorkerTransaction]:
    ctx.require(Area.WORKERS)
    w = get_owned(db, Worker, worker_id, ctx, label="Worker")
    return (
        db.query(WorkerTransaction)
        .filter(WorkerTransaction.worker_id == w.id)
        .order_by(WorkerTransaction.created_at.desc(), WorkerTransaction.id.desc())
        .all()
    )


def create_transaction(
    db: Session,
    ctx: TenantContext,
    worker_id: int,
    *,
    type,
    amount,
    note=None,
    entry_date=None,
) -> WorkerTransaction:
    ctx.require(Area.WORKERS)
    kind = one_of(type, WorkerTxType.ALL, "type")
    amt = to_money(amount, allow_zero=False)

    parent = lock_parent(db, ctx)
    w = get_owned(db, Worker, worker_id, ctx, label="Worker", for_update=True)
    apply_ledger_effect(TX_EVENTS[kind], amt, parent=parent, sink=w)

    t = WorkerTransaction(
        company_id=ctx.root_company_id,
        worker_id=w.id,
        type=kind,
        amount=amt,
        note=clean_str(note, max_len=2000),
        entry_date=parse_date(entry_date),
    )
    db.add(t)
    db.flush()
    return t


def delete_transaction(db: Session, ctx: TenantContext, worker_id: int, tx_id: int) -> None:
    ctx.require(Area.WORKERS)
    parent = lock_parent(db, ctx)
    w = get_owned(db, Worker, worker_id, ctx, label="Worker", for_update=True)
    t = get_owned(db, WorkerTransaction, tx_id, ctx, label="Worker transaction")
    if t.worker_id != w.id:
        raise ValidationError("Transaction does not belong to this worker")
    apply_ledger_effect(TX_EVENTS[t.type], t.amount, parent=parent, sink=w, reverse=True)
    db.delete(t)
