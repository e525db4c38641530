"""Balance propagation primitives.

Every financial event moves the parent company balance and, for most events,
one sink balance (truck, worker, project, member, factory). The direction of
both moves is fixed per event in ``SIGN_RULES``; services never add or
subtract balances by hand.

Services call these helpers inside ``atomic()`` and lock the rows they change
with ``SELECT ... FOR UPDATE``: parent company first, then the sink.
"""

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy.orm import Session

from models.company import Company
from services.errors import NotFoundError
from services.values import as_money
from services.tenant import TenantContext


log = logging.getLogger(__name__)


CREDIT = 1
DEBIT = -1
NONE = 0


class LedgerEvent:
    EXPENSE = "expense"
    MEMBER_TRANSFER = "member_transfer"
    TRUCK_INCOME = "truck_income"
    TRUCK_EXPENSE = "truck_expense"
    TRUCK_TRIP = "truck_trip"
    FUND_INCOMING = "fund_incoming"
    FUND_OUTGOING = "fund_outgoing"
    PROJECT_INCOME = "project_income"
    PROJECT_EXPENSE = "project_expense"
    WORKER_SALARY = "worker_salary"
    WORKER_ADVANCE = "worker_advance"
    WORKER_DEDUCTION = "worker_deduction"
    SPARE_PART_PURCHASE = "spare_part_purchase"
    RAW_MATERIAL_PURCHASE = "raw_material_purchase"
    WORKSHOP_EXPENSE = "workshop_expense"
    FACTORY_FUND_ADD = "factory_fund_add"
    FACTORY_FUND_WITHDRAW = "factory_fund_withdraw"


class SignRule(NamedTuple):
    sink: int
    parent: int


SIGN_RULES: dict[str, SignRule] = {
    LedgerEvent.EXPENSE: SignRule(NONE, DEBIT),
    LedgerEvent.MEMBER_TRANSFER: SignRule(CREDIT, DEBIT),
    LedgerEvent.TRUCK_INCOME: SignRule(CREDIT, CREDIT),
    LedgerEvent.TRUCK_EXPENSE: SignRule(DEBIT, DEBIT),
    LedgerEvent.TRUCK_TRIP: SignRule(CREDIT, CREDIT),
    LedgerEvent.FUND_INCOMING: SignRule(NONE, CREDIT),
    LedgerEvent.FUND_OUTGOING: SignRule(NONE, DEBIT),
    LedgerEvent.PROJECT_INCOME: SignRule(CREDIT, CREDIT),
    LedgerEvent.PROJECT_EXPENSE: SignRule(DEBIT, DEBIT),
    LedgerEvent.WORKER_SALARY: SignRule(CREDIT, DEBIT),
    LedgerEvent.WORKER_ADVANCE: SignRule(CREDIT, DEBIT),
    LedgerEvent.WORKER_DEDUCTION: SignRule(DEBIT, CREDIT),
    # sink here is the factory balance; item quantity is handled by the caller
    LedgerEvent.SPARE_PART_PURCHASE: SignRule(DEBIT, DEBIT),
    LedgerEvent.RAW_MATERIAL_PURCHASE: SignRule(DEBIT, DEBIT),
    LedgerEvent.WORKSHOP_EXPENSE: SignRule(DEBIT, DEBIT),
    LedgerEvent.FACTORY_FUND_ADD: SignRule(CREDIT, DEBIT),
    LedgerEvent.FACTORY_FUND_WITHDRAW: SignRule(DEBIT, CREDIT),
}


class LedgerEffect(NamedTuple):
    sink_delta: Decimal
    parent_delta: Decimal


def apply_ledger_effect(
    event: str,
    amount,
    *,
    parent: Company,
    sink=None,
    reverse: bool = False,
) -> LedgerEffect:
    """Move ``parent.balance`` and ``sink.balance`` by ``amount`` per ``SIGN_RULES``.

    ``amount`` may be negative (a loss making trip, or an edit diff).
    ``reverse=True`` applies the exact inverse, used by delete.
    """
    try:
        rule = SIGN_RULES[event]
    except KeyError:
        raise ValueError(f"unknown ledger event {event!r}") from None

    amt = as_money(amount)
    if reverse:
        amt = -amt

    sink_delta = amt * rule.sink
    parent_delta = amt * rule.parent

    if rule.sink != NONE:
        if sink is None:
            raise ValueError(f"{event} needs a sink entity")
        sink.balance = as_money(sink.balance) + sink_delta

    parent.balance = as_money(parent.balance) + parent_delta

    log.info(
        "ledger %s%s amount=%s parent=%s balance=%s sink=%r",
        event,
        " (reverse)" if reverse else "",
        as_money(amount),
        parent.id,
        parent.balance,
        sink,
    )
    return LedgerEffect(sink_delta, parent_delta)


def apply_transfer_effect(sender: Company, receiver: Company, amount) -> None:
    """Approved transfer: liquid balance and debt-to-parent move in lockstep."""
    amt = as_money(amount)
    sender.balance = as_money(sender.balance) - amt
    sender.debt_to_parent = as_money(sender.debt_to_parent) - amt
    receiver.balance = as_money(receiver.balance) + amt
    receiver.debt_to_parent = as_money(receiver.debt_to_parent) + amt
    log.info(
        "transfer approved amount=%s sender=%s(balance=%s debt=%s) receiver=%s(balance=%s debt=%s)",
        amt,
        sender.id,
        sender.balance,
        sender.debt_to_parent,
        receiver.id,
        receiver.balance,
        receiver.debt_to_parent,
    )


@contextmanager
def atomic(session: Session):
    """Unit of work: everything inside commits together or not at all."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def lock_parent(session: Session, ctx: TenantContext) -> Company:
    parent = (
        session.query(Company)
        .filter(Company.id == ctx.root_company_id, Company.is_parent.is_(True))
        .with_for_update()
        .one_or_none()
    )
    if parent is None:
        raise NotFoundError("Parent company not found")
    return parent


def get_owned(session: Session, model, pk, ctx: TenantContext, *, label: str, for_update: bool = False):
    """Load a tenant owned row by id or raise ``NotFoundError``."""
    q = session.query(model).filter(model.id == pk, model.company_id == ctx.root_company_id)
    if for_update:
        q = q.with_for_update()
    obj = q.one_or_none()
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj
