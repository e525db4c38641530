import logging

from sqlalchemy.orm import Session

from models.external import DebtPayment, ExternalDebt, ExternalFund, FundType
from models.membership import Area
from services.errors import BusinessRuleError, ValidationError
from services.ledger import LedgerEvent, apply_ledger_effect, get_owned, lock_parent
from services.tenant import TenantContext
from services.values import as_money, clean_str, one_of, parse_date, to_money


log = logging.getLogger(__name__)

FUND_EVENTS = {
    FundType.INCOMING: LedgerEvent.FUND_INCOMING,
    FundType.OUTGOING: LedgerEvent.FUND_OUTGOING,
}


def list_funds(db: Session, ctx: TenantContext) -> list[ExternalFund]:
    ctx.require(Area.EXTERNAL)
    return (
        db.query(ExternalFund)
        .filter(ExternalFund.company_id == ctx.root_company_id)
        .order_by(ExternalFund.created_at.desc(), ExternalFund.id.desc())
        .all()
    )


def create_fund(
    db: Session,
    ctx: TenantContext,
    *,
    person_name,
    type,
    amount,
    phone=None,
    description=None,
    entry_date=None,
) -> ExternalFund:
    ctx.require(Area.EXTERNAL)
    kind = one_of(type, FundType.ALL, "type")
    amt = to_money(amount, allow_zero=False)
    name = clean_str(person_name, "person_name", max_len=120)

    parent = lock_parent(db, ctx)
    apply_ledger_effect(FUND_EVENTS[kind], amt, parent=parent)

    f = ExternalFund(
        company_id=ctx.root_company_id,
        person_name=name,
        phone=clean_str(phone, max_len=40),
        type=kind,
        amount=amt,
        description=clean_str(description, max_len=2000),
        entry_date=parse_date(entry_date),
    )
    db.add(f)
    db.flush()
    return f


def delete_fund(db: Session, ctx: TenantContext, fund_id: int) -> None:
    ctx.require(Area.EXTERNAL)
    parent = lock_parent(db, ctx)
    f = get_owned(db, ExternalFund, fund_id, ctx, label="External fund", for_update=True)
    apply_ledger_effect(FUND_EVENTS[f.type], f.amount, parent=parent, reverse=True)
    db.delete(f)


# -------------------------
# Debts (kept off the company balances)
# -------------------------
def list_debts(db: Session, ctx: TenantContext) -> list[ExternalDebt]:
    ctx.require(Area.EXTERNAL)
    return (
        db.query(ExternalDebt)
        .filter(ExternalDebt.company_id == ctx.root_company_id)
        .order_by(ExternalDebt.created_at.desc(), ExternalDebt.id.desc())
        .all()
    )


def create_debt(
    db: Session,
    ctx: TenantContext,
    *,
    person_name,
    total_amount,
    phone=None,
    note=None,
    entry_date=None,
) -> ExternalDebt:
    ctx.require(Area.EXTERNAL)
    d = ExternalDebt(
        company_id=ctx.root_company_id,
        person_name=clean_str(person_name, "person_name", max_len=120),
        phone=clean_str(phone, max_len=40),
        total_amount=to_money(total_amount, "total_amount", allow_zero=False),
        paid_amount=0,
        note=clean_str(note, max_len=2000),
        entry_date=parse_date(entry_date),
    )
    db.add(d)
    db.flush()
    return d


def delete_debt(db: Session, ctx: TenantContext, debt_id: int) -> None:
    ctx.require(Area.EXTERNAL)
    d = get_owned(db, ExternalDebt, debt_id, ctx, label="Debt", for_update=True)
    db.delete(d)


def list_payments(db: Session, ctx: TenantContext, debt_id: int) -> list[DebtPayment]:
    ctx.require(Area.EXTERNAL)
    d = get_owned(db, ExternalDebt, debt_id, ctx, label="Debt")
    return (
        db.query(DebtPayment)
        .filter(DebtPayment.debt_id == d.id)
        .order_by(DebtPayment.created_at.asc(), DebtPayment.id.asc())
        .all()
    )


def create_payment(db: Session, ctx: TenantContext, debt_id: int, *, amount, note=None, entry_date=None) -> DebtPayment:
    """Record a payment; ``paid_amount`` may never pass ``total_amount``."""
    ctx.require(Area.EXTERNAL)
    amt = to_money(amount, allow_zero=False)
    d = get_owned(db, ExternalDebt, debt_id, ctx, label="Debt", for_update=True)

    remaining = as_money(d.total_amount) - as_money(d.paid_amount)
    if amt > remaining:
        raise BusinessRuleError(f"Payment exceeds the remaining amount ({remaining})")

    d.paid_amount = as_money(d.paid_amount) + amt
    p = DebtPayment(
        company_id=ctx.root_company_id,
        debt_id=d.id,
        amount=amt,
        note=clean_str(note, max_len=2000),
        entry_date=parse_date(entry_date),
    )
    db.add(p)
    db.flush()
    log.info("debt payment debt=%s amount=%s paid=%s total=%s", d.id, amt, d.paid_amount, d.total_amount)
    return p


def delete_payment(db: Session, ctx: TenantContext, debt_id: int, payment_id: int) -> ExternalDebt:
    ctx.require(Area.EXTERNAL)
    d = get_owned(db, ExternalDebt, debt_id, ctx, label="Debt", for_update=True)
    p = get_owned(db, DebtPayment, payment_id, ctx, label="Payment")
    if p.debt_id != d.id:
        raise ValidationError("Payment does not belong to this debt")
    d.paid_amount = as_money(d.paid_amount) - as_money(p.amount)
    db.delete(p)
    return d
