"""Cash box kept per currency, apart from company balances."""

import logging
import uuid
from decimal import Decimal

from sqlalchemy.orm import Session

from models.cashbox import CashboxCategory, CashboxTransaction, CashboxTxType
from models.membership import Area
from services.errors import BusinessRuleError, ValidationError
from services.ledger import get_owned
from services.tenant import TenantContext
from services.values import CENT, clean_str, one_of, parse_date, to_money, to_rate


log = logging.getLogger(__name__)

CURRENCIES = ("CNY", "USD")


def _currency(val, currencies) -> str:
    c = str(val or "").strip().upper()
    if c not in currencies:
        raise ValidationError(f"currency must be one of: {', '.join(currencies)}")
    return c


def list_transactions(db: Session, ctx: TenantContext, *, currency=None) -> list[CashboxTransaction]:
    ctx.require(Area.CASHBOX)
    q = db.query(CashboxTransaction).filter(CashboxTransaction.company_id == ctx.root_company_id)
    if currency:
        q = q.filter(CashboxTransaction.currency == str(currency).strip().upper())
    return q.order_by(CashboxTransaction.created_at.desc(), CashboxTransaction.id.desc()).all()


def create_transaction(
    db: Session,
    ctx: TenantContext,
    *,
    type,
    amount,
    currency,
    category=None,
    description=None,
    entry_date=None,
    currencies=CURRENCIES,
) -> CashboxTransaction:
    ctx.require(Area.CASHBOX)
    cat = one_of(category, CashboxCategory.ALL - {CashboxCategory.EXCHANGE}, "category", default=CashboxCategory.OTHER)
    tx = CashboxTransaction(
        company_id=ctx.root_company_id,
        type=one_of(type, CashboxTxType.ALL, "type"),
        category=cat,
        amount=to_money(amount, allow_zero=False),
        currency=_currency(currency, currencies),
        description=clean_str(description, max_len=2000),
        entry_date=parse_date(entry_date),
    )
    db.add(tx)
    db.flush()
    return tx


def update_transaction(db: Session, ctx: TenantContext, tx_id: int, data: dict, *, currencies=CURRENCIES) -> CashboxTransaction:
    ctx.require(Area.CASHBOX)
    tx = get_owned(db, CashboxTransaction, tx_id, ctx, label="Cash box entry", for_update=True)
    if tx.exchange_ref and ({"amount", "currency", "type"} & data.keys()):
        raise BusinessRuleError("Exchange entries cannot be changed. Delete the exchange instead")

    if "type" in data:
        tx.type = one_of(data.get("type"), CashboxTxType.ALL, "type")
    if "amount" in data:
        tx.amount = to_money(data.get("amount"), allow_zero=False)
    if "currency" in data:
        tx.currency = _currency(data.get("currency"), currencies)
    if "category" in data and not tx.exchange_ref:
        tx.category = one_of(data.get("category"), CashboxCategory.ALL - {CashboxCategory.EXCHANGE}, "category")
    if "description" in data:
        tx.description = clean_str(data.get("description"), max_len=2000)
    if "entry_date" in data:
        tx.entry_date = parse_date(data.get("entry_date"))
    return tx


def delete_transaction(db: Session, ctx: TenantContext, tx_id: int) -> int:
    """Delete an entry; an exchange leg takes its twin with it. Returns rows removed."""
    ctx.require(Area.CASHBOX)
    tx = get_owned(db, CashboxTransaction, tx_id, ctx, label="Cash box entry")
    if not tx.exchange_ref:
        db.delete(tx)
        return 1
    legs = (
        db.query(CashboxTransaction)
        .filter(
            CashboxTransaction.company_id == ctx.root_company_id,
            CashboxTransaction.exchange_ref == tx.exchange_ref,
        )
        .all()
    )
    for leg in legs:
        db.delete(leg)
    return len(legs)


def exchange(
    db: Session,
    ctx: TenantContext,
    *,
    from_currency,
    to_currency,
    from_amount,
    rate,
    description=None,
    entry_date=None,
    currencies=CURRENCIES,
) -> tuple[CashboxTransaction, CashboxTransaction]:
    """Convert ``from_amount`` at ``rate`` (units of target per unit of source)."""
    ctx.require(Area.CASHBOX)
    src = _currency(from_currency, currencies)
    dst = _currency(to_currency, currencies)
    if src == dst:
        raise BusinessRuleError("Cannot exchange a currency into itself")

    amount = to_money(from_amount, "from_amount", allow_zero=False)
    r = to_rate(rate, "rate", places=Decimal("0.000001"))
    if r == 0:
        raise ValidationError("rate must be greater than 0")
    converted = (amount * r).quantize(CENT)
    if converted <= 0:
        raise ValidationError("Converted amount is zero")

    ref = str(uuid.uuid4())
    when = parse_date(entry_date)
    note = clean_str(description, max_len=2000)
    out_leg = CashboxTransaction(
        company_id=ctx.root_company_id,
        type=CashboxTxType.EXPENSE,
        category=CashboxCategory.EXCHANGE,
        amount=amount,
        currency=src,
        exchange_ref=ref,
        exchange_rate=r,
        description=note,
        entry_date=when,
    )
    in_leg = CashboxTransaction(
        company_id=ctx.root_company_id,
        type=CashboxTxType.INCOME,
        category=CashboxCategory.EXCHANGE,
        amount=converted,
        currency=dst,
        exchange_ref=ref,
        exchange_rate=r,
        description=note,
        entry_date=when,
    )
    db.add_all([out_leg, in_leg])
    db.flush()
    log.info("cashbox exchange %s %s -> %s %s rate=%s ref=%s", amount, src, converted, dst, r, ref)
    return out_leg, in_leg


def summary(db: Session, ctx: TenantContext, *, currencies=CURRENCIES) -> dict:
    ctx.require(Area.CASHBOX)
    totals = {c: {"income": Decimal("0.00"), "expense": Decimal("0.00")} for c in currencies}
    rows = db.query(CashboxTransaction).filter(CashboxTransaction.company_id == ctx.root_company_id).all()
    for tx in rows:
        bucket = totals.setdefault(tx.currency, {"income": Decimal("0.00"), "expense": Decimal("0.00")})
        bucket[tx.type] += Decimal(str(tx.amount))
    return {
        c: {"income": t["income"], "expense": t["expense"], "balance": t["income"] - t["expense"]}
        for c, t in totals.items()
    }
