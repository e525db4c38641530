import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.company import Company
from models.membership import Area
from models.transfer import Transfer, TransferStatus
from services.companies import get_tenant_company
from services.errors import AuthorizationError, BusinessRuleError
from services.ledger import apply_transfer_effect, get_owned
from services.tenant import TenantContext
from services.values import as_money, clean_str, parse_date, to_id, to_money


log = logging.getLogger(__name__)


def list_transfers(db: Session, ctx: TenantContext, status: str | None = None) -> list[Transfer]:
    ctx.require(Area.TRANSFERS, parent_only=False)
    q = db.query(Transfer).filter(Transfer.company_id == ctx.root_company_id)
    if not ctx.is_parent:
        q = q.filter(
            or_(Transfer.from_company_id == ctx.company_id, Transfer.to_company_id == ctx.company_id)
        )
    if status in TransferStatus.ALL:
        q = q.filter(Transfer.status == status)
    return q.order_by(Transfer.created_at.desc(), Transfer.id.desc()).all()


def create_transfer(
    db: Session,
    ctx: TenantContext,
    *,
    from_company_id,
    to_company_id,
    amount,
    note=None,
    entry_date=None,
) -> Transfer:
    """Pending transfer. No balance moves until it is approved."""
    ctx.require(Area.TRANSFERS, parent_only=False)

    from_id = to_id(from_company_id, "from_company_id")
    to_id_ = to_id(to_company_id, "to_company_id")
    if from_id == to_id_:
        raise BusinessRuleError("Cannot transfer to the same company")
    if not ctx.is_parent and from_id != ctx.company_id:
        raise AuthorizationError("A company can only send transfers from its own balance")

    amt = to_money(amount, allow_zero=False)

    get_tenant_company(db, ctx, from_id)
    get_tenant_company(db, ctx, to_id_)

    t = Transfer(
        company_id=ctx.root_company_id,
        from_company_id=from_id,
        to_company_id=to_id_,
        amount=amt,
        note=clean_str(note),
        entry_date=parse_date(entry_date),
        status=TransferStatus.PENDING,
        created_by_user_id=ctx.user_id,
    )
    db.add(t)
    db.flush()
    log.info("transfer created id=%s %s->%s amount=%s", t.id, from_id, to_id_, amt)
    return t


def _pending(db: Session, ctx: TenantContext, transfer_id: int) -> Transfer:
    t = get_owned(db, Transfer, transfer_id, ctx, label="Transfer", for_update=True)
    if t.status != TransferStatus.PENDING:
        raise BusinessRuleError(f"Transfer is already {t.status}")
    return t


def approve_transfer(db: Session, ctx: TenantContext, transfer_id: int) -> Transfer:
    ctx.require(Area.TRANSFERS)
    t = _pending(db, ctx, transfer_id)

    # lock both companies in id order
    locked = {
        c.id: c
        for c in (
            get_tenant_company(db, ctx, cid, for_update=True)
            for cid in sorted((t.from_company_id, t.to_company_id))
        )
    }
    apply_transfer_effect(locked[t.from_company_id], locked[t.to_company_id], t.amount)

    t.status = TransferStatus.APPROVED
    t.decided_at = datetime.utcnow()
    return t


def reject_transfer(db: Session, ctx: TenantContext, transfer_id: int) -> Transfer:
    ctx.require(Area.TRANSFERS)
    t = _pending(db, ctx, transfer_id)
    t.status = TransferStatus.REJECTED
    t.decided_at = datetime.utcnow()
    log.info("transfer rejected id=%s", t.id)
    return t


def company_statement(company: Company, transfers: list[Transfer], names: dict[int, str]) -> dict:
    """Approved transfers of ``company`` as debit/credit rows with a running balance."""
    approved = [
        t
        for t in transfers
        if t.status == TransferStatus.APPROVED
        and company.id in (t.from_company_id, t.to_company_id)
    ]
    approved.sort(key=lambda t: (t.decided_at or t.created_at, t.id))

    rows = []
    running = Decimal("0.00")
    total_debit = Decimal("0.00")
    total_credit = Decimal("0.00")
    for t in approved:
        amt = as_money(t.amount)
        outgoing = t.from_company_id == company.id
        debit = amt if outgoing else Decimal("0.00")
        credit = Decimal("0.00") if outgoing else amt
        running += credit - debit
        total_debit += debit
        total_credit += credit
        other = t.to_company_id if outgoing else t.from_company_id
        rows.append({
            "transfer_id": t.id,
            "date": t.effective_date.isoformat(),
            "description": f"Transfer {'to' if outgoing else 'from'} {names.get(other, other)}",
            "note": t.note,
            "debit": debit,
            "credit": credit,
            "balance": running,
        })

    return {
        "company_id": company.id,
        "company_name": company.name,
        "rows": rows,
        "total_debit": total_debit,
        "total_credit": total_credit,
        "balance": running,
    }


def statement_for(db: Session, ctx: TenantContext, company_id: int) -> dict:
    ctx.require(Area.TRANSFERS, parent_only=False)
    if not ctx.is_parent and company_id != ctx.company_id:
        raise AuthorizationError("A company can only read its own statement")
    company = get_tenant_company(db, ctx, company_id)

    transfers = (
        db.query(Transfer)
        .filter(
            Transfer.company_id == ctx.root_company_id,
            Transfer.status == TransferStatus.APPROVED,
            or_(Transfer.from_company_id == company.id, Transfer.to_company_id == company.id),
        )
        .all()
    )
    names = dict(db.query(Company.id, Company.name).filter(
        or_(Company.id == ctx.root_company_id, Company.parent_id == ctx.root_company_id)
    ).all())
    return company_statement(company, transfers, names)
