from sqlalchemy.orm import Session

from models.member import Member, MemberTransfer, MemberType
from models.membership import Area
from services.errors import BusinessRuleError
from services.ledger import LedgerEvent, apply_ledger_effect, get_owned, lock_parent
from services.tenant import TenantContext
from services.values import clean_str, parse_date, to_id, to_money


def list_types(db: Session, ctx: TenantContext) -> list[MemberType]:
    ctx.require(Area.MEMBERS)
    return (
        db.query(MemberType)
        .filter(MemberType.company_id == ctx.root_company_id)
        .order_by(MemberType.name.asc())
        .all()
    )


def create_type(db: Session, ctx: TenantContext, *, name) -> MemberType:
    ctx.require(Area.MEMBERS)
    t = MemberType(company_id=ctx.root_company_id, name=clean_str(name, "name", max_len=120))
    db.add(t)
    db.flush()
    return t


def delete_type(db: Session, ctx: TenantContext, type_id: int) -> None:
    ctx.require(Area.MEMBERS)
    t = get_owned(db, MemberType, type_id, ctx, label="Member type")
    if db.query(Member.id).filter(Member.type_id == t.id).first() is not None:
        raise BusinessRuleError("Member type is in use")
    db.delete(t)


def list_members(db: Session, ctx: TenantContext, type_id=None) -> list[Member]:
    ctx.require(Area.MEMBERS)
    q = db.query(Member).filter(Member.company_id == ctx.root_company_id)
    if type_id:
        q = q.filter(Member.type_id == to_id(type_id, "type_id"))
    return q.order_by(Member.name.asc()).all()


def create_member(db: Session, ctx: TenantContext, *, name, phone=None, type_id=None) -> Member:
    ctx.require(Area.MEMBERS)
    type_pk = None
    if type_id not in (None, ""):
        type_pk = get_owned(db, MemberType, to_id(type_id, "type_id"), ctx, label="Member type").id
    m = Member(
        company_id=ctx.root_company_id,
        type_id=type_pk,
        name=clean_str(name, "name", max_len=120),
        phone=clean_str(phone, max_len=40),
        balance=0,
    )
    db.add(m)
    db.flush()
    return m


def delete_member(db: Session, ctx: TenantContext, member_id: int) -> None:
    """Remove a member and give every transfer it received back to the parent."""
    ctx.require(Area.MEMBERS)
    parent = lock_parent(db, ctx)
    m = get_owned(db, Member, member_id, ctx, label="Member", for_update=True)
    for t in m.transfers:
        apply_ledger_effect(LedgerEvent.MEMBER_TRANSFER, t.amount, parent=parent, sink=m, reverse=True)
    db.delete(m)


def list_transfers(db: Session, ctx: TenantContext, member_id=None) -> list[MemberTransfer]:
    ctx.require(Area.MEMBERS)
    q = db.query(MemberTransfer).filter(MemberTransfer.company_id == ctx.root_company_id)
    if member_id:
        q = q.filter(MemberTransfer.member_id == to_id(member_id, "member_id"))
    return q.order_by(MemberTransfer.created_at.desc(), MemberTransfer.id.desc()).all()


def create_transfer(db: Session, ctx: TenantContext, *, member_id, amount, note=None, entry_date=None) -> MemberTransfer:
    ctx.require(Area.MEMBERS)
    amt = to_money(amount, allow_zero=False)
    member_pk = to_id(member_id, "member_id")

    parent = lock_parent(db, ctx)
    m = get_owned(db, Member, member_pk, ctx, label="Member", for_update=True)
    apply_ledger_effect(LedgerEvent.MEMBER_TRANSFER, amt, parent=parent, sink=m)

    t = MemberTransfer(
        company_id=ctx.root_company_id,
        member_id=m.id,
        amount=amt,
        note=clean_str(note, max_len=2000),
        entry_date=parse_date(entry_date),
    )
    db.add(t)
    db.flush()
    return t


def delete_transfer(db: Session, ctx: TenantContext, transfer_id: int) -> None:
    ctx.require(Area.MEMBERS)
    parent = lock_parent(db, ctx)
    t = get_owned(db, MemberTransfer, transfer_id, ctx, label="Member transfer")
    m = get_owned(db, Member, t.member_id, ctx, label="Member", for_update=True)
    apply_ledger_effect(LedgerEvent.MEMBER_TRANSFER, t.amount, parent=parent, sink=m, reverse=True)
    db.delete(t)
