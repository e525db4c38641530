from sqlalchemy.orm import Session

from models.membership import Area
from models.project import Project, ProjectTransaction, ProjectTxType
from services.errors import ValidationError
from services.ledger import LedgerEvent, apply_ledger_effect, get_owned, lock_parent
from services.tenant import TenantContext
from services.values import clean_str, one_of, parse_date, to_money


TX_EVENTS = {
    ProjectTxType.INCOME: LedgerEvent.PROJECT_INCOME,
    ProjectTxType.EXPENSE: LedgerEvent.PROJECT_EXPENSE,
}


def list_projects(db: Session, ctx: TenantContext) -> list[Project]:
    ctx.require(Area.PROJECTS)
    return (
        db.query(Project)
        .filter(Project.company_id == ctx.root_company_id)
        .order_by(Project.created_at.desc(), Project.id.desc())
        .all()
    )


def create_project(db: Session, ctx: TenantContext, *, name, description=None) -> Project:
    ctx.require(Area.PROJECTS)
    p = Project(
        company_id=ctx.root_company_id,
        name=clean_str(name, "name", max_len=160),
        description=clean_str(description, max_len=2000),
        balance=0,
    )
    db.add(p)
    db.flush()
    return p


def delete_project(db: Session, ctx: TenantContext, project_id: int) -> None:
    """Reverse the net effect of every transaction from the parent, then cascade."""
    ctx.require(Area.PROJECTS)
    parent = lock_parent(db, ctx)
    p = get_owned(db, Project, project_id, ctx, label="Project", for_update=True)
    for t in p.transactions:
        apply_ledger_effect(TX_EVENTS[t.type], t.amount, parent=parent, sink=p, reverse=True)
    db.delete(p)


def list_transactions(db: Session, ctx: TenantContext, project_id: int) -> list[ProjectTransaction]:
    ctx.require(Area.PROJECTS)
    p = get_owned(db, Project, project_id, ctx, label="Project")
    return (
        db.query(ProjectTransaction)
        .filter(ProjectTransaction.project_id == p.id)
        .order_by(ProjectTransaction.created_at.desc(), ProjectTransaction.id.desc())
        .all()
    )


def create_transaction(
    db: Session,
    ctx: TenantContext,
    project_id: int,
    *,
    type,
    amount,
    description=None,
    entry_date=None,
) -> ProjectTransaction:
    ctx.require(Area.PROJECTS)
    kind = one_of(type, ProjectTxType.ALL, "type")
    amt = to_money(amount, allow_zero=False)

    parent = lock_parent(db, ctx)
    p = get_owned(db, Project, project_id, ctx, label="Project", for_update=True)
    apply_ledger_effect(TX_EVENTS[kind], amt, parent=parent, sink=p)

    t = ProjectTransaction(
        company_id=ctx.root_company_id,
        project_id=p.id,
        type=kind,
        amount=amt,
        description=clean_str(description, max_len=2000),
        entry_date=parse_date(entry_date),
    )
    db.add(t)
    db.flush()
    return t


def delete_transaction(db: Session, ctx: TenantContext, project_id: int, tx_id: int) -> None:
    ctx.require(Area.PROJECTS)
    parent = lock_parent(db, ctx)
    p = get_owned(db, Project, project_id, ctx, label="Project", for_update=True)
    t = get_owned(db, ProjectTransaction, tx_id, ctx, label="Project transaction")
    if t.project_id != p.id:
        raise ValidationError("Transaction does not belong to this project")
    apply_ledger_effect(TX_EVENTS[t.type], t.amount, parent=parent, sink=p, reverse=True)
    db.delete(t)
