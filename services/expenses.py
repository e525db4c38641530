import logging

from sqlalchemy.orm import Session

from models.expense import Expense, ExpenseCategory
from models.membership import Area
from services.errors import BusinessRuleError
from services.ledger import LedgerEvent, apply_ledger_effect, get_owned, lock_parent
from services.tenant import TenantContext
from services.values import as_money, clean_str, parse_date, to_id, to_money


log = logging.getLogger(__name__)


def list_categories(db: Session, ctx: TenantContext) -> list[ExpenseCategory]:
    ctx.require(Area.EXPENSES)
    return (
        db.query(ExpenseCategory)
        .filter(ExpenseCategory.company_id == ctx.root_company_id)
        .order_by(ExpenseCategory.name.asc())
        .all()
    )


def create_category(db: Session, ctx: TenantContext, *, name) -> ExpenseCategory:
    ctx.require(Area.EXPENSES)
    name = clean_str(name, "name", max_len=120)
    exists = (
        db.query(ExpenseCategory.id)
        .filter(ExpenseCategory.company_id == ctx.root_company_id, ExpenseCategory.name == name)
        .first()
    )
    if exists is not None:
        raise BusinessRuleError("Category already exists")
    cat = ExpenseCategory(company_id=ctx.root_company_id, name=name)
    db.add(cat)
    db.flush()
    return cat


def delete_category(db: Session, ctx: TenantContext, category_id: int) -> None:
    ctx.require(Area.EXPENSES)
    cat = get_owned(db, ExpenseCategory, category_id, ctx, label="Category")
    in_use = db.query(Expense.id).filter(Expense.category_id == cat.id).first()
    if in_use is not None:
        raise BusinessRuleError("Category is used by expenses")
    db.delete(cat)


def list_expenses(db: Session, ctx: TenantContext, *, date_from=None, date_to=None) -> list[Expense]:
    ctx.require(Area.EXPENSES)
    q = db.query(Expense).filter(Expense.company_id == ctx.root_company_id)
    start = parse_date(date_from, "from")
    end = parse_date(date_to, "to")
    day = Expense.effective_date_column()
    if start:
        q = q.filter(day >= start)
    if end:
        q = q.filter(day <= end)
    return q.order_by(Expense.created_at.desc(), Expense.id.desc()).all()


def _category_id(db: Session, ctx: TenantContext, val):
    if val in (None, ""):
        return None
    return get_owned(db, ExpenseCategory, to_id(val, "category_id"), ctx, label="Category").id


def create_expense(
    db: Session,
    ctx: TenantContext,
    *,
    title,
    amount,
    category_id=None,
    description=None,
    entry_date=None,
) -> Expense:
    ctx.require(Area.EXPENSES)
    amt = to_money(amount, allow_zero=False)
    title = clean_str(title, "title", max_len=160)
    cat_id = _category_id(db, ctx, category_id)

    parent = lock_parent(db, ctx)
    apply_ledger_effect(LedgerEvent.EXPENSE, amt, parent=parent)

    e = Expense(
        company_id=ctx.root_company_id,
        category_id=cat_id,
        title=title,
        amount=amt,
        description=clean_str(description, max_len=2000),
        entry_date=parse_date(entry_date),
    )
    db.add(e)
    db.flush()
    return e


def update_expense(db: Session, ctx: TenantContext, expense_id: int, data: dict) -> Expense:
    """Edit an expense; only the amount difference reaches the parent balance."""
    ctx.require(Area.EXPENSES)
    parent = lock_parent(db, ctx)
    e = get_owned(db, Expense, expense_id, ctx, label="Expense", for_update=True)

    if "amount" in data:
        new_amount = to_money(data.get("amount"), allow_zero=False)
        diff = new_amount - as_money(e.amount)
        if diff:
            apply_ledger_effect(LedgerEvent.EXPENSE, diff, parent=parent)
        e.amount = new_amount
    if "title" in data:
        e.title = clean_str(data.get("title"), "title", max_len=160)
    if "category_id" in data:
        e.category_id = _category_id(db, ctx, data.get("category_id"))
    if "description" in data:
        e.description = clean_str(data.get("description"), max_len=2000)
    if "entry_date" in data:
        e.entry_date = parse_date(data.get("entry_date"))
    return e


def delete_expense(db: Session, ctx: TenantContext, expense_id: int) -> None:
    ctx.require(Area.EXPENSES)
    parent = lock_parent(db, ctx)
    e = get_owned(db, Expense, expense_id, ctx, label="Expense", for_update=True)
    apply_ledger_effect(LedgerEvent.EXPENSE, e.amount, parent=parent, reverse=True)
    db.delete(e)
