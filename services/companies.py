import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.company import Company
from models.membership import Area, CompanyUser, Role
from models.transfer import Transfer
from models.user import User
from services.errors import BusinessRuleError, NotFoundError, ValidationError
from services.tenant import TenantContext
from services.values import clean_str, optional_money


log = logging.getLogger(__name__)


def tenant_companies(db: Session, ctx: TenantContext):
    root = ctx.root_company_id
    return (
        db.query(Company)
        .filter(or_(Company.id == root, Company.parent_id == root))
        .order_by(Company.is_parent.desc(), Company.name.asc())
    )


def get_tenant_company(db: Session, ctx: TenantContext, company_id: int, *, for_update: bool = False) -> Company:
    root = ctx.root_company_id
    q = db.query(Company).filter(
        Company.id == company_id,
        or_(Company.id == root, Company.parent_id == root),
    )
    if for_update:
        q = q.with_for_update()
    company = q.one_or_none()
    if company is None:
        raise NotFoundError("Company not found")
    return company


def list_companies(db: Session, ctx: TenantContext) -> list[Company]:
    if ctx.is_parent:
        return tenant_companies(db, ctx).all()
    return [get_tenant_company(db, ctx, ctx.company_id)]


def create_child_company(
    db: Session,
    ctx: TenantContext,
    *,
    name,
    phone=None,
    balance=None,
    username=None,
    password=None,
) -> Company:
    """Child company of the acting tenant, optionally with its own login."""
    ctx.require(Area.COMPANIES)

    name = clean_str(name, "name", max_len=120)
    if db.query(Company.id).filter(Company.name == name).first() is not None:
        raise BusinessRuleError("A company with this name already exists")

    company = Company(
        name=name,
        phone=clean_str(phone, max_len=40),
        is_parent=False,
        parent_id=ctx.root_company_id,
        balance=optional_money(balance, "balance"),
        debt_to_parent=0,
        is_active=True,
    )
    db.add(company)
    db.flush()

    username = User.normalize_username(clean_str(username, max_len=80))
    if username:
        if not password:
            raise ValidationError("password is required with username")
        if db.query(User.id).filter(User.username == username).first() is not None:
            raise BusinessRuleError("Username already taken")
        user = User(username=username, display_name=name, is_active=True)
        user.set_password(str(password))
        db.add(user)
        db.flush()
        db.add(CompanyUser(user_id=user.id, company_id=company.id, role=Role.ADMIN, is_active=True))

    log.info("company created id=%s name=%s parent=%s", company.id, company.name, ctx.root_company_id)
    return company


def update_company(db: Session, ctx: TenantContext, company_id: int, data: dict) -> Company:
    ctx.require(Area.COMPANIES)
    company = get_tenant_company(db, ctx, company_id)

    if "name" in data:
        name = clean_str(data.get("name"), "name", max_len=120)
        clash = db.query(Company.id).filter(Company.name == name, Company.id != company.id).first()
        if clash is not None:
            raise BusinessRuleError("A company with this name already exists")
        company.name = name
    if "phone" in data:
        company.phone = clean_str(data.get("phone"), max_len=40)
    if "is_active" in data and not company.is_parent:
        company.is_active = bool(data.get("is_active"))
    return company


def delete_company(db: Session, ctx: TenantContext, company_id: int) -> None:
    ctx.require(Area.COMPANIES)
    company = get_tenant_company(db, ctx, company_id)
    if company.is_parent:
        raise BusinessRuleError("The parent company cannot be deleted")

    has_transfers = (
        db.query(Transfer.id)
        .filter(or_(Transfer.from_company_id == company.id, Transfer.to_company_id == company.id))
        .first()
    )
    if has_transfers is not None:
        raise BusinessRuleError("Company has transfers and cannot be deleted")

    db.delete(company)
    log.info("company deleted id=%s", company_id)
