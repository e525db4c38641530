import os

from app import create_app
from models import db
from models.attendance import WorkShift
from models.company import Company
from models.factory import FactorySettings
from models.membership import CompanyUser, Role
from models.user import User


PARENT_NAME = os.environ.get("SEED_COMPANY", "Main Company")
OWNER_USERNAME = os.environ.get("SEED_USERNAME", "owner")
OWNER_PASSWORD = os.environ.get("SEED_PASSWORD", "owner1234")


def seed_tenant(session, *, company_name: str, username: str, password: str) -> Company:
    """Parent company, owner login, default shift and factory row. Safe to rerun."""

    # 1) Parent company
    company = session.query(Company).filter_by(name=company_name).first()
    if not company:
        company = Company(name=company_name, is_parent=True, balance=0, debt_to_parent=0, is_active=True)
        session.add(company)
        session.flush()

    # 2) Owner user
    username = User.normalize_username(username)
    user = session.query(User).filter_by(username=username).first()
    if not user:
        user = User(username=username, display_name="Owner", is_active=True)
        user.set_password(password)
        session.add(user)
        session.flush()
    else:
        user.is_active = True

    # 3) OWNER membership on the parent
    m = session.query(CompanyUser).filter_by(user_id=user.id, company_id=company.id).first()
    if not m:
        session.add(CompanyUser(user_id=user.id, company_id=company.id, role=Role.OWNER, is_active=True))
    else:
        m.is_active = True
        m.role = Role.OWNER

    # 4) Default shift
    if not session.query(WorkShift.id).filter_by(company_id=company.id).first():
        session.add(WorkShift(
            company_id=company.id,
            name="Day shift",
            start_time="08:00",
            end_time="16:00",
            late_tolerance_minutes=15,
            early_leave_minutes=15,
            overtime_after_minutes=30,
        ))

    # 5) Factory balance row
    if not session.query(FactorySettings.id).filter_by(company_id=company.id).first():
        session.add(FactorySettings(company_id=company.id, balance=0))

    session.commit()
    return company


def run():
    app = create_app()
    with app.app_context():
        # Schema comes from migrations: run `flask db upgrade` first
        seed_tenant(db.session, company_name=PARENT_NAME, username=OWNER_USERNAME, password=OWNER_PASSWORD)

        print("Seed done.")
        print(f"Login: {OWNER_USERNAME} / {OWNER_PASSWORD}")
        print(f"Parent company: {PARENT_NAME} (OWNER)")


if __name__ == "__main__":
    run()
