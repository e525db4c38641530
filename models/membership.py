from datetime import datetime
from . import SerializerMixin, db


class Role:
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    APP_USER = "APP_USER"

    ALL = {OWNER, ADMIN, APP_USER}
    FULL_ACCESS = {OWNER, ADMIN}


class Area:
    """Functional areas gated by membership permissions."""

    COMPANIES = "companies"
    TRANSFERS = "transfers"
    EXPENSES = "expenses"
    MEMBERS = "members"
    TRUCKS = "trucks"
    EXTERNAL = "external"
    PROJECTS = "projects"
    FACTORY = "factory"
    WORKERS = "workers"
    ATTENDANCE = "attendance"
    CASHBOX = "cashbox"

    ALL = {
        COMPANIES,
        TRANSFERS,
        EXPENSES,
        MEMBERS,
        TRUCKS,
        EXTERNAL,
        PROJECTS,
        FACTORY,
        WORKERS,
        ATTENDANCE,
        CASHBOX,
    }


class CompanyUser(db.Model, SerializerMixin):
    __tablename__ = "company_users"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)

    role = db.Column(db.String(20), nullable=False)  # OWNER / ADMIN / APP_USER
    # comma separated Area values, only read for APP_USER
    permissions = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user = db.relationship("User", back_populates="memberships")
    company = db.relationship("Company", back_populates="users")

    __table_args__ = (
        db.UniqueConstraint("user_id", "company_id", name="uq_user_company"),
    )

    def permission_set(self) -> frozenset:
        if self.role in Role.FULL_ACCESS:
            return frozenset(Area.ALL)
        raw = (self.permissions or "").split(",")
        return frozenset(p.strip() for p in raw if p.strip() in Area.ALL)

    def __repr__(self) -> str:
        return f"<CompanyUser user={self.user_id} company={self.company_id} role={self.role}>"
