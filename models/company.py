from datetime import datetime

from . import SerializerMixin, db


class Company(db.Model, SerializerMixin):
    """A company inside a tenant.

    Exactly one company per tenant has ``is_parent`` set; every other company of
    that tenant points to it through ``parent_id``. ``debt_to_parent`` is what a
    child company owes the parent and moves together with ``balance`` when a
    transfer is approved.
    """

    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    phone = db.Column(db.String(40), nullable=True)

    is_parent = db.Column(db.Boolean, default=False, nullable=False)
    parent_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=True, index=True)

    balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    debt_to_parent = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    users = db.relationship("CompanyUser", back_populates="company", cascade="all, delete-orphan")

    @property
    def root_id(self) -> int:
        return self.id if self.is_parent else self.parent_id

    def __repr__(self) -> str:
        return f"<Company {self.id} {self.name} parent={self.is_parent}>"
