from datetime import datetime

from . import DatedMixin, SerializerMixin, db


class TransferStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    ALL = {PENDING, APPROVED, REJECTED}


class Transfer(db.Model, DatedMixin, SerializerMixin):
    """Money sent from one company of a tenant to another.

    Balances move only once, when the parent approves. Approved and rejected
    transfers are final.
    """

    __tablename__ = "transfers"

    id = db.Column(db.Integer, primary_key=True)

    # tenant root (parent company)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    from_company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    to_company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    note = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default=TransferStatus.PENDING, index=True)
    decided_at = db.Column(db.DateTime, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    from_company = db.relationship("Company", foreign_keys=[from_company_id])
    to_company = db.relationship("Company", foreign_keys=[to_company_id])

    def __repr__(self) -> str:
        return (
            f"<Transfer {self.id} {self.from_company_id}->{self.to_company_id} "
            f"amount={self.amount} {self.status}>"
        )
