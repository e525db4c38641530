from models import DatedMixin, SerializerMixin, db


class FundType:
    INCOMING = "incoming"
    OUTGOING = "outgoing"

    ALL = {INCOMING, OUTGOING}


class ExternalFund(db.Model, DatedMixin, SerializerMixin):
    """Money received from / handed to a person outside the tenant."""

    __tablename__ = "external_funds"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    person_name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(40), nullable=True)
    type = db.Column(db.String(10), nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    description = db.Column(db.Text, nullable=True)


class ExternalDebt(db.Model, DatedMixin, SerializerMixin):
    """Debt owed by an outside person. Never reflected in company balances."""

    __tablename__ = "external_debts"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    person_name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(40), nullable=True)
    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    paid_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    note = db.Column(db.Text, nullable=True)

    payments = db.relationship("DebtPayment", back_populates="debt", cascade="all, delete-orphan")

    @property
    def remaining(self):
        return (self.total_amount or 0) - (self.paid_amount or 0)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["remaining"] = float(self.remaining)
        return data


class DebtPayment(db.Model, DatedMixin, SerializerMixin):
    __tablename__ = "debt_payments"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    debt_id = db.Column(db.Integer, db.ForeignKey("external_debts.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    note = db.Column(db.Text, nullable=True)

    debt = db.relationship("ExternalDebt", back_populates="payments")
