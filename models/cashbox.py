from models import SerializerMixin, db, DatedMixin


class CashboxTxType:
    INCOME = "income"
    EXPENSE = "expense"

    ALL = {INCOME, EXPENSE}


class CashboxCategory:
    OTHER = "other"
    EXPENSE = "expense"
    EXCHANGE = "exchange"

    ALL = {OTHER, EXPENSE, EXCHANGE}


class CashboxTransaction(db.Model, DatedMixin, SerializerMixin):
    """Cash box movement in a single currency.

    Exchange legs share ``exchange_ref``. The cash box is tracked apart from
    company balances.
    """

    __tablename__ = "cashbox_transactions"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    type = db.Column(db.String(10), nullable=False)
    category = db.Column(db.String(20), nullable=False, default=CashboxCategory.OTHER)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False)

    exchange_ref = db.Column(db.String(36), nullable=True, index=True)
    exchange_rate = db.Column(db.Numeric(14, 6), nullable=True)

    description = db.Column(db.Text, nullable=True)
