from models import DatedMixin, SerializerMixin, db


class ExpenseCategory(db.Model, SerializerMixin):
    __tablename__ = "expense_categories"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)

    __table_args__ = (
        db.UniqueConstraint("company_id", "name", name="uq_expense_category_company_name"),
    )


class Expense(db.Model, DatedMixin, SerializerMixin):
    """General expense paid straight out of the parent company balance."""

    __tablename__ = "expenses"

    id = db.Column(db.Integer, primary_key=True)

    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("expense_categories.id"), nullable=True, index=True)

    title = db.Column(db.String(160), nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    description = db.Column(db.Text, nullable=True)

    category = db.relationship("ExpenseCategory")

    def __repr__(self) -> str:
        return f"<Expense {self.id} {self.title} amount={self.amount}>"
