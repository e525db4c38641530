from datetime import datetime

from models import DatedMixin, SerializerMixin, db


class WorkerTxType:
    SALARY = "salary"
    ADVANCE = "advance"
    DEDUCTION = "deduction"

    ALL = {SALARY, ADVANCE, DEDUCTION}


class Worker(db.Model, SerializerMixin):
    __tablename__ = "workers"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("work_shifts.id", ondelete="SET NULL"), nullable=True, index=True)

    name = db.Column(db.String(120), nullable=False)
    worker_number = db.Column(db.String(40), nullable=True)
    phone = db.Column(db.String(40), nullable=True)

    wage = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    # NULL means the configured default bonus
    bonus = db.Column(db.Numeric(14, 2), nullable=True)
    overtime_rate = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    contract_end_date = db.Column(db.Date, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    shift = db.relationship("WorkShift")
    transactions = db.relationship("WorkerTransaction", back_populates="worker", cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint("company_id", "worker_number", name="uq_worker_company_number"),
    )

    def __repr__(self) -> str:
        return f"<Worker {self.id} {self.name} balance={self.balance}>"


class WorkerTransaction(db.Model, DatedMixin, SerializerMixin):
    __tablename__ = "worker_transactions"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=False, index=True)

    type = db.Column(db.String(20), nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    note = db.Column(db.Text, nullable=True)

    worker = db.relationship("Worker", back_populates="transactions")
