from datetime import datetime

from models import db


class IdempotencyStatus:
    PENDING = "PENDING"
    DONE = "DONE"


class IdempotencyKey(db.Model):
    """Client supplied ``Idempotency-Key`` per tenant.

    Reserved in the same transaction as the mutation it guards; the stored
    response is replayed for any retry with the same key.
    """

    __tablename__ = "idempotency_keys"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, nullable=False, index=True)

    key = db.Column(db.String(120), nullable=False)
    method = db.Column(db.String(10), nullable=False)
    path = db.Column(db.String(255), nullable=False)

    status = db.Column(db.String(20), nullable=False, default=IdempotencyStatus.PENDING)
    status_code = db.Column(db.Integer, nullable=True)
    response_json = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("company_id", "key", name="uq_idempotency_company_key"),
    )
