from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from models import db
from routes.guards import dated_payload, idempotent, require_context, tenant_context
from services import cashbox
from services.ledger import atomic


cashbox_bp = Blueprint("cashbox", __name__, url_prefix="/api/cashbox")


def _currencies() -> tuple:
    return tuple(current_app.config.get("CASHBOX_CURRENCIES", cashbox.CURRENCIES))


@cashbox_bp.get("/transactions")
@login_required
@require_context()
def list_transactions():
    rows = cashbox.list_transactions(db.session, tenant_context(), currency=request.args.get("currency"))
    return jsonify([t.to_dict() for t in rows])


@cashbox_bp.post("/transactions")
@login_required
@require_context()
@idempotent
def create_transaction():
    data = dated_payload()
    with atomic(db.session):
        t = cashbox.create_transaction(
            db.session,
            tenant_context(),
            type=data.get("type"),
            amount=data.get("amount"),
            currency=data.get("currency"),
            category=data.get("category"),
            description=data.get("description"),
            entry_date=data.get("entry_date"),
            currencies=_currencies(),
        )
    return jsonify(t.to_dict()), 201


@cashbox_bp.patch("/transactions/<int:tx_id>")
@login_required
@require_context()
def update_transaction(tx_id: int):
    with atomic(db.session):
        t = cashbox.update_transaction(db.session, tenant_context(), tx_id, dated_payload(), currencies=_currencies())
    return jsonify(t.to_dict())


@cashbox_bp.delete("/transactions/<int:tx_id>")
@login_required
@require_context()
@idempotent
def delete_transaction(tx_id: int):
    with atomic(db.session):
        removed = cashbox.delete_transaction(db.session, tenant_context(), tx_id)
    return jsonify({"ok": True, "removed": removed})


@cashbox_bp.get("/summary")
@login_required
@require_context()
def summary():
    return jsonify(cashbox.summary(db.session, tenant_context(), currencies=_currencies()))


@cashbox_bp.post("/exchange")
@login_required
@require_context()
@idempotent
def exchange():
    data = dated_payload()
    with atomic(db.session):
        out_leg, in_leg = cashbox.exchange(
            db.session,
            tenant_context(),
            from_currency=data.get("from_currency"),
            to_currency=data.get("to_currency"),
            from_amount=data.get("from_amount"),
            rate=data.get("rate"),
            description=data.get("description"),
            entry_date=data.get("entry_date"),
            currencies=_currencies(),
        )
    return jsonify({"out": out_leg.to_dict(), "in": in_leg.to_dict()}), 201
