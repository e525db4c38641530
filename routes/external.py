from flask import Blueprint, jsonify
from flask_login import login_required

from models import db
from routes.guards import dated_payload, idempotent, require_context, tenant_context
from services import external
from services.ledger import atomic


external_bp = Blueprint("external", __name__, url_prefix="/api")


@external_bp.get("/external-funds")
@login_required
@require_context()
def list_funds():
    return jsonify([f.to_dict() for f in external.list_funds(db.session, tenant_context())])


@external_bp.post("/external-funds")
@login_required
@require_context()
@idempotent
def create_fund():
    data = dated_payload()
    with atomic(db.session):
        f = external.create_fund(
            db.session,
            tenant_context(),
            person_name=data.get("person_name"),
            type=data.get("type"),
            amount=data.get("amount"),
            phone=data.get("phone"),
            description=data.get("description"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(f.to_dict()), 201


@external_bp.delete("/external-funds/<int:fund_id>")
@login_required
@require_context()
@idempotent
def delete_fund(fund_id: int):
    with atomic(db.session):
        external.delete_fund(db.session, tenant_context(), fund_id)
    return jsonify({"ok": True})


@external_bp.get("/external-debts")
@login_required
@require_context()
def list_debts():
    return jsonify([d.to_dict() for d in external.list_debts(db.session, tenant_context())])


@external_bp.post("/external-debts")
@login_required
@require_context()
@idempotent
def create_debt():
    data = dated_payload()
    with atomic(db.session):
        d = external.create_debt(
            db.session,
            tenant_context(),
            person_name=data.get("person_name"),
            total_amount=data.get("total_amount"),
            phone=data.get("phone"),
            note=data.get("note"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(d.to_dict()), 201


@external_bp.delete("/external-debts/<int:debt_id>")
@login_required
@require_context()
@idempotent
def delete_debt(debt_id: int):
    with atomic(db.session):
        external.delete_debt(db.session, tenant_context(), debt_id)
    return jsonify({"ok": True})


@external_bp.get("/external-debts/<int:debt_id>/payments")
@login_required
@require_context()
def list_payments(debt_id: int):
    return jsonify([p.to_dict() for p in external.list_payments(db.session, tenant_context(), debt_id)])


@external_bp.post("/external-debts/<int:debt_id>/payments")
@login_required
@require_context()
@idempotent
def create_payment(debt_id: int):
    data = dated_payload()
    with atomic(db.session):
        p = external.create_payment(
            db.session,
            tenant_context(),
            debt_id,
            amount=data.get("amount"),
            note=data.get("note"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(p.to_dict()), 201


@external_bp.delete("/external-debts/<int:debt_id>/payments/<int:payment_id>")
@login_required
@require_context()
@idempotent
def delete_payment(debt_id: int, payment_id: int):
    with atomic(db.session):
        d = external.delete_payment(db.session, tenant_context(), debt_id, payment_id)
    return jsonify(d.to_dict())
