from flask import Blueprint, jsonify, request
from flask_login import login_required

from models import db
from models.membership import Role
from routes.guards import dated_payload, idempotent, payload, require_context, require_roles, tenant_context
from services import companies, transfers
from services.ledger import atomic


companies_bp = Blueprint("companies", __name__, url_prefix="/api")


# -------------------------
# Companies
# -------------------------
@companies_bp.get("/companies")
@login_required
@require_context()
def list_companies():
    rows = companies.list_companies(db.session, tenant_context())
    return jsonify([c.to_dict() for c in rows])


@companies_bp.post("/companies")
@login_required
@require_roles(Role.OWNER, Role.ADMIN)
@idempotent
def create_company():
    data = payload()
    with atomic(db.session):
        c = companies.create_child_company(
            db.session,
            tenant_context(),
            name=data.get("name"),
            phone=data.get("phone"),
            balance=data.get("balance"),
            username=data.get("username"),
            password=data.get("password"),
        )
    return jsonify(c.to_dict()), 201


@companies_bp.patch("/companies/<int:company_id>")
@login_required
@require_roles(Role.OWNER, Role.ADMIN)
def update_company(company_id: int):
    data = payload()
    with atomic(db.session):
        c = companies.update_company(db.session, tenant_context(), company_id, data)
    return jsonify(c.to_dict())


@companies_bp.delete("/companies/<int:company_id>")
@login_required
@require_roles(Role.OWNER, Role.ADMIN)
def delete_company(company_id: int):
    with atomic(db.session):
        companies.delete_company(db.session, tenant_context(), company_id)
    return jsonify({"ok": True})


@companies_bp.get("/companies/<int:company_id>/statement")
@login_required
@require_context()
def company_statement(company_id: int):
    return jsonify(transfers.statement_for(db.session, tenant_context(), company_id))


# -------------------------
# Transfers
# -------------------------
@companies_bp.get("/transfers")
@login_required
@require_context()
def list_transfers():
    rows = transfers.list_transfers(db.session, tenant_context(), request.args.get("status"))
    return jsonify([t.to_dict() for t in rows])


@companies_bp.post("/transfers")
@login_required
@require_context()
@idempotent
def create_transfer():
    data = dated_payload()
    with atomic(db.session):
        t = transfers.create_transfer(
            db.session,
            tenant_context(),
            from_company_id=data.get("from_company_id"),
            to_company_id=data.get("to_company_id"),
            amount=data.get("amount"),
            note=data.get("note"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(t.to_dict()), 201


@companies_bp.patch("/transfers/<int:transfer_id>/approve")
@login_required
@require_context()
@idempotent
def approve_transfer(transfer_id: int):
    with atomic(db.session):
        t = transfers.approve_transfer(db.session, tenant_context(), transfer_id)
    return jsonify(t.to_dict())


@companies_bp.patch("/transfers/<int:transfer_id>/reject")
@login_required
@require_context()
@idempotent
def reject_transfer(transfer_id: int):
    with atomic(db.session):
        t = transfers.reject_transfer(db.session, tenant_context(), transfer_id)
    return jsonify(t.to_dict())
