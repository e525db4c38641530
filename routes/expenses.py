from flask import Blueprint, jsonify, request
from flask_login import login_required

from models import db
from routes.guards import dated_payload, idempotent, payload, require_context, tenant_context
from services import expenses
from services.ledger import atomic


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api")


@expenses_bp.get("/expense-categories")
@login_required
@require_context()
def list_categories():
    return jsonify([c.to_dict() for c in expenses.list_categories(db.session, tenant_context())])


@expenses_bp.post("/expense-categories")
@login_required
@require_context()
def create_category():
    with atomic(db.session):
        c = expenses.create_category(db.session, tenant_context(), name=payload().get("name"))
    return jsonify(c.to_dict()), 201


@expenses_bp.delete("/expense-categories/<int:category_id>")
@login_required
@require_context()
def delete_category(category_id: int):
    with atomic(db.session):
        expenses.delete_category(db.session, tenant_context(), category_id)
    return jsonify({"ok": True})


@expenses_bp.get("/expenses")
@login_required
@require_context()
def list_expenses():
    rows = expenses.list_expenses(
        db.session, tenant_context(), date_from=request.args.get("from"), date_to=request.args.get("to")
    )
    return jsonify([e.to_dict() for e in rows])


@expenses_bp.post("/expenses")
@login_required
@require_context()
@idempotent
def create_expense():
    data = dated_payload()
    with atomic(db.session):
        e = expenses.create_expense(
            db.session,
            tenant_context(),
            title=data.get("title"),
            amount=data.get("amount"),
            category_id=data.get("category_id"),
            description=data.get("description"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(e.to_dict()), 201


@expenses_bp.patch("/expenses/<int:expense_id>")
@login_required
@require_context()
@idempotent
def update_expense(expense_id: int):
    data = dated_payload()
    with atomic(db.session):
        e = expenses.update_expense(db.session, tenant_context(), expense_id, data)
    return jsonify(e.to_dict())


@expenses_bp.delete("/expenses/<int:expense_id>")
@login_required
@require_context()
@idempotent
def delete_expense(expense_id: int):
    with atomic(db.session):
        expenses.delete_expense(db.session, tenant_context(), expense_id)
    return jsonify({"ok": True})

