from flask import Blueprint, jsonify
from flask_login import login_required

from models import db
from routes.guards import dated_payload, idempotent, payload, require_context, tenant_context
from services import projects
from services.ledger import atomic


projects_bp = Blueprint("projects", __name__, url_prefix="/api")


@projects_bp.get("/projects")
@login_required
@require_context()
def list_projects():
    return jsonify([p.to_dict() for p in projects.list_projects(db.session, tenant_context())])


@projects_bp.post("/projects")
@login_required
@require_context()
@idempotent
def create_project():
    data = payload()
    with atomic(db.session):
        p = projects.create_project(
            db.session, tenant_context(), name=data.get("name"), description=data.get("description")
        )
    return jsonify(p.to_dict()), 201


@projects_bp.delete("/projects/<int:project_id>")
@login_required
@require_context()
@idempotent
def delete_project(project_id: int):
    with atomic(db.session):
        projects.delete_project(db.session, tenant_context(), project_id)
    return jsonify({"ok": True})


@projects_bp.get("/projects/<int:project_id>/transactions")
@login_required
@require_context()
def list_transactions(project_id: int):
    rows = projects.list_transactions(db.session, tenant_context(), project_id)
    return jsonify([t.to_dict() for t in rows])


@projects_bp.post("/projects/<int:project_id>/transactions")
@login_required
@require_context()
@idempotent
def create_transaction(project_id: int):
    data = dated_payload()
    with atomic(db.session):
        t = projects.create_transaction(
            db.session,
            tenant_context(),
            project_id,
            type=data.get("type"),
            amount=data.get("amount"),
            description=data.get("description"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(t.to_dict()), 201


@projects_bp.delete("/projects/<int:project_id>/transactions/<int:tx_id>")
@login_required
@require_context()
@idempotent
def delete_transaction(project_id: int, tx_id: int):
    with atomic(db.session):
        projects.delete_transaction(db.session, tenant_context(), project_id, tx_id)
    return jsonify({"ok": True})
