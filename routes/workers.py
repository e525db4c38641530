from flask import Blueprint, jsonify, request
from flask_login import login_required

from models import db
from routes.guards import dated_payload, idempotent, payload, require_context, tenant_context
from services import workers
from services.ledger import atomic


workers_bp = Blueprint("workers", __name__, url_prefix="/api")


@workers_bp.get("/managed-workers")
@login_required
@require_context()
def list_workers():
    active_only = request.args.get("active") in ("1", "true")
    rows = workers.list_workers(db.session, tenant_context(), active_only=active_only)
    return jsonify([w.to_dict() for w in rows])


@workers_bp.post("/managed-workers")
@login_required
@require_context()
@idempotent
def create_worker():
    with atomic(db.session):
        w = workers.create_worker(db.session, tenant_context(), payload())
    return jsonify(w.to_dict()), 201


@workers_bp.patch("/managed-workers/<int:worker_id>")
@login_required
@require_context()
def update_worker(worker_id: int):
    with atomic(db.session):
        w = workers.update_worker(db.session, tenant_context(), worker_id, payload())
    return jsonify(w.to_dict())


@workers_bp.delete("/managed-workers/<int:worker_id>")
@login_required
@require_context()
@idempotent
def delete_worker(worker_id: int):
    with atomic(db.session):
        workers.delete_worker(db.session, tenant_context(), worker_id)
    return jsonify({"ok": True})


@workers_bp.get("/managed-workers/<int:worker_id>/transactions")
@login_required
@require_context()
def list_transactions(worker_id: int):
    rows = workers.list_transactions(db.session, tenant_context(), worker_id)
    return jsonify([t.to_dict() for t in rows])


@workers_bp.post("/managed-workers/<int:worker_id>/transactions")
@login_required
@require_context()
@idempotent
def create_transaction(worker_id: int):
    data = dated_payload()
    with atomic(db.session):
        t = workers.create_transaction(
            db.session,
            tenant_context(),
            worker_id,
            type=data.get("type"),
            amount=data.get("amount"),
            note=data.get("note"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(t.to_dict()), 201


@workers_bp.delete("/managed-workers/<int:worker_id>/transactions/<int:tx_id>")
@login_required
@require_context()
@idempotent
def delete_transaction(worker_id: int, tx_id: int):
    with atomic(db.session):
        workers.delete_transaction(db.session, tenant_context(), worker_id, tx_id)
    return jsonify({"ok": True})
