from flask import Blueprint, jsonify, request
from flask_login import login_required

from models import db
from routes.guards import dated_payload, idempotent, payload, require_context, tenant_context
from services import members
from services.ledger import atomic


members_bp = Blueprint("members", __name__, url_prefix="/api")


@members_bp.get("/member-types")
@login_required
@require_context()
def list_types():
    return jsonify([t.to_dict() for t in members.list_types(db.session, tenant_context())])


@members_bp.post("/member-types")
@login_required
@require_context()
def create_type():
    with atomic(db.session):
        t = members.create_type(db.session, tenant_context(), name=payload().get("name"))
    return jsonify(t.to_dict()), 201


@members_bp.delete("/member-types/<int:type_id>")
@login_required
@require_context()
def delete_type(type_id: int):
    with atomic(db.session):
        members.delete_type(db.session, tenant_context(), type_id)
    return jsonify({"ok": True})


@members_bp.get("/members")
@login_required
@require_context()
def list_members():
    rows = members.list_members(db.session, tenant_context(), request.args.get("type_id"))
    return jsonify([m.to_dict() for m in rows])


@members_bp.post("/members")
@login_required
@require_context()
@idempotent
def create_member():
    data = payload()
    with atomic(db.session):
        m = members.create_member(
            db.session,
            tenant_context(),
            name=data.get("name"),
            phone=data.get("phone"),
            type_id=data.get("type_id"),
        )
    return jsonify(m.to_dict()), 201


@members_bp.delete("/members/<int:member_id>")
@login_required
@require_context()
@idempotent
def delete_member(member_id: int):
    with atomic(db.session):
        members.delete_member(db.session, tenant_context(), member_id)
    return jsonify({"ok": True})


@members_bp.get("/member-transfers")
@login_required
@require_context()
def list_transfers():
    rows = members.list_transfers(db.session, tenant_context(), request.args.get("member_id"))
    return jsonify([t.to_dict() for t in rows])


@members_bp.post("/member-transfers")
@login_required
@require_context()
@idempotent
def create_transfer():
    data = dated_payload()
    with atomic(db.session):
        t = members.create_transfer(
            db.session,
            tenant_context(),
            member_id=data.get("member_id"),
            amount=data.get("amount"),
            note=data.get("note"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(t.to_dict()), 201


@members_bp.delete("/member-transfers/<int:transfer_id>")
@login_required
@require_context()
@idempotent
def delete_transfer(transfer_id: int):
    with atomic(db.session):
        members.delete_transfer(db.session, tenant_context(), transfer_id)
    return jsonify({"ok": True})
