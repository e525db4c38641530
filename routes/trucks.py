from flask import Blueprint, jsonify
from flask_login import login_required

from models import db
from routes.guards import dated_payload, idempotent, payload, require_context, tenant_context
from services import trucks
from services.ledger import atomic


trucks_bp = Blueprint("trucks", __name__, url_prefix="/api")


@trucks_bp.get("/trucks")
@login_required
@require_context()
def list_trucks():
    return jsonify([t.to_dict() for t in trucks.list_trucks(db.session, tenant_context())])


@trucks_bp.post("/trucks")
@login_required
@require_context()
@idempotent
def create_truck():
    data = payload()
    with atomic(db.session):
        t = trucks.create_truck(
            db.session,
            tenant_context(),
            number=data.get("number"),
            driver_name=data.get("driver_name"),
            fuel_formula=data.get("fuel_formula"),
            driver_wage=data.get("driver_wage"),
            driver_commission_rate=data.get("driver_commission_rate"),
        )
    return jsonify(t.to_dict()), 201


@trucks_bp.patch("/trucks/<int:truck_id>")
@login_required
@require_context()
def update_truck(truck_id: int):
    with atomic(db.session):
        t = trucks.update_truck(db.session, tenant_context(), truck_id, payload())
    return jsonify(t.to_dict())


@trucks_bp.delete("/trucks/<int:truck_id>")
@login_required
@require_context()
@idempotent
def delete_truck(truck_id: int):
    with atomic(db.session):
        trucks.delete_truck(db.session, tenant_context(), truck_id)
    return jsonify({"ok": True})


# -------------------------
# Entries
# -------------------------
@trucks_bp.get("/trucks/<int:truck_id>/expenses")
@login_required
@require_context()
def list_expenses(truck_id: int):
    return jsonify([e.to_dict() for e in trucks.list_expenses(db.session, tenant_context(), truck_id)])


@trucks_bp.post("/trucks/<int:truck_id>/expenses")
@login_required
@require_context()
@idempotent
def create_expense(truck_id: int):
    data = dated_payload()
    with atomic(db.session):
        e = trucks.create_expense(
            db.session,
            tenant_context(),
            truck_id,
            type=data.get("type"),
            amount=data.get("amount"),
            category=data.get("category"),
            description=data.get("description"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(e.to_dict()), 201


@trucks_bp.patch("/trucks/<int:truck_id>/expenses/<int:expense_id>")
@login_required
@require_context()
@idempotent
def update_expense(truck_id: int, expense_id: int):
    with atomic(db.session):
        e = trucks.update_expense(db.session, tenant_context(), truck_id, expense_id, dated_payload())
    return jsonify(e.to_dict())


@trucks_bp.delete("/trucks/<int:truck_id>/expenses/<int:expense_id>")
@login_required
@require_context()
@idempotent
def delete_expense(truck_id: int, expense_id: int):
    with atomic(db.session):
        trucks.delete_expense(db.session, tenant_context(), truck_id, expense_id)
    return jsonify({"ok": True})


# -------------------------
# Trips
# -------------------------
@trucks_bp.get("/trucks/<int:truck_id>/trips")
@login_required
@require_context()
def list_trips(truck_id: int):
    return jsonify([t.to_dict() for t in trucks.list_trips(db.session, tenant_context(), truck_id)])


@trucks_bp.get("/trucks/<int:truck_id>/last-trip")
@login_required
@require_context()
def last_trip(truck_id: int):
    t = trucks.last_trip(db.session, tenant_context(), truck_id)
    return jsonify(t.to_dict() if t else None)


@trucks_bp.post("/trucks/<int:truck_id>/trips")
@login_required
@require_context()
@idempotent
def create_trip(truck_id: int):
    with atomic(db.session):
        t = trucks.create_trip(db.session, tenant_context(), truck_id, dated_payload())
    return jsonify(t.to_dict()), 201


@trucks_bp.patch("/trucks/<int:truck_id>/trips/<int:trip_id>")
@login_required
@require_context()
@idempotent
def update_trip(truck_id: int, trip_id: int):
    with atomic(db.session):
        t = trucks.update_trip(db.session, tenant_context(), truck_id, trip_id, dated_payload())
    return jsonify(t.to_dict())


@trucks_bp.delete("/trucks/<int:truck_id>/trips/<int:trip_id>")
@login_required
@require_context()
@idempotent
def delete_trip(truck_id: int, trip_id: int):
    with atomic(db.session):
        trucks.delete_trip(db.session, tenant_context(), truck_id, trip_id)
    return jsonify({"ok": True})


@trucks_bp.get("/trucks/<int:truck_id>/statement")
@login_required
@require_context()
def statement(truck_id: int):
    ctx = tenant_context()
    truck = trucks.get_truck(db.session, ctx, truck_id)
    rows = trucks.monthly_statement(
        truck,
        trucks.list_trips(db.session, ctx, truck_id),
        trucks.list_expenses(db.session, ctx, truck_id),
    )
    return jsonify({"truck": truck.to_dict(), "months": rows})
