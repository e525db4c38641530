from flask import Blueprint, jsonify, request
from flask_login import login_required

from models import db
from routes.guards import dated_payload, idempotent, payload, require_context, tenant_context
from services import factory
from services.ledger import atomic


factory_bp = Blueprint("factory", __name__, url_prefix="/api")


def _ok():
    return jsonify({"ok": True})


# -------------------------
# Settings
# -------------------------
@factory_bp.get("/factory-settings")
@login_required
@require_context()
def settings():
    with atomic(db.session):
        fs = factory.get_settings(db.session, tenant_context())
    return jsonify(fs.to_dict())


@factory_bp.patch("/factory-settings/balance")
@login_required
@require_context()
@idempotent
def move_balance():
    data = payload()
    with atomic(db.session):
        fs = factory.move_balance(
            db.session, tenant_context(), direction=data.get("direction"), amount=data.get("amount")
        )
    return jsonify(fs.to_dict())


# -------------------------
# Workshops
# -------------------------
@factory_bp.get("/workshops")
@login_required
@require_context()
def list_workshops():
    return jsonify([w.to_dict() for w in factory.list_workshops(db.session, tenant_context())])


@factory_bp.post("/workshops")
@login_required
@require_context()
def create_workshop():
    with atomic(db.session):
        w = factory.create_workshop(db.session, tenant_context(), name=payload().get("name"))
    return jsonify(w.to_dict()), 201


@factory_bp.delete("/workshops/<int:workshop_id>")
@login_required
@require_context()
@idempotent
def delete_workshop(workshop_id: int):
    with atomic(db.session):
        factory.delete_workshop(db.session, tenant_context(), workshop_id)
    return _ok()


@factory_bp.get("/workshop-expense-categories")
@login_required
@require_context()
def list_expense_categories():
    return jsonify([c.to_dict() for c in factory.list_expense_categories(db.session, tenant_context())])


@factory_bp.post("/workshop-expense-categories")
@login_required
@require_context()
def create_expense_category():
    with atomic(db.session):
        c = factory.create_expense_category(db.session, tenant_context(), name=payload().get("name"))
    return jsonify(c.to_dict()), 201


@factory_bp.delete("/workshop-expense-categories/<int:category_id>")
@login_required
@require_context()
def delete_expense_category(category_id: int):
    with atomic(db.session):
        factory.delete_expense_category(db.session, tenant_context(), category_id)
    return _ok()


@factory_bp.get("/workshops/<int:workshop_id>/expenses")
@login_required
@require_context()
def list_workshop_expenses(workshop_id: int):
    rows = factory.list_workshop_expenses(db.session, tenant_context(), workshop_id)
    return jsonify([e.to_dict() for e in rows])


@factory_bp.post("/workshops/<int:workshop_id>/expenses")
@login_required
@require_context()
@idempotent
def create_workshop_expense(workshop_id: int):
    data = dated_payload()
    with atomic(db.session):
        e = factory.create_workshop_expense(
            db.session,
            tenant_context(),
            workshop_id,
            amount=data.get("amount"),
            category=data.get("category"),
            description=data.get("description"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(e.to_dict()), 201


@factory_bp.delete("/workshop-expenses/<int:expense_id>")
@login_required
@require_context()
@idempotent
def delete_workshop_expense(expense_id: int):
    with atomic(db.session):
        factory.delete_workshop_expense(db.session, tenant_context(), expense_id)
    return _ok()


# -------------------------
# Machines
# -------------------------
@factory_bp.get("/machines")
@login_required
@require_context()
def list_all_machines():
    return jsonify([m.to_dict() for m in factory.list_machines(db.session, tenant_context())])


@factory_bp.get("/workshops/<int:workshop_id>/machines")
@login_required
@require_context()
def list_machines(workshop_id: int):
    return jsonify([m.to_dict() for m in factory.list_machines(db.session, tenant_context(), workshop_id)])


@factory_bp.post("/workshops/<int:workshop_id>/machines")
@login_required
@require_context()
def create_machine(workshop_id: int):
    data = payload()
    with atomic(db.session):
        m = factory.create_machine(
            db.session,
            tenant_context(),
            workshop_id,
            name=data.get("name"),
            type=data.get("type"),
            expected_daily_output=data.get("expected_daily_output"),
            unit=data.get("unit"),
        )
    return jsonify(m.to_dict()), 201


@factory_bp.delete("/machines/<int:machine_id>")
@login_required
@require_context()
def delete_machine(machine_id: int):
    with atomic(db.session):
        factory.delete_machine(db.session, tenant_context(), machine_id)
    return _ok()


# -------------------------
# Machine daily output
# -------------------------
def _entry(e) -> dict:
    return {**e.to_dict(), "rating": factory.entry_rating(e.output_value, e.machine.expected_daily_output)}


@factory_bp.get("/machine-entries")
@login_required
@require_context()
def list_machine_entries():
    args = request.args
    rows = factory.list_machine_entries(
        db.session,
        tenant_context(),
        machine_id=args.get("machineId") or args.get("machine_id"),
        date_from=args.get("startDate") or args.get("from"),
        date_to=args.get("endDate") or args.get("to"),
    )
    return jsonify([_entry(e) for e in rows])


@factory_bp.get("/machines/<int:machine_id>/entries")
@login_required
@require_context()
def list_entries_for_machine(machine_id: int):
    rows = factory.list_machine_entries(db.session, tenant_context(), machine_id=machine_id)
    return jsonify([_entry(e) for e in rows])


@factory_bp.post("/machines/<int:machine_id>/entries")
@login_required
@require_context()
@idempotent
def create_machine_entry(machine_id: int):
    data = dated_payload()
    with atomic(db.session):
        e = factory.create_machine_entry(
            db.session,
            tenant_context(),
            machine_id,
            worker_id=data.get("worker_id"),
            output_value=data.get("output_value"),
            old_counter=data.get("old_counter"),
            new_counter=data.get("new_counter"),
            note=data.get("note"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(_entry(e)), 201


@factory_bp.delete("/machine-entries/<int:entry_id>")
@login_required
@require_context()
def delete_machine_entry(entry_id: int):
    with atomic(db.session):
        factory.delete_machine_entry(db.session, tenant_context(), entry_id)
    return _ok()


@factory_bp.get("/machine-performance")
@login_required
@require_context()
def machine_performance():
    return jsonify(factory.machine_performance(db.session, tenant_context(), month=request.args.get("month")))


# -------------------------
# Spare parts
# -------------------------
@factory_bp.get("/spare-parts")
@login_required
@require_context()
def list_spare_parts():
    return jsonify([i.to_dict() for i in factory.list_spare_parts(db.session, tenant_context())])


@factory_bp.post("/spare-parts")
@login_required
@require_context()
def create_spare_part():
    data = payload()
    with atomic(db.session):
        i = factory.create_spare_part(db.session, tenant_context(), name=data.get("name"), unit=data.get("unit"))
    return jsonify(i.to_dict()), 201


@factory_bp.delete("/spare-parts/<int:item_id>")
@login_required
@require_context()
@idempotent
def delete_spare_part(item_id: int):
    with atomic(db.session):
        factory.delete_spare_part(db.session, tenant_context(), item_id)
    return _ok()


@factory_bp.get("/spare-parts/<int:item_id>/purchases")
@login_required
@require_context()
def list_spare_part_purchases(item_id: int):
    rows = factory.list_spare_part_purchases(db.session, tenant_context(), item_id)
    return jsonify([p.to_dict() for p in rows])


@factory_bp.post("/spare-parts/<int:item_id>/purchases")
@login_required
@require_context()
@idempotent
def purchase_spare_part(item_id: int):
    data = dated_payload()
    with atomic(db.session):
        p = factory.purchase_spare_part(
            db.session,
            tenant_context(),
            item_id,
            quantity=data.get("quantity"),
            cost=data.get("cost"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(p.to_dict()), 201


@factory_bp.delete("/spare-parts-purchases/<int:purchase_id>")
@login_required
@require_context()
@idempotent
def delete_spare_part_purchase(purchase_id: int):
    with atomic(db.session):
        factory.delete_spare_part_purchase(db.session, tenant_context(), purchase_id)
    return _ok()


@factory_bp.get("/spare-parts-consumption")
@login_required
@require_context()
def list_consumptions():
    rows = factory.list_consumptions(
        db.session,
        tenant_context(),
        machine_id=request.args.get("machine_id"),
        item_id=request.args.get("item_id"),
    )
    return jsonify([c.to_dict() for c in rows])


@factory_bp.get("/machines/<int:machine_id>/spare-parts-consumption")
@login_required
@require_context()
def list_machine_consumptions(machine_id: int):
    rows = factory.list_consumptions(db.session, tenant_context(), machine_id=machine_id)
    return jsonify([c.to_dict() for c in rows])


@factory_bp.post("/machines/<int:machine_id>/spare-parts-consumption")
@login_required
@require_context()
@idempotent
def consume_spare_part(machine_id: int):
    data = dated_payload()
    with atomic(db.session):
        c = factory.consume_spare_part(
            db.session,
            tenant_context(),
            machine_id,
            item_id=data.get("item_id"),
            quantity=data.get("quantity"),
            note=data.get("note"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(c.to_dict()), 201


@factory_bp.delete("/spare-parts-consumption/<int:consumption_id>")
@login_required
@require_context()
@idempotent
def delete_consumption(consumption_id: int):
    with atomic(db.session):
        factory.delete_consumption(db.session, tenant_context(), consumption_id)
    return _ok()


# -------------------------
# Raw materials
# -------------------------
@factory_bp.get("/raw-materials")
@login_required
@require_context()
def list_raw_materials():
    return jsonify([i.to_dict() for i in factory.list_raw_materials(db.session, tenant_context())])


@factory_bp.post("/raw-materials")
@login_required
@require_context()
def create_raw_material():
    data = payload()
    with atomic(db.session):
        i = factory.create_raw_material(db.session, tenant_context(), name=data.get("name"), unit=data.get("unit"))
    return jsonify(i.to_dict()), 201


@factory_bp.delete("/raw-materials/<int:item_id>")
@login_required
@require_context()
@idempotent
def delete_raw_material(item_id: int):
    with atomic(db.session):
        factory.delete_raw_material(db.session, tenant_context(), item_id)
    return _ok()


@factory_bp.get("/raw-materials/<int:item_id>/purchases")
@login_required
@require_context()
def list_raw_material_purchases(item_id: int):
    rows = factory.list_raw_material_purchases(db.session, tenant_context(), item_id)
    return jsonify([p.to_dict() for p in rows])


@factory_bp.post("/raw-materials/<int:item_id>/purchases")
@login_required
@require_context()
@idempotent
def purchase_raw_material(item_id: int):
    data = dated_payload()
    with atomic(db.session):
        p = factory.purchase_raw_material(
            db.session,
            tenant_context(),
            item_id,
            quantity=data.get("quantity"),
            cost=data.get("cost"),
            entry_date=data.get("entry_date"),
        )
    return jsonify(p.to_dict()), 201


@factory_bp.delete("/raw-material-purchases/<int:purchase_id>")
@login_required
@require_context()
@idempotent
def delete_raw_material_purchase(purchase_id: int):
    with atomic(db.session):
        factory.delete_raw_material_purchase(db.session, tenant_context(), purchase_id)
    return _ok()
