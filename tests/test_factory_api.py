from decimal import Decimal

import pytest

from models.company import Company
from models.factory import FactorySettings, SparePartItem
from models import db
from services.factory import entry_output, entry_rating


def factory_balance(app, parent_id):
    with app.app_context():
        fs = db.session.query(FactorySettings).filter_by(company_id=parent_id).one()
        return Decimal(str(fs.balance))


@pytest.fixture
def plant(client):
    ws = client.post("/api/workshops", json={"name": "Extrusion"}).get_json()
    machine = client.post(
        f"/api/workshops/{ws['id']}/machines", json={"name": "Line 1", "type": "weight", "unit": "kg"}
    ).get_json()
    part = client.post("/api/spare-parts", json={"name": "Bearing 6204", "unit": "pcs"}).get_json()
    return ws["id"], machine["id"], part["id"]


def test_fund_moves_between_parent_and_factory(client, app, parent_id, read):
    resp = client.patch("/api/factory-settings/balance", json={"direction": "add", "amount": "5000"})
    assert resp.status_code == 200
    assert resp.get_json()["balance"] == 5000.0
    assert read(Company, parent_id) == Decimal("-5000.00")

    client.patch("/api/factory-settings/balance", json={"direction": "withdraw", "amount": "1500"})
    assert factory_balance(app, parent_id) == Decimal("3500.00")
    assert read(Company, parent_id) == Decimal("-3500.00")

    assert client.patch("/api/factory-settings/balance", json={"direction": "sideways", "amount": "1"}).status_code == 400


def test_purchase_consume_and_delete(client, app, parent_id, read, plant):
    _, machine, part = plant

    buy = client.post(f"/api/spare-parts/{part}/purchases", json={"quantity": "10", "cost": "200"})
    assert buy.status_code == 201
    assert read(SparePartItem, part, "quantity") == Decimal("10.000")
    assert factory_balance(app, parent_id) == Decimal("-200.00")
    assert read(Company, parent_id) == Decimal("-200.00")

    used = client.post(f"/api/machines/{machine}/spare-parts-consumption", json={"item_id": part, "quantity": "4"})
    assert used.status_code == 201
    assert read(SparePartItem, part, "quantity") == Decimal("6.000")
    # consumption is quantity only
    assert read(Company, parent_id) == Decimal("-200.00")

    too_much = client.post(f"/api/machines/{machine}/spare-parts-consumption", json={"item_id": part, "quantity": "7"})
    assert too_much.status_code == 409
    assert read(SparePartItem, part, "quantity") == Decimal("6.000")

    # the bought quantity is partly used up, so the purchase cannot be undone yet
    purchase_id = buy.get_json()["id"]
    assert client.delete(f"/api/spare-parts-purchases/{purchase_id}").status_code == 409

    listed = client.get(f"/api/machines/{machine}/spare-parts-consumption").get_json()
    assert [c["id"] for c in listed] == [used.get_json()["id"]]

    client.delete(f"/api/spare-parts-consumption/{used.get_json()['id']}")
    assert read(SparePartItem, part, "quantity") == Decimal("10.000")

    assert client.delete(f"/api/spare-parts-purchases/{purchase_id}").status_code == 200
    assert read(SparePartItem, part, "quantity") == Decimal("0.000")
    assert factory_balance(app, parent_id) == Decimal("0.00")
    assert read(Company, parent_id) == Decimal("0.00")


def test_raw_material_item_delete_refunds_purchases(client, app, parent_id, read):
    item = client.post("/api/raw-materials", json={"name": "PVC resin", "unit": "kg"}).get_json()
    client.post(f"/api/raw-materials/{item['id']}/purchases", json={"quantity": "500", "cost": "750"})
    client.post(f"/api/raw-materials/{item['id']}/purchases", json={"quantity": "250", "cost": "375"})
    assert read(Company, parent_id) == Decimal("-1125.00")

    assert client.delete(f"/api/raw-materials/{item['id']}").status_code == 200
    assert read(Company, parent_id) == Decimal("0.00")
    assert factory_balance(app, parent_id) == Decimal("0.00")


def test_workshop_expenses_and_delete(client, app, parent_id, read, plant):
    ws, machine, part = plant
    client.post("/api/workshop-expense-categories", json={"name": "Electricity"})
    e = client.post(f"/api/workshops/{ws}/expenses", json={"amount": "300", "category": "Electricity"})
    assert e.status_code == 201
    assert read(Company, parent_id) == Decimal("-300.00")
    assert factory_balance(app, parent_id) == Decimal("-300.00")

    client.post(f"/api/spare-parts/{part}/purchases", json={"quantity": "2", "cost": "0"})
    used = client.post(f"/api/machines/{machine}/spare-parts-consumption", json={"item_id": part, "quantity": "1"})

    assert client.delete(f"/api/workshops/{ws}").status_code == 200
    assert read(Company, parent_id) == Decimal("0.00")
    assert client.get("/api/machines").get_json() == []

    # consumption history survives without its machine
    rows = client.get("/api/spare-parts-consumption").get_json()
    assert [(r["id"], r["machine_id"]) for r in rows] == [(used.get_json()["id"], None)]


@pytest.fixture
def line(client):
    ws = client.post("/api/workshops", json={"name": "Assembly"}).get_json()["id"]

    def machine(name, kind, expected):
        return client.post(
            f"/api/workshops/{ws}/machines",
            json={"name": name, "type": kind, "expected_daily_output": expected, "unit": "pcs"},
        ).get_json()["id"]

    return machine("Cutter", "counter", "100"), machine("Scale", "weight", "50"), machine("Spare", "counter", "10")


def test_machine_entries_derive_output_and_rating(client, line):
    cutter, scale, _ = line
    worker = client.post("/api/managed-workers", json={"name": "Karim"}).get_json()

    first = client.post(
        f"/api/machines/{cutter}/entries",
        json={"worker_id": worker["id"], "old_counter": "1000", "new_counter": "1120", "date": "2026-09-02"},
    )
    assert first.status_code == 201
    body = first.get_json()
    assert (body["output_value"], body["rating"], body["entry_date"]) == (120.0, "above", "2026-09-02")

    low = client.post(
        f"/api/machines/{cutter}/entries", json={"old_counter": "1120", "new_counter": "1180", "date": "2026-09-03"}
    ).get_json()
    assert (low["output_value"], low["rating"]) == (60.0, "below")

    weighed = client.post(f"/api/machines/{scale}/entries", json={"output_value": "50", "date": "2026-09-02"}).get_json()
    assert (weighed["output_value"], weighed["old_counter"], weighed["rating"]) == (50.0, None, "normal")

    backwards = client.post(f"/api/machines/{cutter}/entries", json={"old_counter": "10", "new_counter": "5"})
    assert backwards.status_code == 400

    client.post(f"/api/machines/{cutter}/entries", json={"old_counter": "0", "new_counter": "100", "date": "2026-10-01"})
    september = client.get(
        f"/api/machine-entries?machineId={cutter}&startDate=2026-09-01&endDate=2026-09-30"
    ).get_json()
    assert sorted(e["output_value"] for e in september) == [60.0, 120.0]
    assert len(client.get(f"/api/machines/{cutter}/entries").get_json()) == 3

    # deleting the worker keeps the machine's history
    client.delete(f"/api/managed-workers/{worker['id']}")
    kept = client.get(f"/api/machine-entries?machineId={cutter}&startDate=2026-09-02&endDate=2026-09-02").get_json()
    assert [e["worker_id"] for e in kept] == [None]

    assert client.delete(f"/api/machine-entries/{low['id']}").status_code == 200
    assert client.delete(f"/api/machines/{cutter}").status_code == 200
    assert [e["machine_id"] for e in client.get("/api/machine-entries").get_json()] == [scale]


def test_machine_performance_for_a_month(client, line):
    cutter, scale, spare = line
    for old, new, day in (("0", "120", "2026-09-02"), ("120", "180", "2026-09-03"), ("0", "500", "2026-10-01")):
        client.post(f"/api/machines/{cutter}/entries", json={"old_counter": old, "new_counter": new, "date": day})
    client.post(f"/api/machines/{scale}/entries", json={"output_value": "50", "date": "2026-09-10"})

    part = client.post("/api/spare-parts", json={"name": "Blade"}).get_json()["id"]
    client.post(f"/api/spare-parts/{part}/purchases", json={"quantity": "5", "cost": "0"})
    client.post(
        f"/api/machines/{cutter}/spare-parts-consumption", json={"item_id": part, "quantity": "2", "date": "2026-09-05"}
    )

    rows = {r["machine_id"]: r for r in client.get("/api/machine-performance?month=2026-09").get_json()}

    c = rows[cutter]
    assert (c["days_worked"], c["total_output"], c["expected_total"]) == (2, 180.0, 200.0)
    assert (c["avg_output"], c["performance"], c["status"]) == (90.0, 90.0, "good")
    assert c["spare_parts"] == [{"name": "Blade", "quantity": 2.0}]

    assert (rows[scale]["performance"], rows[scale]["status"]) == (100.0, "excellent")
    assert (rows[spare]["days_worked"], rows[spare]["status"]) == (0, "idle")

    october = {r["machine_id"]: r for r in client.get("/api/machine-performance?month=2026-10").get_json()}
    assert october[cutter]["status"] == "excellent"
    assert october[cutter]["spare_parts"] == []

    assert client.get("/api/machine-performance?month=Sept").status_code == 400


def test_output_and_rating_rules():
    assert entry_output("counter", old_counter="1,5", new_counter="4") == (
        Decimal("2.500"), Decimal("1.500"), Decimal("4.000")
    )
    assert entry_output("weight", output_value="12.3456")[0] == Decimal("12.346")
    assert entry_rating(Decimal("5"), Decimal("0")) == "normal"
    assert entry_rating(Decimal("9"), Decimal("10")) == "below"
