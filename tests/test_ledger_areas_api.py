from datetime import date, timedelta
from decimal import Decimal

import pytest

from models.company import Company
from models.external import ExternalDebt
from models.member import Member
from models.project import Project
from models.worker import Worker


def test_general_expense_only_touches_parent(client, parent_id, read):
    cat = client.post("/api/expense-categories", json={"name": "Rent"}).get_json()
    assert client.post("/api/expense-categories", json={"name": "Rent"}).status_code == 409

    e = client.post(
        "/api/expenses", json={"title": "October rent", "amount": "1200", "category_id": cat["id"], "date": "2026-10-01"}
    ).get_json()
    assert read(Company, parent_id) == Decimal("-1200.00")

    client.patch(f"/api/expenses/{e['id']}", json={"amount": "1000"})
    assert read(Company, parent_id) == Decimal("-1000.00")

    # a category in use cannot go
    assert client.delete(f"/api/expense-categories/{cat['id']}").status_code == 409

    listed = client.get("/api/expenses?from=2026-10-01&to=2026-10-31").get_json()
    assert [x["id"] for x in listed] == [e["id"]]
    assert client.get("/api/expenses?from=2026-11-01").get_json() == []

    client.delete(f"/api/expenses/{e['id']}")
    assert read(Company, parent_id) == Decimal("0.00")


def test_expense_without_date_filters_by_recorded_day(client):
    e = client.post("/api/expenses", json={"title": "Water", "amount": "15"}).get_json()
    recorded = date.fromisoformat(e["created_at"][:10])

    same_day = client.get(f"/api/expenses?from={recorded}&to={recorded}").get_json()
    assert [x["id"] for x in same_day] == [e["id"]]
    assert client.get(f"/api/expenses?from={recorded + timedelta(days=1)}").get_json() == []
    assert client.get(f"/api/expenses?to={recorded - timedelta(days=1)}").get_json() == []


def test_member_transfer_and_member_delete(client, parent_id, read):
    kind = client.post("/api/member-types", json={"name": "Partner"}).get_json()
    m = client.post("/api/members", json={"name": "Hassan", "type_id": kind["id"]}).get_json()

    t1 = client.post("/api/member-transfers", json={"member_id": m["id"], "amount": "500"}).get_json()
    client.post("/api/member-transfers", json={"member_id": m["id"], "amount": "250"})
    assert read(Member, m["id"]) == Decimal("750.00")
    assert read(Company, parent_id) == Decimal("-750.00")

    client.delete(f"/api/member-transfers/{t1['id']}")
    assert read(Member, m["id"]) == Decimal("250.00")
    assert read(Company, parent_id) == Decimal("-250.00")

    assert client.delete(f"/api/member-types/{kind['id']}").status_code == 409

    assert client.delete(f"/api/members/{m['id']}").status_code == 200
    assert read(Company, parent_id) == Decimal("0.00")
    assert client.get("/api/member-transfers").get_json() == []


def test_project_transactions(client, parent_id, read):
    p = client.post("/api/projects", json={"name": "Warehouse"}).get_json()
    base = f"/api/projects/{p['id']}/transactions"

    client.post(base, json={"type": "income", "amount": "2000"})
    spend = client.post(base, json={"type": "expense", "amount": "700"}).get_json()
    assert read(Project, p["id"]) == Decimal("1300.00")
    assert read(Company, parent_id) == Decimal("1300.00")

    client.delete(f"{base}/{spend['id']}")
    assert read(Project, p["id"]) == Decimal("2000.00")

    client.delete(f"/api/projects/{p['id']}")
    assert read(Company, parent_id) == Decimal("0.00")


def test_external_funds_touch_parent_only(client, parent_id, read):
    f_in = client.post(
        "/api/external-funds", json={"person_name": "Yusuf", "type": "incoming", "amount": "900"}
    ).get_json()
    client.post("/api/external-funds", json={"person_name": "Yusuf", "type": "outgoing", "amount": "400"})
    assert read(Company, parent_id) == Decimal("500.00")

    client.delete(f"/api/external-funds/{f_in['id']}")
    assert read(Company, parent_id) == Decimal("-400.00")


def test_debt_payment_cannot_overshoot(client, parent_id, read):
    d = client.post("/api/external-debts", json={"person_name": "Supplier", "total_amount": "1000"}).get_json()
    base = f"/api/external-debts/{d['id']}/payments"

    p1 = client.post(base, json={"amount": "600"})
    assert p1.status_code == 201

    over = client.post(base, json={"amount": "500"})
    assert over.status_code == 409
    assert read(ExternalDebt, d["id"], "paid_amount") == Decimal("600.00")
    assert len(client.get(base).get_json()) == 1

    assert client.post(base, json={"amount": "400"}).status_code == 201
    debt = client.get("/api/external-debts").get_json()[0]
    assert debt["paid_amount"] == 1000.0
    assert debt["remaining"] == 0.0

    after = client.delete(f"{base}/{p1.get_json()['id']}").get_json()
    assert after["paid_amount"] == 400.0
    # debts and payments never move the company balance
    assert read(Company, parent_id) == Decimal("0.00")


@pytest.mark.parametrize(
    "kind, worker_balance, parent_balance",
    [
        ("salary", "300.00", "-300.00"),
        ("advance", "300.00", "-300.00"),
        ("deduction", "-300.00", "300.00"),
    ],
)
def test_worker_transactions(client, parent_id, read, kind, worker_balance, parent_balance):
    w = client.post("/api/managed-workers", json={"name": "Nadia", "wage": "2000"}).get_json()
    base = f"/api/managed-workers/{w['id']}/transactions"

    tx = client.post(base, json={"type": kind, "amount": "300"}).get_json()
    assert read(Worker, w["id"]) == Decimal(worker_balance)
    assert read(Company, parent_id) == Decimal(parent_balance)

    client.delete(f"{base}/{tx['id']}")
    assert read(Worker, w["id"]) == Decimal("0.00")
    assert read(Company, parent_id) == Decimal("0.00")


def test_deleting_worker_reverses_transactions(client, parent_id, read):
    w = client.post("/api/managed-workers", json={"name": "Nadia"}).get_json()
    client.post(f"/api/managed-workers/{w['id']}/transactions", json={"type": "advance", "amount": "150"})
    client.post("/api/worker-warnings", json={"worker_id": w["id"], "reason": "late twice"})

    assert client.delete(f"/api/managed-workers/{w['id']}").status_code == 200
    assert read(Company, parent_id) == Decimal("0.00")
    assert client.get("/api/worker-warnings").get_json() == []
