from decimal import Decimal

import pytest

from models.company import Company
from tests.conftest import login


@pytest.fixture
def branches(client):
    a = client.post(
        "/api/companies",
        json={"name": "Branch A", "balance": "1000", "username": "Branch", "password": "branch-pass"},
    )
    assert a.status_code == 201, a.get_json()
    b = client.post("/api/companies", json={"name": "Branch B"})
    assert b.status_code == 201
    return a.get_json()["id"], b.get_json()["id"]


@pytest.fixture
def branch_client(app, branches):
    c = app.test_client()
    resp = login(c, "branch", "branch-pass")
    # single membership selects the company straight away
    assert resp.get_json()["company_id"] == branches[0]
    return c


def test_company_listing_and_duplicates(client, branches, parent_id):
    names = [c["name"] for c in client.get("/api/companies").get_json()]
    assert names[0] == "Test Holding"
    assert set(names[1:]) == {"Branch A", "Branch B"}

    dup = client.post("/api/companies", json={"name": "Branch A"})
    assert dup.status_code == 409

    assert client.delete(f"/api/companies/{parent_id}").status_code == 409


def test_approval_moves_balance_and_debt_together(client, branches, read):
    a, b = branches
    created = client.post(
        "/api/transfers",
        json={"from_company_id": a, "to_company_id": b, "amount": "300", "date": "2026-10-01"},
    )
    assert created.status_code == 201
    t = created.get_json()
    assert t["status"] == "pending"
    assert t["entry_date"] == "2026-10-01"
    # nothing moves while pending
    assert read(Company, a) == Decimal("1000.00")

    approved = client.patch(f"/api/transfers/{t['id']}/approve")
    assert approved.status_code == 200
    assert approved.get_json()["status"] == "approved"

    assert read(Company, a) == Decimal("700.00")
    assert read(Company, a, "debt_to_parent") == Decimal("-300.00")
    assert read(Company, b) == Decimal("300.00")
    assert read(Company, b, "debt_to_parent") == Decimal("300.00")

    # a decided transfer cannot be decided again
    assert client.patch(f"/api/transfers/{t['id']}/approve").status_code == 409
    assert client.patch(f"/api/transfers/{t['id']}/reject").status_code == 409


def test_transfer_validation(client, branches):
    a, b = branches
    same = client.post("/api/transfers", json={"from_company_id": a, "to_company_id": a, "amount": "5"})
    assert same.status_code == 409
    zero = client.post("/api/transfers", json={"from_company_id": a, "to_company_id": b, "amount": "0"})
    assert zero.status_code == 400
    foreign = client.post("/api/transfers", json={"from_company_id": a, "to_company_id": 9999, "amount": "5"})
    assert foreign.status_code == 404


def test_rejection_moves_nothing(client, branches, read):
    a, b = branches
    t = client.post("/api/transfers", json={"from_company_id": a, "to_company_id": b, "amount": "50"}).get_json()
    assert client.patch(f"/api/transfers/{t['id']}/reject").get_json()["status"] == "rejected"
    assert read(Company, a) == Decimal("1000.00")
    assert read(Company, b) == Decimal("0.00")


def test_child_company_limits(client, branch_client, branches):
    a, b = branches

    own = branch_client.post("/api/transfers", json={"from_company_id": a, "to_company_id": b, "amount": "10"})
    assert own.status_code == 201
    other = branch_client.post("/api/transfers", json={"from_company_id": b, "to_company_id": a, "amount": "10"})
    assert other.status_code == 403

    tid = own.get_json()["id"]
    assert branch_client.patch(f"/api/transfers/{tid}/approve").status_code == 403
    assert branch_client.post("/api/companies", json={"name": "Rogue"}).status_code == 403
    assert branch_client.get(f"/api/companies/{b}/statement").status_code == 403
    assert branch_client.get("/api/trucks").status_code == 403

    listed = branch_client.get("/api/companies").get_json()
    assert [c["id"] for c in listed] == [a]

    # the parent owner sees it and can decide it
    assert client.patch(f"/api/transfers/{tid}/approve").status_code == 200


def test_company_statement(client, branches):
    a, b = branches
    for amount in ("300", "100"):
        t = client.post("/api/transfers", json={"from_company_id": a, "to_company_id": b, "amount": amount}).get_json()
        client.patch(f"/api/transfers/{t['id']}/approve")
    back = client.post("/api/transfers", json={"from_company_id": b, "to_company_id": a, "amount": "50"}).get_json()
    client.patch(f"/api/transfers/{back['id']}/approve")
    # pending ones are left out
    client.post("/api/transfers", json={"from_company_id": a, "to_company_id": b, "amount": "999"})

    st = client.get(f"/api/companies/{a}/statement").get_json()
    assert [(r["debit"], r["credit"], r["balance"]) for r in st["rows"]] == [
        (300.0, 0.0, -300.0),
        (100.0, 0.0, -400.0),
        (0.0, 50.0, -350.0),
    ]
    assert st["total_debit"] == 400.0
    assert st["total_credit"] == 50.0
    assert st["balance"] == -350.0
    assert st["rows"][0]["description"] == "Transfer to Branch B"


def test_login_and_context(app, parent_id):
    c = app.test_client()
    assert c.get("/api/trucks").status_code == 401
    assert c.post("/api/auth/login", json={"username": "owner", "password": "nope"}).status_code == 401

    login(c, "owner", "owner-pass")
    assert c.delete("/api/context").status_code == 200
    assert c.get("/api/trucks").status_code == 400

    assert c.post("/api/context", json={"company_id": parent_id}).status_code == 200
    assert c.get("/api/trucks").status_code == 200
    assert c.get("/api/auth/me").get_json()["company_id"] == parent_id
