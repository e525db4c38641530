from decimal import Decimal

from models.company import Company


def test_entries_and_summary_stay_off_company_balances(client, parent_id, read):
    client.post("/api/cashbox/transactions", json={"type": "income", "amount": "1000", "currency": "usd"})
    client.post("/api/cashbox/transactions", json={"type": "expense", "amount": "250", "currency": "USD"})
    client.post("/api/cashbox/transactions", json={"type": "income", "amount": "80", "currency": "CNY"})

    s = client.get("/api/cashbox/summary").get_json()
    assert s["USD"] == {"income": 1000.0, "expense": 250.0, "balance": 750.0}
    assert s["CNY"]["balance"] == 80.0
    assert read(Company, parent_id) == Decimal("0.00")

    assert len(client.get("/api/cashbox/transactions?currency=usd").get_json()) == 2
    assert client.post(
        "/api/cashbox/transactions", json={"type": "income", "amount": "1", "currency": "EUR"}
    ).status_code == 400
    assert client.post(
        "/api/cashbox/transactions", json={"type": "income", "amount": "1", "currency": "USD", "category": "exchange"}
    ).status_code == 400


def test_exchange_writes_two_linked_legs(client):
    resp = client.post(
        "/api/cashbox/exchange",
        json={"from_currency": "USD", "to_currency": "CNY", "from_amount": "100", "rate": "7.2"},
    )
    assert resp.status_code == 201
    body = resp.get_json()
    out_leg, in_leg = body["out"], body["in"]
    assert (out_leg["type"], out_leg["currency"], out_leg["amount"]) == ("expense", "USD", 100.0)
    assert (in_leg["type"], in_leg["currency"], in_leg["amount"]) == ("income", "CNY", 720.0)
    assert out_leg["exchange_ref"] == in_leg["exchange_ref"]

    s = client.get("/api/cashbox/summary").get_json()
    assert s["USD"]["balance"] == -100.0
    assert s["CNY"]["balance"] == 720.0

    # legs are fixed; description edits are fine
    assert client.patch(f"/api/cashbox/transactions/{in_leg['id']}", json={"amount": "1"}).status_code == 409
    assert client.patch(f"/api/cashbox/transactions/{in_leg['id']}", json={"description": "bank"}).status_code == 200

    deleted = client.delete(f"/api/cashbox/transactions/{out_leg['id']}").get_json()
    assert deleted["removed"] == 2
    assert client.get("/api/cashbox/transactions").get_json() == []


def test_exchange_validation(client):
    same = client.post(
        "/api/cashbox/exchange", json={"from_currency": "USD", "to_currency": "USD", "from_amount": "1", "rate": "1"}
    )
    assert same.status_code == 409
    zero_rate = client.post(
        "/api/cashbox/exchange", json={"from_currency": "USD", "to_currency": "CNY", "from_amount": "1", "rate": "0"}
    )
    assert zero_rate.status_code == 400
