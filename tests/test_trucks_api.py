from decimal import Decimal

import pytest

from models.company import Company
from models.truck import Truck


@pytest.fixture
def truck(client):
    resp = client.post(
        "/api/trucks",
        json={"number": "TR-1", "driver_name": "Karim", "fuel_formula": "0.35",
              "driver_wage": "1000", "driver_commission_rate": "10"},
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["id"]


def balances(read, parent_id, truck_id):
    return read(Truck, truck_id), read(Company, parent_id)


def test_entries_move_truck_and_parent_in_step(client, truck, parent_id, read):
    base = f"/api/trucks/{truck}/expenses"

    income = client.post(base, json={"type": "income", "amount": "1000"}).get_json()
    assert balances(read, parent_id, truck) == (Decimal("1000.00"), Decimal("1000.00"))

    expense = client.post(base, json={"type": "expense", "category": "fuel", "amount": "300"}).get_json()
    assert balances(read, parent_id, truck) == (Decimal("700.00"), Decimal("700.00"))

    # amount edit applies the difference only
    client.patch(f"{base}/{expense['id']}", json={"amount": "500"})
    assert balances(read, parent_id, truck) == (Decimal("500.00"), Decimal("500.00"))

    # type flip undoes the old effect and applies the new one
    client.patch(f"{base}/{expense['id']}", json={"type": "income"})
    assert balances(read, parent_id, truck) == (Decimal("1500.00"), Decimal("1500.00"))

    client.delete(f"{base}/{expense['id']}")
    client.delete(f"{base}/{income['id']}")
    assert balances(read, parent_id, truck) == (Decimal("0.00"), Decimal("0.00"))
    assert client.get(base).get_json() == []


def test_entry_validation(client, truck):
    base = f"/api/trucks/{truck}/expenses"
    assert client.post(base, json={"type": "gift", "amount": "10"}).status_code == 400
    assert client.post(base, json={"type": "income", "amount": "-10"}).status_code == 400
    assert client.post("/api/trucks/999/expenses", json={"type": "income", "amount": "1"}).status_code == 404
    assert client.post("/api/trucks", json={"number": "TR-1"}).status_code == 409


def test_trip_derivations_and_edit_diff(client, truck, parent_id, read):
    base = f"/api/trucks/{truck}/trips"
    trip = client.post(
        base,
        json={"old_odometer": "1000", "new_odometer": "1250", "trip_fare": "5000",
              "fuel_expense": "1000", "food_expense": "200"},
    ).get_json()
    assert trip["km"] == 250.0
    assert trip["expected_fuel"] == 87.5
    assert trip["net_result"] == 3800.0
    assert balances(read, parent_id, truck) == (Decimal("3800.00"), Decimal("3800.00"))

    edited = client.patch(f"{base}/{trip['id']}", json={"trip_fare": "6000"}).get_json()
    assert edited["net_result"] == 4800.0
    assert balances(read, parent_id, truck) == (Decimal("4800.00"), Decimal("4800.00"))

    # next trip starts where the last one ended
    nxt = client.post(base, json={"new_odometer": "1400", "trip_fare": "100", "fuel_expense": "300"}).get_json()
    assert nxt["old_odometer"] == 1250.0
    assert nxt["net_result"] == -200.0
    assert client.get(f"/api/trucks/{truck}/last-trip").get_json()["id"] == nxt["id"]

    bad = client.post(base, json={"old_odometer": "2000", "new_odometer": "1500"})
    assert bad.status_code == 400

    client.delete(f"{base}/{trip['id']}")
    client.delete(f"{base}/{nxt['id']}")
    assert balances(read, parent_id, truck) == (Decimal("0.00"), Decimal("0.00"))


def test_deleting_truck_takes_its_effect_out_of_the_parent(client, truck, parent_id, read):
    client.post(f"/api/trucks/{truck}/expenses", json={"type": "income", "amount": "400"})
    client.post(f"/api/trucks/{truck}/trips", json={"new_odometer": "10", "trip_fare": "250"})
    assert read(Company, parent_id) == Decimal("650.00")

    assert client.delete(f"/api/trucks/{truck}").status_code == 200
    assert read(Company, parent_id) == Decimal("0.00")
    assert client.get("/api/trucks").get_json() == []


def test_monthly_statement(client, truck):
    trips = f"/api/trucks/{truck}/trips"
    client.post(trips, json={"new_odometer": "100", "trip_fare": "5000", "fuel_expense": "1000",
                             "food_expense": "200", "date": "2026-09-05"})
    client.post(trips, json={"new_odometer": "200", "trip_fare": "1500", "date": "2026-10-02"})
    client.post(f"/api/trucks/{truck}/expenses",
                json={"type": "expense", "category": "driver_commission", "amount": "100", "date": "2026-09-30"})

    st = client.get(f"/api/trucks/{truck}/statement").get_json()
    assert st["truck"]["number"] == "TR-1"
    assert [m["month"] for m in st["months"]] == ["2026-10", "2026-09"]

    sep = st["months"][1]
    assert sep["trips"] == 1
    assert sep["gross_profit"] == 3800.0
    assert sep["net_after_wage"] == 2800.0
    assert sep["commission"] == 280.0
    assert sep["paid_commission"] == 100.0
    assert sep["remaining_commission"] == 180.0
    assert sep["final_result"] == 2520.0

    octo = st["months"][0]
    assert octo["net_after_wage"] == 500.0
    assert octo["commission"] == 50.0
