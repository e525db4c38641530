from datetime import datetime, timedelta
from decimal import Decimal

from models.company import Company
from models.idempotency import IdempotencyKey, IdempotencyStatus
from models.truck import Truck
from models import db


def _truck(client):
    return client.post("/api/trucks", json={"number": "TR-9"}).get_json()["id"]


def test_retry_replays_stored_response(client, parent_id, read):
    truck = _truck(client)
    url = f"/api/trucks/{truck}/expenses"
    headers = {"Idempotency-Key": "pay-fuel-1"}

    first = client.post(url, json={"type": "income", "amount": "500"}, headers=headers)
    second = client.post(url, json={"type": "income", "amount": "500"}, headers=headers)

    assert first.status_code == second.status_code == 201
    assert second.headers.get("Idempotent-Replayed") == "true"
    assert "Idempotent-Replayed" not in first.headers
    assert second.get_json() == first.get_json()

    assert read(Truck, truck) == Decimal("500.00")
    assert read(Company, parent_id) == Decimal("500.00")
    assert len(client.get(url).get_json()) == 1


def test_key_reused_on_other_endpoint_is_refused(client):
    truck = _truck(client)
    headers = {"Idempotency-Key": "k-1"}
    client.post(f"/api/trucks/{truck}/expenses", json={"type": "income", "amount": "5"}, headers=headers)

    other = client.post("/api/expenses", json={"title": "Tea", "amount": "5"}, headers=headers)
    assert other.status_code == 400


def test_failed_request_releases_the_key(client, app, parent_id, read):
    truck = _truck(client)
    url = f"/api/trucks/{truck}/expenses"
    headers = {"Idempotency-Key": "retry-me"}

    bad = client.post(url, json={"type": "income", "amount": "-5"}, headers=headers)
    assert bad.status_code == 400
    with app.app_context():
        assert db.session.query(IdempotencyKey).filter_by(key="retry-me").count() == 0

    good = client.post(url, json={"type": "income", "amount": "5"}, headers=headers)
    assert good.status_code == 201
    assert "Idempotent-Replayed" not in good.headers
    with app.app_context():
        row = db.session.query(IdempotencyKey).filter_by(key="retry-me").one()
        assert row.status == IdempotencyStatus.DONE
        assert row.company_id == parent_id
    assert read(Truck, truck) == Decimal("5.00")


def test_pending_key_conflicts(client, app, parent_id):
    truck = _truck(client)
    with app.app_context():
        db.session.add(IdempotencyKey(
            company_id=parent_id,
            key="in-flight",
            method="POST",
            path=f"/api/trucks/{truck}/expenses",
            status=IdempotencyStatus.PENDING,
        ))
        db.session.commit()

    resp = client.post(
        f"/api/trucks/{truck}/expenses",
        json={"type": "income", "amount": "5"},
        headers={"Idempotency-Key": "in-flight"},
    )
    assert resp.status_code == 409


def test_stale_pending_key_is_settled_not_reapplied(client, app, parent_id, read):
    # the first request committed its mutation, then died before storing the response
    truck = _truck(client)
    url = f"/api/trucks/{truck}/expenses"
    with app.app_context():
        db.session.add(IdempotencyKey(
            company_id=parent_id,
            key="lost-response",
            method="POST",
            path=url,
            status=IdempotencyStatus.PENDING,
            created_at=datetime.utcnow() - timedelta(minutes=10),
        ))
        db.session.commit()

    resp = client.post(url, json={"type": "income", "amount": "5"}, headers={"Idempotency-Key": "lost-response"})
    assert resp.status_code == 200
    assert resp.headers.get("Idempotent-Replayed") == "true"
    assert resp.get_json() == {"message": "Request was already applied"}
    assert read(Truck, truck) == Decimal("0.00")

    with app.app_context():
        row = db.session.query(IdempotencyKey).filter_by(key="lost-response").one()
        assert row.status == IdempotencyStatus.DONE

    again = client.post(url, json={"type": "income", "amount": "5"}, headers={"Idempotency-Key": "lost-response"})
    assert again.status_code == 200
    assert again.get_json() == {"message": "Request was already applied"}
