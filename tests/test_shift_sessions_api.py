from decimal import Decimal

from app.shiftledger.core.error_catalog import ErrorCatalog
from tests.helpers import pay, start_session


def test_session_lifecycle_over_http(client):
    started = start_session(client, "cashier-1")
    assert started["is_active"] is True
    assert started["duration"]["display"] == "0h 0m"

    active = client.get("/shift/sessions/active")
    assert active.status_code == 200
    assert active.json()["session"]["id"] == started["id"]

    assert pay(client, "o1", 100, "CASH").status_code == 200
    assert pay(client, "o2", "49.50", "UPI").status_code == 200

    closed = client.post("/shift/sessions/active/close", json={"notes": "end of day"})
    assert closed.status_code == 200
    payload = closed.json()
    assert payload["id"] == started["id"]
    assert payload["is_active"] is False
    assert payload["end_time"] is not None
    assert payload["notes"] == "end of day"
    assert Decimal(payload["total_revenue"]) == Decimal("149.50")
    assert Decimal(payload["cash_total"]) == Decimal("100")
    assert Decimal(payload["upi_total"]) == Decimal("49.5")

    assert client.get("/shift/sessions/active").json()["session"] is None


def test_start_session_conflict(client):
    start_session(client, "cashier-1")
    response = client.post("/shift/sessions", json={"user_id": "cashier-2"})
    assert response.status_code == 409
    payload = response.json()
    assert payload["code"] == ErrorCatalog.SESSION_ALREADY_ACTIVE.code
    assert payload["trace_id"]


def test_start_session_requires_user_id(client):
    response = client.post("/shift/sessions", json={"user_id": ""})
    assert response.status_code == 422
    assert response.json()["code"] == ErrorCatalog.VALIDATION_ERROR.code


def test_close_without_active_session(client):
    response = client.post("/shift/sessions/active/close")
    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.SESSION_NOT_FOUND.code


def test_list_and_get_sessions(client):
    first = start_session(client, "cashier-1")
    client.post("/shift/sessions/active/close", json={})
    second = start_session(client, "cashier-2")

    listing = client.get("/shift/sessions")
    assert listing.status_code == 200
    payload = listing.json()
    assert payload["total"] == 2
    assert {row["id"] for row in payload["rows"]} == {first["id"], second["id"]}

    detail = client.get(f"/shift/sessions/{first['id']}")
    assert detail.status_code == 200
    assert detail.json()["user_id"] == "cashier-1"
    assert detail.json()["is_active"] is False

    missing = client.get("/shift/sessions/00000000-0000-0000-0000-000000000000")
    assert missing.status_code == 404
    assert missing.json()["code"] == ErrorCatalog.SESSION_NOT_FOUND.code


def test_session_transactions_and_summary(client):
    session = start_session(client)
    pay(client, "o1", 10, "CASH")
    pay(client, "o2", 20, "BANK")

    transactions = client.get(f"/shift/sessions/{session['id']}/transactions")
    assert transactions.status_code == 200
    assert transactions.json()["total"] == 2
    assert {row["order_id"] for row in transactions.json()["rows"]} == {"o1", "o2"}

    summary = client.get(f"/shift/sessions/{session['id']}/summary")
    assert summary.status_code == 200
    payload = summary.json()
    assert payload["consistent"] is True
    assert payload["transaction_count"] == 2
    assert Decimal(payload["recomputed_total"]) == Decimal("30")
