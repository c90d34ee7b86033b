from decimal import Decimal

from app.shiftledger.core.deps import get_order_gateway
from app.shiftledger.core.error_catalog import ErrorCatalog
from app.shiftledger.core.metrics import metrics
from tests.helpers import FakeOrderGateway, order, pay, start_session


def test_payment_requires_active_session(client):
    response = pay(client, "o1", 100, "CASH")
    assert response.status_code == 409
    payload = response.json()
    assert payload["code"] == ErrorCatalog.NO_ACTIVE_SESSION.code
    assert payload["trace_id"]


def test_payment_recorded_and_fetchable(client):
    session = start_session(client)
    response = pay(client, "o1", "100.10", "UPI")
    assert response.status_code == 200
    transaction = response.json()
    assert transaction["session_id"] == session["id"]
    assert transaction["status"] == "completed"
    assert transaction["payment_method"] == "UPI"
    assert Decimal(transaction["amount"]) == Decimal("100.10")

    fetched = client.get(f"/shift/transactions/{transaction['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["id"] == transaction["id"]

    missing = client.get("/shift/transactions/00000000-0000-0000-0000-000000000000")
    assert missing.status_code == 404
    assert missing.json()["code"] == ErrorCatalog.TRANSACTION_NOT_FOUND.code


def test_payment_rejects_invalid_amount(client):
    start_session(client)
    for amount in (0, -1, "1.234"):
        response = pay(client, "o1", amount, "CASH")
        assert response.status_code == 422
        assert response.json()["code"] == ErrorCatalog.VALIDATION_ERROR.code
    session = client.get("/shift/sessions/active").json()["session"]
    assert Decimal(session["total_revenue"]) == Decimal("0")


def test_payment_rejects_unknown_method(client):
    start_session(client)
    response = pay(client, "o1", 10, "CARD")
    assert response.status_code == 422
    assert response.json()["code"] == ErrorCatalog.VALIDATION_ERROR.code


def test_payment_against_closed_session_id(client):
    old = start_session(client, "cashier-1")
    client.post("/shift/sessions/active/close", json={})
    start_session(client, "cashier-2")

    response = pay(client, "o1", 10, "CASH", session_id=old["id"])
    assert response.status_code == 409
    assert response.json()["code"] == ErrorCatalog.NO_ACTIVE_SESSION.code


def test_payment_idempotent_replay(client):
    metrics.reset()
    start_session(client)
    headers = {"Idempotency-Key": "pay-o1"}

    first = pay(client, "o1", 100, "CASH", headers=headers)
    second = pay(client, "o1", 100, "CASH", headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json() == first.json()
    assert second.headers["X-Idempotency-Result"] == ErrorCatalog.IDEMPOTENCY_REPLAY.code
    session = client.get("/shift/sessions/active").json()["session"]
    assert Decimal(session["cash_total"]) == Decimal("100")

    if metrics.enabled:
        content = metrics.render().content.decode("utf-8")
        assert "idempotency_replay_total 1.0" in content


def test_payment_idempotency_key_reused_with_different_payload(client):
    start_session(client)
    headers = {"Idempotency-Key": "pay-o1"}
    assert pay(client, "o1", 100, "CASH", headers=headers).status_code == 200

    response = pay(client, "o1", 200, "CASH", headers=headers)
    assert response.status_code == 409
    assert response.json()["code"] == ErrorCatalog.IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD.code


def test_failed_payment_replays_failure(client):
    headers = {"Idempotency-Key": "pay-early"}
    first = pay(client, "o1", 100, "CASH", headers=headers)
    assert first.status_code == 409

    start_session(client)
    second = pay(client, "o1", 100, "CASH", headers=headers)
    assert second.status_code == 409
    assert second.json()["code"] == ErrorCatalog.NO_ACTIVE_SESSION.code


def test_payment_deducts_inventory_through_gateway(client):
    gateway = FakeOrderGateway({"o1": order("o1", ("masala-dosa", 2))})
    client.app.dependency_overrides[get_order_gateway] = lambda: gateway
    start_session(client)

    assert pay(client, "o1", 240, "BANK").status_code == 200
    assert gateway.deductions[0][0] == "o1"


def test_inventory_failure_still_records_payment(client):
    gateway = FakeOrderGateway({"o1": order("o1", ("idli", 4))}, error=RuntimeError("stock service down"))
    client.app.dependency_overrides[get_order_gateway] = lambda: gateway
    start_session(client)

    response = pay(client, "o1", 60, "CASH")
    assert response.status_code == 200
    session = client.get("/shift/sessions/active").json()["session"]
    assert Decimal(session["cash_total"]) == Decimal("60")


def test_payment_rejects_oversized_amount(client):
    start_session(client)
    for amount in ("1e30", "100000000000000000"):
        response = pay(client, "o1", amount, "CASH")
        assert response.status_code == 422
        payload = response.json()
        assert payload["code"] == ErrorCatalog.VALIDATION_ERROR.code
        assert payload["details"]["message"] == "amount too large"
    session = client.get("/shift/sessions/active").json()["session"]
    assert Decimal(session["total_revenue"]) == Decimal("0")


def test_idempotent_replay_ignores_amount_formatting(client):
    start_session(client)
    headers = {"Idempotency-Key": "pay-o7"}

    first = pay(client, "o7", 100, "CASH", headers=headers)
    second = pay(client, "o7", "100.00", "CASH", headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    assert second.headers["X-Idempotency-Result"] == ErrorCatalog.IDEMPOTENCY_REPLAY.code
