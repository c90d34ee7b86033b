from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.shiftledger.core.error_catalog import ErrorCatalog, StoreError
from app.shiftledger.core.errors import setup_exception_handlers
from app.shiftledger.core.metrics import metrics
from app.shiftledger.db.session import store_operation


class _FakeSession:
    def __init__(self):
        self.rollbacks = 0

    def rollback(self):
        self.rollbacks += 1


def test_lock_timeout_increments_metric():
    metrics.reset()
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/lock-timeout")
    def lock_timeout():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/lock-timeout")

    assert response.status_code == 409
    assert response.json()["code"] == "LOCK_TIMEOUT"

    snapshot = metrics.render()
    content = snapshot.content.decode("utf-8")
    if metrics.enabled:
        assert "lock_wait_timeout_total 1.0" in content
    else:
        assert "metrics_disabled" in content


def test_store_operation_maps_driver_errors():
    metrics.reset()
    db = _FakeSession()
    try:
        with store_operation(db, "record_payment"):
            raise OperationalError("UPDATE shift_sessions", {}, Exception("database is locked"))
    except StoreError as exc:
        assert exc.error == ErrorCatalog.LOCK_TIMEOUT
        assert exc.details == {"operation": "record_payment", "type": "OperationalError"}
    else:
        raise AssertionError("StoreError not raised")
    assert db.rollbacks == 1

    try:
        with store_operation(db, "list_all_sessions"):
            raise OperationalError("SELECT", {}, Exception("disk I/O error"))
    except StoreError as exc:
        assert exc.error == ErrorCatalog.STORE_ERROR
    assert db.rollbacks == 2
