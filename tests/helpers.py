from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from app.shiftledger.db.models import ShiftSession
from app.shiftledger.services.orders import OrderGateway, OrderLine, OrderSnapshot


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class FakeOrderGateway(OrderGateway):
    def __init__(self, orders: dict[str, OrderSnapshot] | None = None, *, accept: bool = True, error: Exception | None = None):
        self.orders = orders or {}
        self.accept = accept
        self.error = error
        self.deductions: list[tuple[str, tuple[OrderLine, ...]]] = []

    def get_order_by_id(self, order_id: str) -> OrderSnapshot | None:
        return self.orders.get(order_id)

    def deduct_inventory_for_order_items(self, items, order_id: str) -> bool:
        if self.error is not None:
            raise self.error
        self.deductions.append((order_id, tuple(items)))
        return self.accept


def order(order_id: str, *lines: tuple[str, int]) -> OrderSnapshot:
    return OrderSnapshot(id=order_id, items=tuple(OrderLine(item_id=item, quantity=qty) for item, qty in lines))


def start_session(client, user_id: str = "cashier-1"):
    response = client.post("/shift/sessions", json={"user_id": user_id})
    assert response.status_code == 200, response.text
    return response.json()


def pay(client, order_id: str, amount, method: str, headers: dict | None = None, **extra):
    return client.post(
        "/shift/payments",
        headers=headers or {},
        json={"order_id": order_id, "amount": amount, "payment_method": method, **extra},
    )


def seed_two_active_sessions(db) -> tuple[uuid.UUID, uuid.UUID]:
    """Insert two active sessions by lifting the single-active index; returns (older, newer) ids."""
    db.execute(text("DROP INDEX uq_shift_sessions_single_active"))
    older, newer = uuid.uuid4(), uuid.uuid4()
    start = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
    for session_id, start_time in ((older, start), (newer, start + timedelta(hours=1))):
        db.add(
            ShiftSession(
                id=session_id,
                user_id="cashier",
                start_time=start_time,
                is_active=True,
                cash_total_cents=0,
                upi_total_cents=0,
                bank_total_cents=0,
                total_revenue_cents=0,
                version=1,
            )
        )
    db.commit()
    return older, newer
