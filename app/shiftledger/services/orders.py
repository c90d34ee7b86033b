"""Order lookup and inventory deduction collaborators.

Orders and stock belong to other services; the ledger only needs to read an
order's line items and ask for the matching stock to be deducted once a
payment is recorded.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from app.shiftledger.core.config import settings
from app.shiftledger.core.logging import log_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderLine:
    item_id: str
    quantity: int


@dataclass(frozen=True)
class OrderSnapshot:
    id: str
    items: tuple[OrderLine, ...] = ()


class OrderLookup(ABC):
    @abstractmethod
    def get_order_by_id(self, order_id: str) -> OrderSnapshot | None:
        """Return the order, or None if it does not exist."""
        ...


class InventoryDeduction(ABC):
    @abstractmethod
    def deduct_inventory_for_order_items(self, items: Sequence[OrderLine], order_id: str) -> bool:
        """Deduct stock for the given lines; return False if the deduction was refused."""
        ...


class OrderGateway(OrderLookup, InventoryDeduction):
    """A backend serving both order lookup and inventory deduction."""


class NullOrderGateway(OrderGateway):
    """Used when no order service is configured: every order is absent."""

    def get_order_by_id(self, order_id: str) -> OrderSnapshot | None:
        return None

    def deduct_inventory_for_order_items(self, items: Sequence[OrderLine], order_id: str) -> bool:
        return True


def parse_order(payload: dict) -> OrderSnapshot:
    lines = []
    for raw in payload.get("orderItems") or payload.get("items") or []:
        menu_item = raw.get("menuItem") or {}
        item_id = menu_item.get("id") or raw.get("item_id") or raw.get("itemId")
        if not item_id:
            continue
        lines.append(OrderLine(item_id=str(item_id), quantity=int(raw.get("quantity", 1))))
    return OrderSnapshot(id=str(payload.get("id", "")), items=tuple(lines))


def _path_segment(value: str) -> str:
    # Dots are escaped too so "." and ".." stay a literal segment.
    return quote(value, safe="").replace(".", "%2E")


class HttpOrderGateway(OrderGateway):
    def __init__(self, base_url: str, *, timeout: float = 5.0, client: httpx.Client | None = None) -> None:
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def get_order_by_id(self, order_id: str) -> OrderSnapshot | None:
        response = self._client.get(f"/orders/{_path_segment(order_id)}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        order = parse_order(response.json())
        if not order.id:
            order = OrderSnapshot(id=order_id, items=order.items)
        return order

    def deduct_inventory_for_order_items(self, items: Sequence[OrderLine], order_id: str) -> bool:
        response = self._client.post(
            "/inventory/deductions",
            json={
                "order_id": order_id,
                "items": [{"item_id": line.item_id, "quantity": line.quantity} for line in items],
            },
        )
        if response.is_success:
            return True
        log_json(
            logger,
            {
                "event": "inventory.deduction_rejected",
                "order_id": order_id,
                "status_code": response.status_code,
            },
            level=logging.WARNING,
        )
        return False


def build_order_gateway() -> OrderGateway:
    if settings.ORDERS_API_BASE_URL:
        return HttpOrderGateway(settings.ORDERS_API_BASE_URL, timeout=settings.ORDERS_API_TIMEOUT_SECONDS)
    return NullOrderGateway()
