import json

import httpx
import pytest

from app.shiftledger.services.orders import HttpOrderGateway, NullOrderGateway, OrderLine, parse_order


def _gateway(handler) -> HttpOrderGateway:
    client = httpx.Client(base_url="http://orders.test", transport=httpx.MockTransport(handler))
    return HttpOrderGateway("http://orders.test", client=client)


def test_get_order_parses_menu_items():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/orders/o1"
        return httpx.Response(
            200,
            json={
                "id": "o1",
                "orderItems": [
                    {"menuItem": {"id": "biryani"}, "quantity": 2},
                    {"menuItem": {"id": "lassi"}, "quantity": 1},
                ],
            },
        )

    order = _gateway(handler).get_order_by_id("o1")

    assert order.id == "o1"
    assert order.items == (OrderLine("biryani", 2), OrderLine("lassi", 1))


def test_get_order_missing_returns_none():
    gateway = _gateway(lambda request: httpx.Response(404, json={"detail": "not found"}))
    assert gateway.get_order_by_id("missing") is None


def test_get_order_server_error_raises():
    gateway = _gateway(lambda request: httpx.Response(500))
    with pytest.raises(httpx.HTTPStatusError):
        gateway.get_order_by_id("o1")


def test_deduct_inventory_posts_lines():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(204)

    ok = _gateway(handler).deduct_inventory_for_order_items([OrderLine("chai", 3)], "o9")

    assert ok is True
    assert seen["path"] == "/inventory/deductions"
    assert seen["body"] == {"order_id": "o9", "items": [{"item_id": "chai", "quantity": 3}]}


def test_deduct_inventory_rejected():
    gateway = _gateway(lambda request: httpx.Response(409, json={"detail": "insufficient stock"}))
    assert gateway.deduct_inventory_for_order_items([OrderLine("chai", 3)], "o9") is False


def test_parse_order_accepts_flat_items():
    order = parse_order({"id": "o2", "items": [{"itemId": "vada", "quantity": "2"}, {"quantity": 1}]})
    assert order.items == (OrderLine("vada", 2),)


def test_null_gateway():
    gateway = NullOrderGateway()
    assert gateway.get_order_by_id("o1") is None
    assert gateway.deduct_inventory_for_order_items([], "o1") is True


def test_get_order_escapes_order_id():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.raw_path)
        return httpx.Response(404)

    gateway = _gateway(handler)
    gateway.get_order_by_id("a/b?c=1")
    gateway.get_order_by_id("..")

    assert seen == [b"/orders/a%2Fb%3Fc%3D1", b"/orders/%2E%2E"]
