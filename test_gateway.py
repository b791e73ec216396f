import json

import httpx
import pytest

from theatre_pos.errors import GatewayError
from theatre_pos.services.gateway import RazorpayGateway


def _gateway(handler, **kw):
    kw.setdefault("key_id", "rzp_test_key")
    kw.setdefault("key_secret", "shh")
    return RazorpayGateway(base_url="https://gateway.test/v1", transport=httpx.MockTransport(handler), **kw)


def test_create_remote_order():
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, json={"id": "order_ABC", "status": "created"})

    gid = _gateway(handler).create_remote_order(35400, "INR", "ORD-20250314-0001")
    assert gid == "order_ABC"
    req = seen[0]
    assert req.url == "https://gateway.test/v1/orders"
    assert req.headers["authorization"].startswith("Basic ")
    assert json.loads(req.content) == {
        "amount": 35400, "currency": "INR", "receipt": "ORD-20250314-0001", "notes": {},
    }


def test_refund_posts_to_payment():
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, json={"id": "rfnd_1"})

    _gateway(handler).refund("pay_1", 35400, "show cancelled")
    assert seen[0].url.path == "/v1/payments/pay_1/refund"
    assert json.loads(seen[0].content)["notes"] == {"reason": "show cancelled"}


def test_http_error_becomes_gateway_error():
    def handler(request):
        return httpx.Response(400, json={"error": {"description": "bad amount"}})

    with pytest.raises(GatewayError) as ei:
        _gateway(handler).create_remote_order(1, "INR", "r")
    assert "400" in ei.value.message
    assert isinstance(ei.value.cause, httpx.HTTPStatusError)


def test_transport_error_becomes_gateway_error():
    def handler(request):
        raise httpx.ConnectError("no route", request=request)

    with pytest.raises(GatewayError) as ei:
        _gateway(handler).refund("pay_1", 100, "x")
    assert isinstance(ei.value.cause, httpx.ConnectError)


def test_unconfigured_gateway():
    with pytest.raises(GatewayError):
        _gateway(lambda r: httpx.Response(200, json={}), key_id="", key_secret="").create_remote_order(1, "INR", "r")
