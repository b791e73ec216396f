"""
Payment gateway collaborator.

The rest of the code only needs two calls: create a remote order and refund a
captured payment. `RazorpayGateway` talks to the Razorpay REST API with
httpx; tests swap in their own object with the same two methods.
"""
import hashlib
import hmac
from typing import Protocol

import httpx

from theatre_pos.config import settings
from theatre_pos.errors import GatewayError
from theatre_pos.util.log import get_logger

logger = get_logger(__name__)


class PaymentGateway(Protocol):
    def create_remote_order(self, amount_minor: int, currency: str, receipt_ref: str,
                            notes: dict | None = None) -> str: ...

    def refund(self, gateway_payment_id: str, amount_minor: int, reason: str) -> None: ...


def expected_signature(gateway_order_id: str, gateway_payment_id: str, secret: str) -> str:
    body = f"{gateway_order_id}|{gateway_payment_id}"
    return hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()


def signature_matches(gateway_order_id: str, gateway_payment_id: str, signature: str, secret: str) -> bool:
    expected = expected_signature(gateway_order_id, gateway_payment_id, secret)
    return hmac.compare_digest(expected.encode(), (signature or "").encode())


class RazorpayGateway:
    def __init__(self, key_id: str | None = None, key_secret: str | None = None,
                 base_url: str | None = None, timeout: float | None = None,
                 transport: httpx.BaseTransport | None = None):
        self.key_id = key_id if key_id is not None else settings.GATEWAY_KEY_ID
        self.key_secret = key_secret if key_secret is not None else settings.GATEWAY_KEY_SECRET
        self.base_url = (base_url or settings.GATEWAY_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.GATEWAY_TIMEOUT_SEC
        self.transport = transport

    def _post(self, path: str, payload: dict) -> dict:
        if not self.key_id or not self.key_secret:
            raise GatewayError("Payment gateway is not configured")
        try:
            with httpx.Client(
                base_url=self.base_url,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                r = client.post(path, json=payload)
                r.raise_for_status()
                return r.json()
        except httpx.HTTPStatusError as e:
            logger.warning("Gateway rejected request", path=path, status=e.response.status_code)
            raise GatewayError(
                f"Gateway returned {e.response.status_code}", e, {"body": e.response.text[:500]}
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Gateway unreachable", path=path, error=str(e))
            raise GatewayError(f"Gateway request failed: {e}", e) from e

    def create_remote_order(self, amount_minor: int, currency: str, receipt_ref: str,
                            notes: dict | None = None) -> str:
        data = self._post("/orders", {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt_ref,
            "notes": notes or {},
        })
        try:
            return data["id"]
        except KeyError as e:
            raise GatewayError("Gateway order response has no id", e) from e

    def refund(self, gateway_payment_id: str, amount_minor: int, reason: str) -> None:
        self._post(f"/payments/{gateway_payment_id}/refund", {
            "amount": amount_minor,
            "notes": {"reason": reason},
        })


def get_gateway() -> PaymentGateway:
    return RazorpayGateway()
