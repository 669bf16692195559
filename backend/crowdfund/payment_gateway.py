"""
Razorpay client: order creation over the REST API and verification of
the signature the checkout widget returns to the browser.

One instance is created when the app starts and closed when it stops.
"""
import asyncio
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import httpx

from .config import Settings

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0


class PaymentGatewayError(Exception):
    """The gateway refused or failed an API call."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class GatewayNotConfigured(PaymentGatewayError):
    pass


class RazorpayGateway:
    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = REQUEST_TIMEOUT,
        retries: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_id = key_id
        self._key_secret = key_secret
        self.retries = retries
        self._client = httpx.AsyncClient(
            base_url=base_url,
            auth=(key_id, key_secret),
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "RazorpayGateway":
        if not settings.payments_configured:
            logger.warning("Razorpay keys missing or placeholders; payments are disabled")
            return cls("", "", settings.razorpay_api_url, transport=transport)
        return cls(
            settings.razorpay_key_id,
            settings.razorpay_key_secret,
            settings.razorpay_api_url,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.key_id and self._key_secret)

    async def create_order(self, amount: int, currency: str, receipt: str, notes: Dict[str, str]) -> Dict[str, Any]:
        """Create an order. ``amount`` is in minor units (paise)."""
        if not self.configured:
            raise GatewayNotConfigured("Payment gateway not configured")
        payload = {"amount": amount, "currency": currency, "receipt": receipt, "notes": notes}
        resp = await self._post_with_retry("/orders", payload)
        if resp.status_code == 401:
            raise PaymentGatewayError("Invalid payment gateway credentials", status_code=401)
        if resp.status_code >= 400:
            error = _error_body(resp)
            raise PaymentGatewayError(
                error.get("description") or f"Gateway returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                code=error.get("code"),
            )
        order = resp.json()
        logger.info(f"Razorpay order created: {order.get('id')} ({amount} {currency})")
        return order

    async def _post_with_retry(self, url: str, payload: Dict[str, Any]) -> httpx.Response:
        delay = 0.5
        for attempt in range(1, self.retries + 1):
            try:
                return await self._client.post(url, json=payload)
            except httpx.TransportError as e:
                logger.warning(f"Gateway POST {url} attempt {attempt}/{self.retries} failed: {e}")
                if attempt == self.retries:
                    raise PaymentGatewayError(f"Payment gateway unreachable: {e}") from e
                await asyncio.sleep(delay)
                delay *= 2

    def signature_for(self, order_id: str, payment_id: str) -> str:
        body = f"{order_id}|{payment_id}".encode("utf-8")
        return hmac.new(self._key_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not self.configured:
            raise GatewayNotConfigured("Payment gateway not configured")
        expected = self.signature_for(order_id, payment_id)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))

    async def aclose(self) -> None:
        await self._client.aclose()


def _error_body(resp: httpx.Response) -> Dict[str, Any]:
    try:
        return resp.json().get("error") or {}
    except ValueError:
        return {}
