"""Cashfree Payments PG gateway."""

import base64
import hashlib
import hmac
from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx

from src.domain.errors import PaymentGatewayError
from src.domain.interfaces.payment_gateway import PaymentGateway
from src.domain.models.enums import PaymentStatus
from src.domain.models.order import PaymentCustomer, PaymentSession, PaymentStatusResult
from src.infrastructure.logging import get_logger

logger = get_logger(__name__)

CASHFREE_URLS = {
    "production": "https://api.cashfree.com/pg",
    "sandbox": "https://sandbox.cashfree.com/pg",
}

# Cashfree order_status -> PaymentStatus
ORDER_STATUS_MAP: dict[str, PaymentStatus] = {
    "PAID": PaymentStatus.PAID,
    "ACTIVE": PaymentStatus.ACTIVE,
    "EXPIRED": PaymentStatus.EXPIRED,
    "TERMINATED": PaymentStatus.CANCELLED,
    "TERMINATION_REQUESTED": PaymentStatus.CANCELLED,
}

# Webhook payment_status -> PaymentStatus
PAYMENT_STATUS_MAP: dict[str, PaymentStatus] = {
    "SUCCESS": PaymentStatus.PAID,
    "FAILED": PaymentStatus.FAILED,
    "USER_DROPPED": PaymentStatus.ACTIVE,
    "PENDING": PaymentStatus.ACTIVE,
    "CANCELLED": PaymentStatus.CANCELLED,
}


class CashfreeGateway(PaymentGateway):
    """Cashfree PG REST API.

    Authenticates with x-client-id / x-client-secret headers and pins the
    API version with x-api-version.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        environment: str = "sandbox",
        api_version: str = "2023-08-01",
        return_url: str = "",
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        """Initialize Cashfree gateway.

        Args:
            client_id: Cashfree app id
            client_secret: Cashfree secret key (also signs webhooks)
            environment: 'sandbox' or 'production'
            api_version: Value for the x-api-version header
            return_url: Checkout return URL; '{order_id}' is substituted
            client: Shared AsyncClient (a short-lived one is used if not provided)
            timeout: Request timeout in seconds
        """
        if not client_id or not client_secret:
            raise ValueError("Cashfree client id and secret are required")

        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = CASHFREE_URLS.get(environment, CASHFREE_URLS["sandbox"])
        self._api_version = api_version
        self._return_url = return_url
        self._client = client
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "cashfree"

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-version": self._api_version,
            "x-client-id": self._client_id,
            "x-client-secret": self._client_secret,
        }

    async def _request(self, method: str, path: str, json: dict | None = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.request(
                    method, url, json=json, headers=self._headers(), timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(
                        method, url, json=json, headers=self._headers()
                    )
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"request failed: {e!r}") from e

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                f"Cashfree {method} {path} failed: {response.status_code} {message}"
            )
            raise PaymentGatewayError(message, response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise PaymentGatewayError("invalid JSON from Cashfree") from e

    async def create_order(
        self,
        order_id: str,
        amount: Decimal,
        currency: str,
        customer: PaymentCustomer,
    ) -> PaymentSession:
        """Create a Cashfree order and return its payment session."""
        customer_details = {
            "customer_id": customer.customer_id,
            "customer_phone": customer.phone or "9999999999",
            "customer_email": customer.email or f"{customer.customer_id}@example.com",
            "customer_name": customer.name or "Customer",
        }
        payload: dict[str, Any] = {
            "order_id": order_id,
            "order_amount": float(amount),
            "order_currency": currency,
            "customer_details": customer_details,
        }
        if self._return_url:
            payload["order_meta"] = {
                "return_url": self._return_url.replace("{order_id}", order_id)
            }

        data = await self._request("POST", "/orders", json=payload)

        try:
            expires_at = (
                datetime.fromisoformat(data["order_expiry_time"])
                if data.get("order_expiry_time")
                else None
            )
            return PaymentSession(
                order_ref=str(data["order_id"]),
                session_token=str(data["payment_session_id"]),
                amount=amount,
                currency=currency,
                expires_at=expires_at,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise PaymentGatewayError(f"unexpected create order response: {e}") from e

    async def fetch_order_status(self, order_ref: str) -> PaymentStatusResult:
        """Fetch order status (GET /orders/{order_id})."""
        data = await self._request("GET", f"/orders/{order_ref}")

        raw_status = str(data.get("order_status", "")).upper()
        status = ORDER_STATUS_MAP.get(raw_status)
        if status is None:
            logger.warning(f"Unknown Cashfree order_status {raw_status!r} for {order_ref}")
            status = PaymentStatus.ACTIVE

        cf_order_id = data.get("cf_order_id")
        return PaymentStatusResult(
            order_ref=order_ref,
            status=status,
            payment_ref=str(cf_order_id) if cf_order_id is not None else None,
            raw_status=raw_status,
        )

    def verify_webhook(self, raw_body: bytes, timestamp: str, signature: str) -> bool:
        """Check x-webhook-signature: base64(HMAC-SHA256(timestamp + body))."""
        if not signature or not timestamp:
            return False
        digest = hmac.new(
            self._client_secret.encode(),
            timestamp.encode() + raw_body,
            hashlib.sha256,
        ).digest()
        return hmac.compare_digest(base64.b64encode(digest).decode(), signature)

    def parse_webhook(self, payload: dict) -> PaymentStatusResult:
        """Extract order id and payment status from a payment webhook.

        Shape: {"type": "PAYMENT_SUCCESS_WEBHOOK",
                "data": {"order": {"order_id": ...},
                         "payment": {"cf_payment_id": ..., "payment_status": "SUCCESS"}}}
        """
        try:
            data = payload["data"]
            order_ref = str(data["order"]["order_id"])
            payment = data.get("payment") or {}
            raw_status = str(payment.get("payment_status", "")).upper()
        except (KeyError, TypeError) as e:
            raise PaymentGatewayError(f"malformed webhook: {e}") from e

        status = PAYMENT_STATUS_MAP.get(raw_status, PaymentStatus.ACTIVE)
        payment_ref = payment.get("cf_payment_id")
        return PaymentStatusResult(
            order_ref=order_ref,
            status=status,
            payment_ref=str(payment_ref) if payment_ref is not None else None,
            raw_status=raw_status,
        )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"
