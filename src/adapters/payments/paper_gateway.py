"""Paper payment gateway for simulated checkout.

The PaperPaymentGateway simulates a payment provider without any
network calls. Useful for:
- Unit testing
- Development without provider credentials
"""

import base64
import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from src.domain.errors import PaymentGatewayError
from src.domain.interfaces.payment_gateway import PaymentGateway
from src.domain.models.enums import PaymentStatus
from src.domain.models.order import PaymentCustomer, PaymentSession, PaymentStatusResult


@dataclass
class SimulatedPayment:
    """Internal payment tracking for the paper gateway."""

    order_ref: str
    amount: Decimal
    currency: str
    customer_id: str
    session_token: str
    status: PaymentStatus = PaymentStatus.ACTIVE
    payment_ref: str | None = None


class PaperPaymentGateway(PaymentGateway):
    """Simulated payment provider.

    Features:
    - Tracks orders in memory
    - Payments are settled explicitly with mark_paid() / mark_status()
    - Optional auto_pay completes every order on creation
    - Webhooks are signed like the real provider, keyed by `secret`
    """

    def __init__(self, auto_pay: bool = False, secret: str = "paper-secret"):
        """Initialize paper gateway.

        Args:
            auto_pay: If True, orders are PAID as soon as they are created
            secret: Key for webhook signatures
        """
        self._auto_pay = auto_pay
        self._secret = secret
        self._payments: dict[str, SimulatedPayment] = {}
        self.status_calls = 0

    @property
    def name(self) -> str:
        return "paper"

    # ==========================================================================
    # Gateway API
    # ==========================================================================

    async def create_order(
        self,
        order_id: str,
        amount: Decimal,
        currency: str,
        customer: PaymentCustomer,
    ) -> PaymentSession:
        """Open a simulated payment order."""
        if amount <= 0:
            raise PaymentGatewayError(f"order_amount must be positive, got {amount}")
        if order_id in self._payments:
            raise PaymentGatewayError(f"order_id {order_id} already exists", 409)

        payment = SimulatedPayment(
            order_ref=order_id,
            amount=amount,
            currency=currency,
            customer_id=customer.customer_id,
            session_token=f"session_{uuid4().hex}",
        )
        self._payments[order_id] = payment

        if self._auto_pay:
            self.mark_paid(order_id)

        return PaymentSession(
            order_ref=order_id,
            session_token=payment.session_token,
            amount=amount,
            currency=currency,
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=30),
        )

    async def fetch_order_status(self, order_ref: str) -> PaymentStatusResult:
        """Report the simulated payment status."""
        self.status_calls += 1
        payment = self._payments.get(order_ref)
        if payment is None:
            raise PaymentGatewayError(f"order {order_ref} not found", 404)

        return PaymentStatusResult(
            order_ref=order_ref,
            status=payment.status,
            payment_ref=payment.payment_ref,
            raw_status=payment.status.value.upper(),
        )

    def verify_webhook(self, raw_body: bytes, timestamp: str, signature: str) -> bool:
        expected = self.sign_webhook(raw_body, timestamp)
        return hmac.compare_digest(expected, signature)

    def parse_webhook(self, payload: dict) -> PaymentStatusResult:
        try:
            order_ref = str(payload["order_ref"])
            status = PaymentStatus(str(payload["status"]).lower())
        except (KeyError, ValueError) as e:
            raise PaymentGatewayError(f"malformed webhook: {e}") from e
        return PaymentStatusResult(order_ref=order_ref, status=status)

    # ==========================================================================
    # Simulation controls
    # ==========================================================================

    def mark_paid(self, order_ref: str) -> None:
        """Simulate the customer completing checkout."""
        self.mark_status(order_ref, PaymentStatus.PAID)

    def mark_status(self, order_ref: str, status: PaymentStatus) -> None:
        payment = self._payments.get(order_ref)
        if payment is None:
            raise PaymentGatewayError(f"order {order_ref} not found", 404)
        payment.status = status
        if status == PaymentStatus.PAID and payment.payment_ref is None:
            payment.payment_ref = f"pay_{uuid4().hex[:12]}"

    def sign_webhook(self, raw_body: bytes, timestamp: str) -> str:
        """Signature a real provider would send for this body."""
        digest = hmac.new(
            self._secret.encode(), timestamp.encode() + raw_body, hashlib.sha256
        ).digest()
        return base64.b64encode(digest).decode()

    def get_payment(self, order_ref: str) -> SimulatedPayment | None:
        return self._payments.get(order_ref)
