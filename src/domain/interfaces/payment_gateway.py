"""Payment gateway interface (port) - defines how buys are paid for."""

from abc import ABC, abstractmethod
from decimal import Decimal

from src.domain.models.order import PaymentCustomer, PaymentSession, PaymentStatusResult


class PaymentGateway(ABC):
    """Abstract interface for an external payment provider.

    Implementations include:
    - PaperPaymentGateway: In-memory simulation for development and tests
    - CashfreeGateway: Cashfree Payments PG API
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the gateway name (e.g., 'paper', 'cashfree')."""
        ...

    @abstractmethod
    async def create_order(
        self,
        order_id: str,
        amount: Decimal,
        currency: str,
        customer: PaymentCustomer,
    ) -> PaymentSession:
        """Open a payment order.

        Args:
            order_id: Our order id, used as the provider's order reference
            amount: Amount to collect
            currency: ISO currency code
            customer: Customer details

        Returns:
            PaymentSession with the provider order reference and the
            session token the client checkout needs.

        Raises:
            PaymentGatewayError: If the provider rejects the order.
        """
        ...

    @abstractmethod
    async def fetch_order_status(self, order_ref: str) -> PaymentStatusResult:
        """Fetch the payment status of an order.

        Raises:
            PaymentGatewayError: If the status cannot be fetched.
        """
        ...

    @abstractmethod
    def verify_webhook(self, raw_body: bytes, timestamp: str, signature: str) -> bool:
        """Check a webhook's signature against the raw request body."""
        ...

    @abstractmethod
    def parse_webhook(self, payload: dict) -> PaymentStatusResult:
        """Extract the order reference and payment status from a webhook.

        Raises:
            PaymentGatewayError: If the payload is malformed.
        """
        ...
