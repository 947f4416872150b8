"""Payment webhook command for Metal Vault.

Webhooks route into the same idempotent complete_buy path as the
client's explicit verification. Anything that is not a settleable
payment is acknowledged so the provider stops retrying.
"""

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING

from src.domain.errors import (
    InvalidWebhookSignatureError,
    OrderNotFoundError,
    OrderStateError,
    PaymentGatewayError,
    PaymentNotCompletedError,
)
from src.domain.interfaces.payment_gateway import PaymentGateway
from src.domain.models.enums import PaymentStatus
from src.domain.models.order import Order
from src.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from src.application.workflows.order_settlement import OrderSettlementEngine

logger = get_logger(__name__)


@dataclass
class WebhookResult:
    """Outcome reported back to the HTTP layer."""

    acknowledged: bool
    order_ref: str | None = None
    order: Order | None = None
    detail: str = ""

    @property
    def settled(self) -> bool:
        return self.order is not None and self.order.is_completed


class PaymentWebhookHandler:
    """Verifies and dispatches payment provider webhooks."""

    def __init__(
        self,
        gateway: PaymentGateway,
        settlement: "OrderSettlementEngine",
        verify_signature: bool = True,
    ) -> None:
        """Initialize the handler.

        Args:
            gateway: Gateway that signed the webhook
            settlement: Settlement engine to complete buys
            verify_signature: Reject unsigned/forged payloads
        """
        self._gateway = gateway
        self._settlement = settlement
        self._verify = verify_signature

    async def handle(
        self,
        raw_body: bytes,
        timestamp: str = "",
        signature: str = "",
    ) -> WebhookResult:
        """Process one webhook delivery.

        Raises:
            InvalidWebhookSignatureError: Signature check failed
            PaymentGatewayError: Payload could not be parsed
        """
        if self._verify and not self._gateway.verify_webhook(raw_body, timestamp, signature):
            logger.warning("Rejected payment webhook with invalid signature")
            raise InvalidWebhookSignatureError("webhook signature mismatch")

        try:
            payload = json.loads(raw_body)
        except ValueError as e:
            raise PaymentGatewayError("webhook body is not JSON") from e

        event = self._gateway.parse_webhook(payload)

        if event.status != PaymentStatus.PAID:
            logger.info(f"Webhook for {event.order_ref}: payment {event.status.value}, no settlement")
            return WebhookResult(
                acknowledged=True,
                order_ref=event.order_ref,
                detail=f"payment {event.status.value}",
            )

        try:
            order = await self._settlement.complete_buy(event.order_ref)
        except OrderNotFoundError:
            logger.warning(f"Webhook for unknown order {event.order_ref}")
            return WebhookResult(acknowledged=True, order_ref=event.order_ref, detail="unknown order")
        except PaymentNotCompletedError as e:
            logger.info(f"Webhook for {event.order_ref} before provider confirmed: {e.status}")
            return WebhookResult(
                acknowledged=True, order_ref=event.order_ref, detail=f"payment {e.status}"
            )
        except OrderStateError as e:
            logger.info(f"Webhook for {event.order_ref} ignored: {e}")
            return WebhookResult(acknowledged=True, order_ref=event.order_ref, detail=str(e))

        return WebhookResult(
            acknowledged=True, order_ref=event.order_ref, order=order, detail="settled"
        )
