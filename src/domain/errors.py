"""Domain exceptions for Metal Vault.

Provider-level failures are absorbed by the price engine and never reach
order or alert logic. Settlement errors are user-displayable and are
always raised before any balance mutation.
"""

from decimal import Decimal
from uuid import UUID

from src.domain.models.enums import MetalType, OrderStatus


class DomainError(Exception):
    """Base exception for Metal Vault errors."""

    pass


# =============================================================================
# PRICE ACQUISITION
# =============================================================================


class ProviderUnavailableError(DomainError):
    """An external price, FX or payment call failed, timed out or returned junk."""

    def __init__(self, provider: str, reason: str):
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} unavailable: {reason}")


class InvalidPriceBoundsError(DomainError):
    """A fetched price fell outside the metal's sane range."""

    def __init__(self, metal: MetalType, price: Decimal, min_price: Decimal, max_price: Decimal):
        self.metal = metal
        self.price = price
        self.min_price = min_price
        self.max_price = max_price
        super().__init__(
            f"{metal.value} price {price} outside [{min_price}, {max_price}]"
        )


class PriceUnavailableError(DomainError):
    """No usable price at all. Only possible with a misconfigured default."""

    def __init__(self, metal: MetalType):
        self.metal = metal
        super().__init__(f"No valid price available for {metal.value}")


# =============================================================================
# SETTLEMENT
# =============================================================================


class SettlementError(DomainError):
    """Base for errors returned to the user from order handling."""

    retryable = False


class InsufficientBalanceError(SettlementError):
    """Sell quantity exceeds the user's holding."""

    def __init__(self, metal: MetalType, requested: Decimal, available: Decimal):
        self.metal = metal
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient {metal.value} balance: requested {requested}g, "
            f"available {available}g"
        )


class PaymentNotCompletedError(SettlementError):
    """The payment provider has not confirmed payment yet."""

    retryable = True

    def __init__(self, order_ref: str, status: str):
        self.order_ref = order_ref
        self.status = status
        super().__init__(f"Payment for order {order_ref} not completed (status: {status})")


class OrderNotFoundError(SettlementError):
    """Order does not exist or belongs to another user."""

    def __init__(self, reference: UUID | str):
        self.reference = reference
        super().__init__(f"Order not found: {reference}")


class InvalidOrderError(SettlementError):
    """Order request failed validation (non-positive amount, etc.)."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid order: {reason}")


class OrderStateError(SettlementError):
    """Order is in a state that does not allow the requested transition."""

    def __init__(self, order_id: UUID, status: OrderStatus):
        self.order_id = order_id
        self.status = status
        super().__init__(f"Order {order_id} is {status.value}")


class UserNotFoundError(SettlementError):
    def __init__(self, user_id: UUID):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


# =============================================================================
# ALERTS & PAYMENTS
# =============================================================================


class AlertNotFoundError(DomainError):
    def __init__(self, alert_id: UUID):
        self.alert_id = alert_id
        super().__init__(f"Alert not found: {alert_id}")


class PaymentGatewayError(DomainError):
    """The payment provider rejected or failed a request."""

    def __init__(self, reason: str, status_code: int | None = None):
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Payment gateway error: {reason}")


class InvalidWebhookSignatureError(DomainError):
    """Webhook payload signature did not verify."""

    pass
