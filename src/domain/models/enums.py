"""Domain enumerations for the Metal Vault system."""

from enum import Enum


class MetalType(str, Enum):
    """Tradable precious metal."""

    GOLD = "gold"
    SILVER = "silver"


class OrderSide(str, Enum):
    """Trade side from the user's point of view."""

    BUY = "buy"
    SELL = "sell"


class OrderStatus(str, Enum):
    """Order lifecycle status.

    Buys: pending -> payment_pending -> completed | failed | cancelled
    Sells: pending -> completed
    """

    PENDING = "pending"
    PAYMENT_PENDING = "payment_pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Completed, failed and cancelled orders never transition again."""
        return self in (OrderStatus.COMPLETED, OrderStatus.FAILED, OrderStatus.CANCELLED)


class PaymentStatus(str, Enum):
    """Payment state as reported by the payment provider."""

    PAID = "paid"
    ACTIVE = "active"  # Created, awaiting payment
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    FAILED = "failed"


class LedgerKind(str, Enum):
    """Ledger (transaction) entry type."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    BUY_GOLD = "buy_gold"
    SELL_GOLD = "sell_gold"
    BUY_SILVER = "buy_silver"
    SELL_SILVER = "sell_silver"
    REFUND = "refund"

    @classmethod
    def for_trade(cls, side: OrderSide, metal: MetalType) -> "LedgerKind":
        """Ledger kind for a settled trade."""
        return cls(f"{side.value}_{metal.value}")


class LedgerStatus(str, Enum):
    """Ledger entry status."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class AlertCondition(str, Enum):
    """Direction a price must cross for an alert to fire."""

    ABOVE = "above"
    BELOW = "below"


class AlertFrequency(str, Enum):
    """How often an alert may fire."""

    ONCE = "once"
    RECURRING = "recurring"  # Re-arms after the cooldown


class AlertStatus(str, Enum):
    """Alert lifecycle status."""

    ACTIVE = "active"
    TRIGGERED = "triggered"
    CANCELLED = "cancelled"


class PriceSource(str, Enum):
    """Tier that answered an effective price lookup."""

    MEMORY = "memory"
    STORE = "store"
    DEFAULT = "default"
