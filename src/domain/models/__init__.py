"""Domain models for Metal Vault."""

from src.domain.models.alert import AlertNotification, PriceAlert
from src.domain.models.enums import (
    AlertCondition,
    AlertFrequency,
    AlertStatus,
    LedgerKind,
    LedgerStatus,
    MetalType,
    OrderSide,
    OrderStatus,
    PaymentStatus,
    PriceSource,
)
from src.domain.models.ledger import LedgerEntry, LedgerPage
from src.domain.models.order import (
    BuyOrderResult,
    Order,
    PaymentCustomer,
    PaymentSession,
    PaymentStatusResult,
)
from src.domain.models.price import (
    ChartData,
    ChartSummary,
    EffectivePrice,
    PeriodComparison,
    PriceComparison,
    PriceHistory,
    PriceObservation,
    PriceStatistics,
    SpotQuote,
)
from src.domain.models.wallet import User, WalletBalance, WalletSummary

__all__ = [
    # Enums
    "MetalType",
    "OrderSide",
    "OrderStatus",
    "PaymentStatus",
    "LedgerKind",
    "LedgerStatus",
    "AlertCondition",
    "AlertFrequency",
    "AlertStatus",
    "PriceSource",
    # Prices
    "SpotQuote",
    "PriceObservation",
    "EffectivePrice",
    "PriceStatistics",
    "PriceHistory",
    "ChartSummary",
    "ChartData",
    "PeriodComparison",
    "PriceComparison",
    # Orders & payments
    "Order",
    "PaymentSession",
    "PaymentStatusResult",
    "PaymentCustomer",
    "BuyOrderResult",
    # Ledger
    "LedgerEntry",
    "LedgerPage",
    # Alerts
    "PriceAlert",
    "AlertNotification",
    # Wallet
    "WalletBalance",
    "User",
    "WalletSummary",
]
