"""Repository interfaces (ports) for data persistence."""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from src.domain.models.alert import PriceAlert
from src.domain.models.enums import AlertStatus, MetalType, OrderStatus
from src.domain.models.ledger import LedgerEntry
from src.domain.models.order import Order
from src.domain.models.price import PriceObservation
from src.domain.models.wallet import User, WalletBalance


class PriceRepository(ABC):
    """Repository interface for the append-only price time series.

    Observations are keyed by (metal_type, timestamp) and never updated.
    """

    @abstractmethod
    async def save(self, observation: PriceObservation) -> None:
        """Append an observation."""
        ...

    @abstractmethod
    async def get_latest(self, metal: MetalType) -> PriceObservation | None:
        """Get the most recent observation for a metal."""
        ...

    @abstractmethod
    async def get_range(
        self,
        metal: MetalType,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[PriceObservation]:
        """Get observations in a time window.

        Args:
            metal: Metal type
            start: Inclusive lower bound (None = from the beginning)
            end: Inclusive upper bound (None = up to now)
            limit: Maximum rows, counted from the oldest

        Returns:
            Observations ordered by timestamp ascending.
        """
        ...

    @abstractmethod
    async def get_at_or_before(
        self, metal: MetalType, at: datetime
    ) -> PriceObservation | None:
        """Get the latest observation with timestamp <= at."""
        ...

    @abstractmethod
    async def count(self, metal: MetalType, start: datetime | None = None) -> int:
        """Count observations since start."""
        ...

    @abstractmethod
    async def delete_older_than(self, metal: MetalType, cutoff: datetime) -> int:
        """Retention sweep. Returns the number of rows removed."""
        ...


class UserRepository(ABC):
    """Repository interface for the user aggregate (balances, push tokens)."""

    @abstractmethod
    async def get(self, user_id: UUID) -> User | None:
        ...

    @abstractmethod
    async def save(self, user: User) -> None:
        """Insert or update profile fields. Balances are never written here."""
        ...

    @abstractmethod
    async def get_balance(self, user_id: UUID) -> WalletBalance | None:
        """Read the current balances."""
        ...

    @abstractmethod
    async def add_push_token(self, user_id: UUID, token: str) -> None:
        """Register a device push token (no-op if already known)."""
        ...

    @abstractmethod
    async def get_push_tokens(self, user_id: UUID) -> list[str]:
        ...


class OrderRepository(ABC):
    """Repository interface for orders."""

    @abstractmethod
    async def save(self, order: Order) -> None:
        """Insert a new order."""
        ...

    @abstractmethod
    async def get(self, order_id: UUID) -> Order | None:
        ...

    @abstractmethod
    async def get_by_provider_ref(self, provider_order_ref: str) -> Order | None:
        """Look up an order by the payment provider's order reference."""
        ...

    @abstractmethod
    async def list_by_user(self, user_id: UUID, limit: int = 50) -> list[Order]:
        """Get a user's orders, newest first."""
        ...

    @abstractmethod
    async def update_status(
        self,
        order_id: UUID,
        status: OrderStatus,
        expected: OrderStatus,
        provider_payment_ref: str | None = None,
    ) -> bool:
        """Move an order to a new status if it is still in the expected one.

        Returns:
            True if the row was updated, False if the status had moved on.
        """
        ...

    @abstractmethod
    async def total_invested(self, user_id: UUID) -> Decimal:
        """Sum of amounts over the user's completed buy orders."""
        ...


class LedgerRepository(ABC):
    """Repository interface for reading ledger entries.

    Entries are written only by SettlementRepository.settle.
    """

    @abstractmethod
    async def list_by_user(
        self, user_id: UUID, limit: int = 20, offset: int = 0
    ) -> list[LedgerEntry]:
        """Get a user's entries, newest first."""
        ...

    @abstractmethod
    async def count_by_user(self, user_id: UUID) -> int:
        ...

    @abstractmethod
    async def get_by_order(self, order_id: UUID) -> LedgerEntry | None:
        """Get the settlement entry for an order."""
        ...


class SettlementRepository(ABC):
    """Atomic settlement of an order.

    Implementations must apply all of the following as one unit, or none:
    - Move the order from its current status to completed (compare-and-set)
    - Apply the balance deltas with atomic increments
      (buy: +quantity metal; sell: -quantity metal, +amount wallet)
    - Append the ledger entry for the order
    """

    @abstractmethod
    async def settle(
        self,
        order: Order,
        entry: LedgerEntry,
        completed_at: datetime,
        provider_payment_ref: str | None = None,
    ) -> bool:
        """Settle an order exactly once.

        Returns:
            True if this call settled the order, False if the order was no
            longer in the status it was read in (already settled elsewhere).

        Raises:
            InsufficientBalanceError: Sell exceeds the holding at settle time.
                Nothing is written.
        """
        ...


class AlertRepository(ABC):
    """Repository interface for price alerts."""

    @abstractmethod
    async def save(self, alert: PriceAlert) -> None:
        """Insert a new alert."""
        ...

    @abstractmethod
    async def get(self, alert_id: UUID) -> PriceAlert | None:
        ...

    @abstractmethod
    async def mark_triggered(
        self,
        alert_id: UUID,
        status: AlertStatus,
        triggered_at: datetime,
        expected_triggered_at: datetime | None,
    ) -> bool:
        """Record a trigger if the alert is still active and unchanged.

        The alert must still be active with triggered_at equal to
        expected_triggered_at (the value the caller evaluated).

        Returns:
            True if this caller claimed the trigger, False otherwise.
        """
        ...

    @abstractmethod
    async def cancel(self, alert_id: UUID) -> bool:
        """Move an active alert to cancelled.

        Returns:
            True if the alert was active, False if it had already ended.
        """
        ...

    @abstractmethod
    async def list_active(self, metal: MetalType | None = None) -> list[PriceAlert]:
        """Get all active alerts, optionally for one metal."""
        ...

    @abstractmethod
    async def list_by_user(
        self, user_id: UUID, active_only: bool = True
    ) -> list[PriceAlert]:
        """Get a user's alerts, newest first."""
        ...
