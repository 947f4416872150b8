"""Ledger (transaction history) models for Metal Vault."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.domain.models.enums import (
    LedgerKind,
    LedgerStatus,
    MetalType,
    OrderSide,
)
from src.domain.models.order import Order
from src.domain.models.price import utc_now


class LedgerEntry(BaseModel):
    """An append-only record of a wallet movement.

    Exactly one entry exists per completed order, keyed by
    reference_order_id.
    """

    model_config = {"frozen": True}

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    amount: Decimal
    kind: LedgerKind
    status: LedgerStatus = LedgerStatus.SUCCESS
    reference_order_id: UUID | None = None
    metal_type: MetalType | None = None
    quantity: Decimal | None = None
    price_per_unit: Decimal | None = None
    description: str = ""
    created_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def for_order(cls, order: Order, created_at: datetime | None = None) -> "LedgerEntry":
        """Build the settlement entry for a completed order."""
        verb = "Bought" if order.side == OrderSide.BUY else "Sold"
        return cls(
            user_id=order.user_id,
            amount=order.amount,
            kind=LedgerKind.for_trade(order.side, order.metal_type),
            status=LedgerStatus.SUCCESS,
            reference_order_id=order.id,
            metal_type=order.metal_type,
            quantity=order.quantity,
            price_per_unit=order.price_per_unit,
            description=f"{verb} {order.quantity:.4f}g {order.metal_type.value}",
            created_at=created_at or utc_now(),
        )


class LedgerPage(BaseModel):
    """A page of ledger entries, newest first."""

    entries: list[LedgerEntry] = Field(default_factory=list)
    page: int = 1
    limit: int = 20
    total: int = 0

    @property
    def pages(self) -> int:
        """Total number of pages."""
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit
