"""Order domain models for Metal Vault."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.domain.models.enums import MetalType, OrderSide, OrderStatus, PaymentStatus
from src.domain.models.price import utc_now


class Order(BaseModel):
    """A buy or sell request priced at creation time.

    price_per_unit is locked when the order is created and never
    recomputed. Settlement amounts are fully determined by it.
    """

    model_config = {"frozen": True}

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    side: OrderSide
    metal_type: MetalType
    amount: Decimal = Field(..., gt=0, description="Amount in currency")
    quantity: Decimal = Field(..., gt=0, description="Grams of metal")
    price_per_unit: Decimal = Field(..., gt=0, description="Locked price per gram")
    currency: str = "INR"
    status: OrderStatus = OrderStatus.PENDING
    provider_order_ref: str | None = Field(
        default=None, description="Payment provider order id"
    )
    provider_payment_ref: str | None = Field(
        default=None, description="Payment provider session or payment id"
    )
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None

    @property
    def is_buy(self) -> bool:
        """Check if this is a buy order."""
        return self.side == OrderSide.BUY

    @property
    def is_completed(self) -> bool:
        return self.status == OrderStatus.COMPLETED

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def with_status(
        self, status: OrderStatus, completed_at: datetime | None = None
    ) -> "Order":
        """Return a copy in a new status."""
        update: dict = {"status": status}
        if completed_at is not None:
            update["completed_at"] = completed_at
        return self.model_copy(update=update)


class PaymentSession(BaseModel):
    """Payment provider order opened for a buy."""

    model_config = {"frozen": True}

    order_ref: str
    session_token: str
    amount: Decimal
    currency: str = "INR"
    expires_at: datetime | None = None


class PaymentStatusResult(BaseModel):
    """Payment status as fetched from the provider."""

    model_config = {"frozen": True}

    order_ref: str
    status: PaymentStatus
    payment_ref: str | None = None
    raw_status: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID


class PaymentCustomer(BaseModel):
    """Customer details the payment provider requires."""

    model_config = {"frozen": True}

    customer_id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class BuyOrderResult(BaseModel):
    """Result of initiating a buy: the persisted order and checkout session."""

    model_config = {"frozen": True}

    order: Order
    session: PaymentSession
