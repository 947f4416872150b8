"""Wallet and user models for Metal Vault."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, computed_field

from src.domain.models.enums import MetalType
from src.domain.models.ledger import LedgerPage
from src.domain.models.price import utc_now


class WalletBalance(BaseModel):
    """Balances embedded in the user aggregate.

    Only ever changed through atomic increments driven by settled orders.
    """

    model_config = {"frozen": True}

    wallet_balance: Decimal = Decimal("0")
    gold_balance: Decimal = Decimal("0")
    silver_balance: Decimal = Decimal("0")

    def metal_balance(self, metal: MetalType) -> Decimal:
        """Grams held of a metal."""
        if metal == MetalType.GOLD:
            return self.gold_balance
        return self.silver_balance


class User(BaseModel):
    """Account holder. Identity and KYC live elsewhere."""

    model_config = {"frozen": True}

    id: UUID = Field(default_factory=uuid4)
    name: str = ""
    email: str | None = None
    phone: str | None = None
    balance: WalletBalance = Field(default_factory=WalletBalance)
    push_tokens: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)


class WalletSummary(BaseModel):
    """Wallet overview with holdings valued at current sell prices."""

    model_config = {"frozen": True}

    balance: WalletBalance
    gold_value: Decimal
    silver_value: Decimal
    total_invested: Decimal
    currency: str = "INR"
    transactions: LedgerPage | None = None

    @computed_field
    @property
    def current_value(self) -> Decimal:
        """Holdings value at effective sell prices."""
        return self.gold_value + self.silver_value

    @computed_field
    @property
    def profit_loss(self) -> Decimal:
        return self.current_value - self.total_invested

    @computed_field
    @property
    def profit_loss_percent(self) -> Decimal:
        if self.total_invested <= 0:
            return Decimal("0")
        return (self.profit_loss / self.total_invested * 100).quantize(Decimal("0.01"))
