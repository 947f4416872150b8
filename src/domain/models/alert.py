"""Price alert models for Metal Vault."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.domain.models.enums import (
    AlertCondition,
    AlertFrequency,
    AlertStatus,
    MetalType,
)
from src.domain.models.price import utc_now


class PriceAlert(BaseModel):
    """A user's request to be notified when a price crosses a target.

    The condition is fixed when the alert is created by comparing the
    target against the then-current buy price.
    """

    model_config = {"frozen": True}

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    metal_type: MetalType
    target_price: Decimal = Field(..., gt=0)
    condition: AlertCondition
    frequency: AlertFrequency = AlertFrequency.ONCE
    status: AlertStatus = AlertStatus.ACTIVE
    triggered_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_active(self) -> bool:
        return self.status == AlertStatus.ACTIVE

    @property
    def is_recurring(self) -> bool:
        return self.frequency == AlertFrequency.RECURRING


class AlertNotification(BaseModel):
    """Notification content for a triggered alert."""

    model_config = {"frozen": True}

    alert_id: UUID
    user_id: UUID
    metal_type: MetalType
    condition: AlertCondition
    target_price: Decimal
    current_price: Decimal
    currency: str = "INR"

    @property
    def title(self) -> str:
        return f"{self.metal_type.value.capitalize()} price alert"

    @property
    def body(self) -> str:
        direction = "risen above" if self.condition == AlertCondition.ABOVE else "fallen below"
        return (
            f"{self.metal_type.value.capitalize()} has {direction} "
            f"{self.currency} {self.target_price}/g. Current price: "
            f"{self.currency} {self.current_price}/g"
        )

    @property
    def metadata(self) -> dict:
        return {
            "type": "price_alert",
            "alert_id": str(self.alert_id),
            "metal_type": self.metal_type.value,
            "condition": self.condition.value,
            "target_price": str(self.target_price),
            "current_price": str(self.current_price),
        }
