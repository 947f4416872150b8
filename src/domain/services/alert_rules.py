"""Price alert rules for Metal Vault.

An alert fires when:
- above: price >= target
- below: price <= target

Once-alerts terminate on first trigger. Recurring alerts re-arm only
after the cooldown has elapsed since the last trigger.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from src.domain.models.alert import PriceAlert
from src.domain.models.enums import AlertCondition, AlertStatus
from src.domain.rules import ALERT_COOLDOWN


def derive_condition(target_price: Decimal, current_price: Decimal) -> AlertCondition:
    """Direction for a new alert, fixed at creation.

    A target above the current price waits for a rise, anything else
    waits for a fall.
    """
    if target_price > current_price:
        return AlertCondition.ABOVE
    return AlertCondition.BELOW


def is_triggered(alert: PriceAlert, price: Decimal) -> bool:
    """Check if a price satisfies an alert's condition."""
    if alert.condition == AlertCondition.ABOVE:
        return price >= alert.target_price
    return price <= alert.target_price


def in_cooldown(
    alert: PriceAlert,
    now: datetime,
    cooldown: timedelta = ALERT_COOLDOWN,
) -> bool:
    """Check if a recurring alert fired too recently to fire again."""
    if alert.triggered_at is None:
        return False
    return now - alert.triggered_at < cooldown


def should_notify(
    alert: PriceAlert,
    price: Decimal,
    now: datetime,
    cooldown: timedelta = ALERT_COOLDOWN,
) -> bool:
    """Full evaluation: active, not cooling down, condition satisfied."""
    if not alert.is_active:
        return False
    if alert.is_recurring and in_cooldown(alert, now, cooldown):
        return False
    return is_triggered(alert, price)


def after_trigger(alert: PriceAlert, now: datetime) -> PriceAlert:
    """State of an alert after it fired.

    Once-alerts become triggered (terminal). Recurring alerts stay
    active with triggered_at stamped for the cooldown.
    """
    if alert.is_recurring:
        return alert.model_copy(update={"triggered_at": now})
    return alert.model_copy(
        update={"status": AlertStatus.TRIGGERED, "triggered_at": now}
    )
