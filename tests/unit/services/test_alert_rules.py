"""Tests for price alert rules."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from src.domain.models.alert import PriceAlert
from src.domain.models.enums import (
    AlertCondition,
    AlertFrequency,
    AlertStatus,
    MetalType,
)
from src.domain.services.alert_rules import (
    after_trigger,
    derive_condition,
    in_cooldown,
    is_triggered,
    should_notify,
)

NOW = datetime(2024, 6, 3, 10, 0, tzinfo=timezone.utc)


def make_alert(
    condition: AlertCondition = AlertCondition.ABOVE,
    target: str = "6000",
    **kwargs,
) -> PriceAlert:
    """Create a test alert."""
    return PriceAlert(
        user_id=uuid4(),
        metal_type=MetalType.GOLD,
        target_price=Decimal(target),
        condition=condition,
        **kwargs,
    )


class TestDeriveCondition:
    """Tests for condition derivation at creation."""

    def test_target_above_current(self):
        assert derive_condition(Decimal("7000"), Decimal("6500")) == AlertCondition.ABOVE

    def test_target_below_current(self):
        assert derive_condition(Decimal("6000"), Decimal("6500")) == AlertCondition.BELOW

    def test_target_equal_current(self):
        assert derive_condition(Decimal("6500"), Decimal("6500")) == AlertCondition.BELOW


class TestIsTriggered:
    """Tests for the trigger condition."""

    def test_above_inclusive(self):
        alert = make_alert(AlertCondition.ABOVE, "6000")
        assert is_triggered(alert, Decimal("6000"))
        assert is_triggered(alert, Decimal("6001"))
        assert not is_triggered(alert, Decimal("5999"))

    def test_below_inclusive(self):
        alert = make_alert(AlertCondition.BELOW, "6000")
        assert is_triggered(alert, Decimal("6000"))
        assert is_triggered(alert, Decimal("5999"))
        assert not is_triggered(alert, Decimal("6001"))


class TestCooldown:
    """Tests for recurring alert cooldown."""

    def test_never_triggered(self):
        assert not in_cooldown(make_alert(), NOW)

    def test_within_cooldown(self):
        alert = make_alert(triggered_at=NOW - timedelta(minutes=59))
        assert in_cooldown(alert, NOW)

    def test_cooldown_elapsed(self):
        alert = make_alert(triggered_at=NOW - timedelta(hours=1))
        assert not in_cooldown(alert, NOW)

    def test_recurring_in_cooldown_not_notified(self):
        alert = make_alert(
            frequency=AlertFrequency.RECURRING,
            triggered_at=NOW - timedelta(minutes=10),
        )
        assert not should_notify(alert, Decimal("6500"), NOW)

    def test_recurring_after_cooldown_notified(self):
        alert = make_alert(
            frequency=AlertFrequency.RECURRING,
            triggered_at=NOW - timedelta(minutes=61),
        )
        assert should_notify(alert, Decimal("6500"), NOW)

    def test_inactive_not_notified(self):
        alert = make_alert(status=AlertStatus.TRIGGERED)
        assert not should_notify(alert, Decimal("6500"), NOW)


class TestAfterTrigger:
    """Tests for the post-trigger transition."""

    def test_once_becomes_triggered(self):
        fired = after_trigger(make_alert(), NOW)
        assert fired.status == AlertStatus.TRIGGERED
        assert fired.triggered_at == NOW
        assert not fired.is_active

    def test_recurring_stays_active(self):
        fired = after_trigger(make_alert(frequency=AlertFrequency.RECURRING), NOW)
        assert fired.status == AlertStatus.ACTIVE
        assert fired.triggered_at == NOW
