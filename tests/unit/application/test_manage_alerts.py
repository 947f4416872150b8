"""Tests for alert management commands."""

from decimal import Decimal
from uuid import uuid4

import pytest

from src.application.commands.manage_alerts import AlertManager
from src.domain.errors import AlertNotFoundError, InvalidOrderError
from src.domain.models.enums import AlertCondition, AlertFrequency, AlertStatus, MetalType


@pytest.fixture
async def manager(alert_repo, user_repo, engines, clock) -> AlertManager:
    """Manager with gold priced at 5470 buy."""
    await engines[MetalType.GOLD].update_price()
    return AlertManager(alert_repo, user_repo, engines, clock=clock)


class TestCreateAlert:
    """Tests for alert creation."""

    async def test_target_above_waits_for_rise(self, manager, user, alert_repo):
        alert = await manager.create_alert(user.id, MetalType.GOLD, Decimal("5600"))

        assert alert.condition == AlertCondition.ABOVE
        assert alert.status == AlertStatus.ACTIVE
        assert alert.frequency == AlertFrequency.ONCE
        assert await alert_repo.get(alert.id) == alert

    @pytest.mark.parametrize("target", ["5300", "5470"])
    async def test_target_at_or_below_waits_for_fall(self, manager, user, target):
        alert = await manager.create_alert(user.id, MetalType.GOLD, Decimal(target))
        assert alert.condition == AlertCondition.BELOW

    async def test_registers_push_token(self, manager, user, user_repo):
        token = "ExponentPushToken[device-1]"
        await manager.create_alert(
            user.id, MetalType.GOLD, Decimal("5600"), AlertFrequency.RECURRING, push_token=token
        )
        assert await user_repo.get_push_tokens(user.id) == [token]

    async def test_rejects_non_positive_target(self, manager, user):
        with pytest.raises(InvalidOrderError):
            await manager.create_alert(user.id, MetalType.GOLD, Decimal("0"))


class TestListAndCancel:
    """Tests for listing and cancelling."""

    async def test_cancel(self, manager, user):
        alert = await manager.create_alert(user.id, MetalType.GOLD, Decimal("5600"))

        cancelled = await manager.cancel_alert(user.id, alert.id)
        again = await manager.cancel_alert(user.id, alert.id)

        assert cancelled.status == AlertStatus.CANCELLED
        assert again.status == AlertStatus.CANCELLED
        assert await manager.list_alerts(user.id) == []
        assert len(await manager.list_alerts(user.id, active_only=False)) == 1

    async def test_cancel_other_users_alert(self, manager, user):
        alert = await manager.create_alert(user.id, MetalType.GOLD, Decimal("5600"))
        with pytest.raises(AlertNotFoundError):
            await manager.cancel_alert(uuid4(), alert.id)

    async def test_cancel_missing(self, manager, user):
        with pytest.raises(AlertNotFoundError):
            await manager.cancel_alert(user.id, uuid4())

    async def test_cancel_after_once_alert_fired(self, manager, user, alert_repo, clock):
        alert = await manager.create_alert(user.id, MetalType.GOLD, Decimal("5600"))
        await alert_repo.mark_triggered(
            alert.id, AlertStatus.TRIGGERED, clock(), expected_triggered_at=None
        )

        result = await manager.cancel_alert(user.id, alert.id)

        assert result.status == AlertStatus.TRIGGERED
        assert result.triggered_at == clock()
