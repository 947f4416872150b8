"""Price alert management commands (create, list, cancel)."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Callable
from uuid import UUID

from src.domain.errors import AlertNotFoundError, InvalidOrderError
from src.domain.interfaces.repositories import AlertRepository, UserRepository
from src.domain.models.alert import PriceAlert
from src.domain.models.enums import AlertFrequency, MetalType
from src.domain.services.alert_rules import derive_condition
from src.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from src.application.workflows.price_engine import PriceAcquisitionEngine

logger = get_logger(__name__)


class AlertManager:
    """Command to create, list and cancel a user's price alerts."""

    def __init__(
        self,
        alert_repo: AlertRepository,
        user_repo: UserRepository,
        price_engines: dict[MetalType, "PriceAcquisitionEngine"],
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._alerts = alert_repo
        self._users = user_repo
        self._engines = price_engines
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def create_alert(
        self,
        user_id: UUID,
        metal: MetalType,
        target_price: Decimal,
        frequency: AlertFrequency = AlertFrequency.ONCE,
        push_token: str | None = None,
    ) -> PriceAlert:
        """Create an alert.

        The condition is derived once, here, from the current effective
        buy price: a target above it waits for a rise, otherwise a fall.

        Args:
            user_id: Owner
            metal: Metal to watch
            target_price: Target price per gram (> 0)
            frequency: once or recurring
            push_token: Optional device token to register for the user

        Raises:
            InvalidOrderError: Non-positive target
        """
        if target_price <= 0:
            raise InvalidOrderError("target price must be positive")

        if push_token:
            await self._users.add_push_token(user_id, push_token)

        current = await self._engines[metal].get_effective_price()
        alert = PriceAlert(
            user_id=user_id,
            metal_type=metal,
            target_price=target_price,
            condition=derive_condition(target_price, current.buy_price),
            frequency=frequency,
            created_at=self._clock(),
        )
        await self._alerts.save(alert)

        logger.info(
            f"Alert {alert.id} created: {metal.value} {alert.condition.value} "
            f"{target_price} (current {current.buy_price})"
        )
        return alert

    async def list_alerts(self, user_id: UUID, active_only: bool = True) -> list[PriceAlert]:
        """Get a user's alerts, newest first."""
        return await self._alerts.list_by_user(user_id, active_only=active_only)

    async def cancel_alert(self, user_id: UUID, alert_id: UUID) -> PriceAlert:
        """Cancel one of the user's alerts.

        Only an active alert moves to cancelled. An alert that already
        ended (cancelled, or a once-alert that fired) is returned as is.

        Raises:
            AlertNotFoundError: Missing or owned by another user
        """
        alert = await self._alerts.get(alert_id)
        if alert is None or alert.user_id != user_id:
            raise AlertNotFoundError(alert_id)

        if await self._alerts.cancel(alert_id):
            logger.info(f"Alert {alert_id} cancelled")
        return await self._alerts.get(alert_id)
