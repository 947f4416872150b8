"""Alert evaluation command for Metal Vault.

Runs after each successful price update with the freshly observed buy
prices. Failures on one alert (notification or save) never stop the
evaluation of the others.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable
from uuid import UUID

from src.domain.interfaces.notifier import Notifier
from src.domain.interfaces.repositories import AlertRepository
from src.domain.models.alert import AlertNotification, PriceAlert
from src.domain.models.enums import MetalType
from src.domain.rules import ALERT_COOLDOWN
from src.domain.services.alert_rules import after_trigger, should_notify
from src.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AlertEvaluationResult:
    """Result of one evaluation pass."""

    evaluated: int = 0
    triggered: list[UUID] = field(default_factory=list)
    delivered: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def triggered_count(self) -> int:
        return len(self.triggered)


class AlertEvaluator:
    """Command to check active alerts against new prices.

    For each active alert of an updated metal:
    1. Skip recurring alerts still inside their cooldown
    2. Check the condition (above: >=, below: <=)
    3. Claim the trigger: once-alerts become triggered, recurring alerts
       get triggered_at. Only the caller whose claim lands notifies.
    4. Request a notification
    """

    def __init__(
        self,
        alert_repo: AlertRepository,
        notifier: Notifier,
        cooldown: timedelta = ALERT_COOLDOWN,
        currency: str = "INR",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the evaluator.

        Args:
            alert_repo: Repository for alerts
            notifier: Notification delivery
            cooldown: Minimum time between recurring notifications
            currency: Currency shown in notifications
            clock: Time source (injectable for tests)
        """
        self._repo = alert_repo
        self._notifier = notifier
        self._cooldown = cooldown
        self._currency = currency
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def evaluate(self, prices: dict[MetalType, Decimal]) -> AlertEvaluationResult:
        """Evaluate active alerts for the metals in `prices`.

        Args:
            prices: Fresh buy price per updated metal

        Returns:
            AlertEvaluationResult with triggered alert ids and errors
        """
        result = AlertEvaluationResult()
        if not prices:
            return result

        try:
            alerts = await self._repo.list_active()
        except Exception as e:
            logger.error(f"Could not load active alerts: {e}")
            result.errors.append(f"load: {e}")
            return result

        now = self._clock()
        for alert in alerts:
            price = prices.get(alert.metal_type)
            if price is None:
                continue

            result.evaluated += 1
            if not should_notify(alert, price, now, self._cooldown):
                continue

            try:
                claimed = await self._claim(alert, now)
            except Exception as e:
                logger.error(f"Error recording trigger for alert {alert.id}: {e}")
                result.errors.append(f"{alert.id}: {e}")
                continue

            if not claimed:
                logger.debug(f"Alert {alert.id} changed since it was loaded, skipping")
                continue

            result.triggered.append(alert.id)
            try:
                if await self._notify(alert, price):
                    result.delivered += 1
            except Exception as e:
                logger.error(f"Error notifying alert {alert.id}: {e}")
                result.errors.append(f"{alert.id}: {e}")

        if result.triggered:
            logger.info(
                f"Alert evaluation: {result.triggered_count} of {result.evaluated} triggered"
            )
        return result

    async def _claim(self, alert: PriceAlert, now: datetime) -> bool:
        # Stamped before delivery: a dead device is not retried every tick
        fired = after_trigger(alert, now)
        return await self._repo.mark_triggered(
            alert.id, fired.status, now, expected_triggered_at=alert.triggered_at
        )

    async def _notify(self, alert: PriceAlert, price: Decimal) -> bool:
        notification = AlertNotification(
            alert_id=alert.id,
            user_id=alert.user_id,
            metal_type=alert.metal_type,
            condition=alert.condition,
            target_price=alert.target_price,
            current_price=price,
            currency=self._currency,
        )

        delivered = await self._notifier.notify_user(
            alert.user_id,
            notification.title,
            notification.body,
            notification.metadata,
        )

        logger.info(
            f"Alert {alert.id} triggered: {alert.metal_type.value} {alert.condition.value} "
            f"{alert.target_price} (price {price}, delivered={delivered})"
        )
        return delivered
