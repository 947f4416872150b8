"""PostgreSQL implementation of AlertRepository."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from src.domain.interfaces.repositories import AlertRepository
from src.domain.models.alert import PriceAlert
from src.domain.models.enums import (
    AlertCondition,
    AlertFrequency,
    AlertStatus,
    MetalType,
)
from src.infrastructure.database import execute, fetch, fetchrow

_COLUMNS = """
    id, user_id, metal_type, target_price, condition,
    frequency, status, triggered_at, created_at
"""


class PostgresPriceAlertRepository(AlertRepository):
    """PostgreSQL implementation of price alert persistence."""

    async def save(self, alert: PriceAlert) -> None:
        """Insert a new alert. State changes go through the transitions below."""
        await execute(
            f"""
            INSERT INTO price_alerts ({_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            ON CONFLICT (id) DO NOTHING
            """,
            alert.id,
            alert.user_id,
            alert.metal_type.value,
            alert.target_price,
            alert.condition.value,
            alert.frequency.value,
            alert.status.value,
            alert.triggered_at,
            alert.created_at,
        )

    async def get(self, alert_id: UUID) -> PriceAlert | None:
        row = await fetchrow(
            f"SELECT {_COLUMNS} FROM price_alerts WHERE id = $1",
            alert_id,
        )
        return self._row_to_alert(row) if row else None

    async def mark_triggered(
        self,
        alert_id: UUID,
        status: AlertStatus,
        triggered_at: datetime,
        expected_triggered_at: datetime | None,
    ) -> bool:
        """Compare-and-set the trigger stamp of an active alert."""
        result = await execute(
            """
            UPDATE price_alerts
            SET status = $1, triggered_at = $2
            WHERE id = $3
              AND status = 'active'
              AND triggered_at IS NOT DISTINCT FROM $4::timestamptz
            """,
            status.value,
            triggered_at,
            alert_id,
            expected_triggered_at,
        )
        return result == "UPDATE 1"

    async def cancel(self, alert_id: UUID) -> bool:
        """Cancel an alert that is still active."""
        result = await execute(
            """
            UPDATE price_alerts
            SET status = 'cancelled'
            WHERE id = $1 AND status = 'active'
            """,
            alert_id,
        )
        return result == "UPDATE 1"

    async def list_active(self, metal: MetalType | None = None) -> list[PriceAlert]:
        """Get active alerts, optionally filtered by metal."""
        rows = await fetch(
            f"""
            SELECT {_COLUMNS}
            FROM price_alerts
            WHERE status = 'active'
              AND ($1::varchar IS NULL OR metal_type = $1)
            ORDER BY created_at
            """,
            metal.value if metal else None,
        )
        return [self._row_to_alert(row) for row in rows]

    async def list_by_user(
        self, user_id: UUID, active_only: bool = True
    ) -> list[PriceAlert]:
        """Get a user's alerts, newest first."""
        rows = await fetch(
            f"""
            SELECT {_COLUMNS}
            FROM price_alerts
            WHERE user_id = $1
              AND (NOT $2 OR status = 'active')
            ORDER BY created_at DESC
            """,
            user_id,
            active_only,
        )
        return [self._row_to_alert(row) for row in rows]

    def _row_to_alert(self, row) -> PriceAlert:
        """Convert database row to PriceAlert."""
        return PriceAlert(
            id=row["id"] if isinstance(row["id"], UUID) else UUID(row["id"]),
            user_id=row["user_id"],
            metal_type=MetalType(row["metal_type"]),
            target_price=Decimal(str(row["target_price"])),
            condition=AlertCondition(row["condition"]),
            frequency=AlertFrequency(row["frequency"]),
            status=AlertStatus(row["status"]),
            triggered_at=row["triggered_at"],
            created_at=row["created_at"],
        )
