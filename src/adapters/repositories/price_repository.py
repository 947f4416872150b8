"""PostgreSQL implementation of PriceRepository."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from src.domain.interfaces.repositories import PriceRepository
from src.domain.models.enums import MetalType
from src.domain.models.price import PriceObservation
from src.infrastructure.database import execute, fetch, fetchrow, fetchval

_COLUMNS = "id, metal_type, buy_price, sell_price, currency, timestamp, source"


class PostgresPriceRepository(PriceRepository):
    """PostgreSQL implementation of the price time series.

    Rows are only ever inserted, plus bulk deletes for retention.
    """

    async def save(self, observation: PriceObservation) -> None:
        """Append an observation."""
        await execute(
            f"""
            INSERT INTO price_observations ({_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            ON CONFLICT (id) DO NOTHING
            """,
            observation.id,
            observation.metal_type.value,
            observation.buy_price,
            observation.sell_price,
            observation.currency,
            observation.timestamp,
            observation.source,
        )

    async def get_latest(self, metal: MetalType) -> PriceObservation | None:
        """Get the most recent observation for a metal."""
        row = await fetchrow(
            f"""
            SELECT {_COLUMNS}
            FROM price_observations
            WHERE metal_type = $1
            ORDER BY timestamp DESC
            LIMIT 1
            """,
            metal.value,
        )
        return self._row_to_observation(row) if row else None

    async def get_range(
        self,
        metal: MetalType,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[PriceObservation]:
        """Get observations in a window, oldest first."""
        rows = await fetch(
            f"""
            SELECT {_COLUMNS}
            FROM price_observations
            WHERE metal_type = $1
              AND ($2::timestamptz IS NULL OR timestamp >= $2)
              AND ($3::timestamptz IS NULL OR timestamp <= $3)
            ORDER BY timestamp ASC
            LIMIT $4
            """,
            metal.value,
            start,
            end,
            limit,
        )
        return [self._row_to_observation(row) for row in rows]

    async def get_at_or_before(
        self, metal: MetalType, at: datetime
    ) -> PriceObservation | None:
        """Get the latest observation at or before an instant."""
        row = await fetchrow(
            f"""
            SELECT {_COLUMNS}
            FROM price_observations
            WHERE metal_type = $1 AND timestamp <= $2
            ORDER BY timestamp DESC
            LIMIT 1
            """,
            metal.value,
            at,
        )
        return self._row_to_observation(row) if row else None

    async def count(self, metal: MetalType, start: datetime | None = None) -> int:
        """Count observations since start."""
        result = await fetchval(
            """
            SELECT COUNT(*)
            FROM price_observations
            WHERE metal_type = $1
              AND ($2::timestamptz IS NULL OR timestamp >= $2)
            """,
            metal.value,
            start,
        )
        return int(result or 0)

    async def delete_older_than(self, metal: MetalType, cutoff: datetime) -> int:
        """Delete observations older than cutoff."""
        status = await execute(
            """
            DELETE FROM price_observations
            WHERE metal_type = $1 AND timestamp < $2
            """,
            metal.value,
            cutoff,
        )
        # asyncpg returns e.g. "DELETE 42"
        return int(status.split()[-1])

    def _row_to_observation(self, row) -> PriceObservation:
        """Convert database row to PriceObservation."""
        return PriceObservation(
            id=row["id"] if isinstance(row["id"], UUID) else UUID(row["id"]),
            metal_type=MetalType(row["metal_type"]),
            buy_price=Decimal(str(row["buy_price"])),
            sell_price=Decimal(str(row["sell_price"])),
            currency=row["currency"],
            timestamp=row["timestamp"],
            source=row["source"],
        )
