"""PostgreSQL implementation of OrderRepository."""

from decimal import Decimal
from uuid import UUID

from src.domain.interfaces.repositories import OrderRepository
from src.domain.models.enums import MetalType, OrderSide, OrderStatus
from src.domain.models.order import Order
from src.infrastructure.database import execute, fetch, fetchrow, fetchval

_COLUMNS = """
    id, user_id, side, metal_type, amount, quantity, price_per_unit,
    currency, status, provider_order_ref, provider_payment_ref,
    created_at, completed_at
"""


class PostgresOrderRepository(OrderRepository):
    """PostgreSQL implementation of order persistence.

    Status changes go through compare-and-set updates so concurrent
    callers (webhook vs. client verify) cannot both move an order.
    """

    async def save(self, order: Order) -> None:
        """Insert a new order."""
        await execute(
            f"""
            INSERT INTO orders ({_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
            """,
            order.id,
            order.user_id,
            order.side.value,
            order.metal_type.value,
            order.amount,
            order.quantity,
            order.price_per_unit,
            order.currency,
            order.status.value,
            order.provider_order_ref,
            order.provider_payment_ref,
            order.created_at,
            order.completed_at,
        )

    async def get(self, order_id: UUID) -> Order | None:
        row = await fetchrow(
            f"SELECT {_COLUMNS} FROM orders WHERE id = $1",
            order_id,
        )
        return self._row_to_order(row) if row else None

    async def get_by_provider_ref(self, provider_order_ref: str) -> Order | None:
        """Look up an order by payment provider reference."""
        row = await fetchrow(
            f"SELECT {_COLUMNS} FROM orders WHERE provider_order_ref = $1",
            provider_order_ref,
        )
        return self._row_to_order(row) if row else None

    async def list_by_user(self, user_id: UUID, limit: int = 50) -> list[Order]:
        """Get a user's orders, newest first."""
        rows = await fetch(
            f"""
            SELECT {_COLUMNS}
            FROM orders
            WHERE user_id = $1
            ORDER BY created_at DESC
            LIMIT $2
            """,
            user_id,
            limit,
        )
        return [self._row_to_order(row) for row in rows]

    async def update_status(
        self,
        order_id: UUID,
        status: OrderStatus,
        expected: OrderStatus,
        provider_payment_ref: str | None = None,
    ) -> bool:
        """Compare-and-set the order status."""
        result = await execute(
            """
            UPDATE orders
            SET status = $1,
                provider_payment_ref = COALESCE($2, provider_payment_ref)
            WHERE id = $3 AND status = $4
            """,
            status.value,
            provider_payment_ref,
            order_id,
            expected.value,
        )
        return result == "UPDATE 1"

    async def total_invested(self, user_id: UUID) -> Decimal:
        """Sum of completed buy amounts."""
        result = await fetchval(
            """
            SELECT COALESCE(SUM(amount), 0)
            FROM orders
            WHERE user_id = $1 AND side = 'buy' AND status = 'completed'
            """,
            user_id,
        )
        return Decimal(str(result))

    def _row_to_order(self, row) -> Order:
        """Convert database row to Order."""
        return Order(
            id=row["id"],
            user_id=row["user_id"],
            side=OrderSide(row["side"]),
            metal_type=MetalType(row["metal_type"]),
            amount=Decimal(str(row["amount"])),
            quantity=Decimal(str(row["quantity"])),
            price_per_unit=Decimal(str(row["price_per_unit"])),
            currency=row["currency"],
            status=OrderStatus(row["status"]),
            provider_order_ref=row["provider_order_ref"],
            provider_payment_ref=row["provider_payment_ref"],
            created_at=row["created_at"],
            completed_at=row["completed_at"],
        )
