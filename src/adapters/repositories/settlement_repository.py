"""PostgreSQL implementation of SettlementRepository."""

from datetime import datetime
from decimal import Decimal

import asyncpg

from src.domain.errors import InsufficientBalanceError, UserNotFoundError
from src.domain.interfaces.repositories import SettlementRepository
from src.domain.models.enums import MetalType, OrderStatus
from src.domain.models.ledger import LedgerEntry
from src.domain.models.order import Order
from src.infrastructure.database import transaction
from src.infrastructure.logging import get_logger

logger = get_logger(__name__)

_BALANCE_COLUMNS: dict[MetalType, str] = {
    MetalType.GOLD: "gold_balance",
    MetalType.SILVER: "silver_balance",
}


class PostgresSettlementRepository(SettlementRepository):
    """Settles an order in a single database transaction.

    1. CAS the order from its read status to completed
    2. Atomic balance increments (guarded decrement for sells)
    3. Insert the ledger entry (unique per order)

    Any exception rolls all three back.
    """

    async def settle(
        self,
        order: Order,
        entry: LedgerEntry,
        completed_at: datetime,
        provider_payment_ref: str | None = None,
    ) -> bool:
        """Settle an order exactly once."""
        try:
            async with transaction() as conn:
                result = await conn.execute(
                    """
                    UPDATE orders
                    SET status = $1,
                        completed_at = $2,
                        provider_payment_ref = COALESCE($3, provider_payment_ref)
                    WHERE id = $4 AND status = $5
                    """,
                    OrderStatus.COMPLETED.value,
                    completed_at,
                    provider_payment_ref,
                    order.id,
                    order.status.value,
                )
                if result != "UPDATE 1":
                    return False

                if order.is_buy:
                    await self._credit_metal(conn, order)
                else:
                    await self._debit_metal(conn, order)

                await conn.execute(
                    """
                    INSERT INTO ledger_entries (
                        id, user_id, amount, kind, status, reference_order_id,
                        metal_type, quantity, price_per_unit, description, created_at
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                    """,
                    entry.id,
                    entry.user_id,
                    entry.amount,
                    entry.kind.value,
                    entry.status.value,
                    entry.reference_order_id,
                    entry.metal_type.value if entry.metal_type else None,
                    entry.quantity,
                    entry.price_per_unit,
                    entry.description,
                    entry.created_at,
                )
        except asyncpg.UniqueViolationError:
            logger.info(f"Ledger entry for order {order.id} already exists, settlement skipped")
            return False

        return True

    async def _credit_metal(self, conn: asyncpg.Connection, order: Order) -> None:
        column = _BALANCE_COLUMNS[order.metal_type]
        result = await conn.execute(
            f"UPDATE users SET {column} = {column} + $1 WHERE id = $2",
            order.quantity,
            order.user_id,
        )
        if result != "UPDATE 1":
            raise UserNotFoundError(order.user_id)

    async def _debit_metal(self, conn: asyncpg.Connection, order: Order) -> None:
        column = _BALANCE_COLUMNS[order.metal_type]
        result = await conn.execute(
            f"""
            UPDATE users
            SET {column} = {column} - $1,
                wallet_balance = wallet_balance + $2
            WHERE id = $3 AND {column} >= $1
            """,
            order.quantity,
            order.amount,
            order.user_id,
        )
        if result == "UPDATE 1":
            return

        available = await conn.fetchval(
            f"SELECT {column} FROM users WHERE id = $1",
            order.user_id,
        )
        if available is None:
            raise UserNotFoundError(order.user_id)
        raise InsufficientBalanceError(
            order.metal_type, order.quantity, Decimal(str(available))
        )
