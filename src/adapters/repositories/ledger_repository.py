"""PostgreSQL implementation of LedgerRepository."""

from decimal import Decimal
from uuid import UUID

from src.domain.interfaces.repositories import LedgerRepository
from src.domain.models.enums import LedgerKind, LedgerStatus, MetalType
from src.domain.models.ledger import LedgerEntry
from src.infrastructure.database import fetch, fetchrow, fetchval

LEDGER_COLUMNS = """
    id, user_id, amount, kind, status, reference_order_id,
    metal_type, quantity, price_per_unit, description, created_at
"""


def row_to_ledger_entry(row) -> LedgerEntry:
    """Convert database row to LedgerEntry."""
    return LedgerEntry(
        id=row["id"],
        user_id=row["user_id"],
        amount=Decimal(str(row["amount"])),
        kind=LedgerKind(row["kind"]),
        status=LedgerStatus(row["status"]),
        reference_order_id=row["reference_order_id"],
        metal_type=MetalType(row["metal_type"]) if row["metal_type"] else None,
        quantity=Decimal(str(row["quantity"])) if row["quantity"] is not None else None,
        price_per_unit=(
            Decimal(str(row["price_per_unit"]))
            if row["price_per_unit"] is not None
            else None
        ),
        description=row["description"],
        created_at=row["created_at"],
    )


class PostgresLedgerRepository(LedgerRepository):
    """Read side of the ledger. Writes happen inside settlement."""

    async def list_by_user(
        self, user_id: UUID, limit: int = 20, offset: int = 0
    ) -> list[LedgerEntry]:
        """Get a user's entries, newest first."""
        rows = await fetch(
            f"""
            SELECT {LEDGER_COLUMNS}
            FROM ledger_entries
            WHERE user_id = $1
            ORDER BY created_at DESC
            LIMIT $2 OFFSET $3
            """,
            user_id,
            limit,
            offset,
        )
        return [row_to_ledger_entry(row) for row in rows]

    async def count_by_user(self, user_id: UUID) -> int:
        result = await fetchval(
            "SELECT COUNT(*) FROM ledger_entries WHERE user_id = $1",
            user_id,
        )
        return int(result or 0)

    async def get_by_order(self, order_id: UUID) -> LedgerEntry | None:
        """Get the settlement entry for an order."""
        row = await fetchrow(
            f"""
            SELECT {LEDGER_COLUMNS}
            FROM ledger_entries
            WHERE reference_order_id = $1
            """,
            order_id,
        )
        return row_to_ledger_entry(row) if row else None
