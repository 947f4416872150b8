"""PostgreSQL implementation of UserRepository."""

from decimal import Decimal
from uuid import UUID

from src.domain.interfaces.repositories import UserRepository
from src.domain.models.wallet import User, WalletBalance
from src.infrastructure.database import execute, fetchrow, fetchval


class PostgresUserRepository(UserRepository):
    """PostgreSQL implementation of the user aggregate.

    Balances are read here but only written by settlement.
    """

    async def get(self, user_id: UUID) -> User | None:
        row = await fetchrow(
            """
            SELECT id, name, email, phone, wallet_balance, gold_balance,
                   silver_balance, push_tokens, created_at
            FROM users
            WHERE id = $1
            """,
            user_id,
        )
        return self._row_to_user(row) if row else None

    async def save(self, user: User) -> None:
        """Insert a user or update profile fields."""
        await execute(
            """
            INSERT INTO users (id, name, email, phone, created_at)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (id) DO UPDATE SET
                name = EXCLUDED.name,
                email = EXCLUDED.email,
                phone = EXCLUDED.phone
            """,
            user.id,
            user.name,
            user.email,
            user.phone,
            user.created_at,
        )

    async def get_balance(self, user_id: UUID) -> WalletBalance | None:
        row = await fetchrow(
            """
            SELECT wallet_balance, gold_balance, silver_balance
            FROM users
            WHERE id = $1
            """,
            user_id,
        )
        return self._row_to_balance(row) if row else None

    async def add_push_token(self, user_id: UUID, token: str) -> None:
        """Append a push token if not already registered."""
        await execute(
            """
            UPDATE users
            SET push_tokens = array_append(push_tokens, $2)
            WHERE id = $1 AND NOT ($2 = ANY(push_tokens))
            """,
            user_id,
            token,
        )

    async def get_push_tokens(self, user_id: UUID) -> list[str]:
        tokens = await fetchval(
            "SELECT push_tokens FROM users WHERE id = $1",
            user_id,
        )
        return list(tokens or [])

    def _row_to_balance(self, row) -> WalletBalance:
        return WalletBalance(
            wallet_balance=Decimal(str(row["wallet_balance"])),
            gold_balance=Decimal(str(row["gold_balance"])),
            silver_balance=Decimal(str(row["silver_balance"])),
        )

    def _row_to_user(self, row) -> User:
        """Convert database row to User."""
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            balance=self._row_to_balance(row),
            push_tokens=list(row["push_tokens"] or []),
            created_at=row["created_at"],
        )
