"""Wallet queries for Metal Vault.

Holdings are valued at the effective sell price, i.e. what the user
would receive if they sold now.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from src.domain.errors import UserNotFoundError
from src.domain.interfaces.repositories import (
    LedgerRepository,
    OrderRepository,
    UserRepository,
)
from src.domain.models.enums import MetalType
from src.domain.models.ledger import LedgerPage
from src.domain.models.wallet import WalletSummary
from src.domain.rules import AMOUNT_QUANTUM

if TYPE_CHECKING:
    from src.application.workflows.price_engine import PriceAcquisitionEngine

MAX_PAGE_SIZE = 100


class WalletQueryService:
    """Wallet summary and transaction history."""

    def __init__(
        self,
        user_repo: UserRepository,
        order_repo: OrderRepository,
        ledger_repo: LedgerRepository,
        price_engines: dict[MetalType, "PriceAcquisitionEngine"],
        currency: str = "INR",
    ):
        self._users = user_repo
        self._orders = order_repo
        self._ledger = ledger_repo
        self._engines = price_engines
        self._currency = currency

    async def _holding_value(self, metal: MetalType, grams: Decimal) -> Decimal:
        if grams <= 0 or metal not in self._engines:
            return Decimal("0")
        price = await self._engines[metal].get_effective_price()
        return (grams * price.sell_price).quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)

    async def get_summary(
        self, user_id: UUID, include_transactions: bool = True
    ) -> WalletSummary:
        """Balances, invested total, current value and P&L.

        Args:
            user_id: Wallet owner
            include_transactions: Attach the first page of the ledger

        Raises:
            UserNotFoundError: Unknown user
        """
        balance = await self._users.get_balance(user_id)
        if balance is None:
            raise UserNotFoundError(user_id)

        gold_value = await self._holding_value(MetalType.GOLD, balance.gold_balance)
        silver_value = await self._holding_value(MetalType.SILVER, balance.silver_balance)
        invested = await self._orders.total_invested(user_id)

        transactions = None
        if include_transactions:
            transactions = await self.list_transactions(user_id)

        return WalletSummary(
            balance=balance,
            gold_value=gold_value,
            silver_value=silver_value,
            total_invested=invested,
            currency=self._currency,
            transactions=transactions,
        )

    async def list_transactions(
        self, user_id: UUID, page: int = 1, limit: int = 20
    ) -> LedgerPage:
        """Paginated ledger, newest first. Page numbers start at 1."""
        page = max(1, page)
        limit = min(max(1, limit), MAX_PAGE_SIZE)

        entries = await self._ledger.list_by_user(
            user_id, limit=limit, offset=(page - 1) * limit
        )
        total = await self._ledger.count_by_user(user_id)
        return LedgerPage(entries=entries, page=page, limit=limit, total=total)
