"""Integration tests for atomic settlement."""

import asyncio
from decimal import Decimal

import pytest

from src.adapters.repositories.ledger_repository import PostgresLedgerRepository
from src.adapters.repositories.order_repository import PostgresOrderRepository
from src.adapters.repositories.settlement_repository import PostgresSettlementRepository
from src.adapters.repositories.user_repository import PostgresUserRepository
from src.domain.errors import InsufficientBalanceError
from src.domain.models.enums import MetalType, OrderSide, OrderStatus
from src.domain.models.ledger import LedgerEntry
from src.domain.models.order import Order
from src.domain.models.price import utc_now
from src.domain.models.wallet import User
from src.infrastructure.database import apply_migrations, close_pool, execute


@pytest.fixture(autouse=True)
async def schema():
    await apply_migrations()
    yield
    await close_pool()


@pytest.fixture
async def account():
    """User with 1g of gold, removed after the test."""
    users = PostgresUserRepository()
    user = User(name="Integration Test")
    await users.save(user)
    await execute("UPDATE users SET gold_balance = 1 WHERE id = $1", user.id)
    yield user
    await execute("DELETE FROM ledger_entries WHERE user_id = $1", user.id)
    await execute("DELETE FROM orders WHERE user_id = $1", user.id)
    await execute("DELETE FROM users WHERE id = $1", user.id)


def make_order(user: User, side: OrderSide, quantity: str, status: OrderStatus) -> Order:
    return Order(
        user_id=user.id,
        side=side,
        metal_type=MetalType.GOLD,
        amount=Decimal(quantity) * 5470,
        quantity=Decimal(quantity),
        price_per_unit=Decimal("5470"),
        status=status,
    )


@pytest.mark.integration
async def test_concurrent_buy_settles_once(account):
    orders = PostgresOrderRepository()
    settlement = PostgresSettlementRepository()
    order = make_order(account, OrderSide.BUY, "0.5", OrderStatus.PAYMENT_PENDING)
    await orders.save(order)

    results = await asyncio.gather(
        settlement.settle(order, LedgerEntry.for_order(order), utc_now()),
        settlement.settle(order, LedgerEntry.for_order(order), utc_now()),
        return_exceptions=True,
    )

    assert results.count(True) == 1
    balance = await PostgresUserRepository().get_balance(account.id)
    assert balance.gold_balance == Decimal("1.5")
    assert await PostgresLedgerRepository().count_by_user(account.id) == 1
    assert (await orders.get(order.id)).status == OrderStatus.COMPLETED


@pytest.mark.integration
async def test_oversell_rolls_back(account):
    orders = PostgresOrderRepository()
    order = make_order(account, OrderSide.SELL, "2", OrderStatus.PENDING)
    await orders.save(order)

    with pytest.raises(InsufficientBalanceError):
        await PostgresSettlementRepository().settle(order, LedgerEntry.for_order(order), utc_now())

    assert (await orders.get(order.id)).status == OrderStatus.PENDING
    assert (await PostgresUserRepository().get_balance(account.id)).gold_balance == Decimal("1")
    assert await PostgresLedgerRepository().count_by_user(account.id) == 0
