"""Order and settlement engine for Metal Vault.

Buys:  pending -> payment_pending -> completed | failed | cancelled
Sells: pending -> completed

The price per unit is locked from the effective price when the order is
created. Settlement never re-reads the price.

complete_buy is reached from two independent triggers (client verify
and provider webhook) that can race. Correctness comes from the early
completed check plus the compare-and-set inside the settlement
transaction, not from a lock.
"""

from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal
from typing import TYPE_CHECKING, Callable
from uuid import UUID, uuid4

from src.domain.errors import (
    InsufficientBalanceError,
    InvalidOrderError,
    OrderNotFoundError,
    OrderStateError,
    PaymentGatewayError,
    PaymentNotCompletedError,
    UserNotFoundError,
)
from src.domain.interfaces.payment_gateway import PaymentGateway
from src.domain.interfaces.repositories import (
    OrderRepository,
    SettlementRepository,
    UserRepository,
)
from src.domain.models.enums import MetalType, OrderSide, OrderStatus, PaymentStatus
from src.domain.models.ledger import LedgerEntry
from src.domain.models.order import BuyOrderResult, Order, PaymentCustomer
from src.domain.rules import AMOUNT_QUANTUM, QUANTITY_QUANTUM
from src.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from src.application.workflows.price_engine import PriceAcquisitionEngine

logger = get_logger(__name__)

# Payment outcomes that end a buy without settlement
_TERMINAL_PAYMENT_STATUS: dict[PaymentStatus, OrderStatus] = {
    PaymentStatus.EXPIRED: OrderStatus.FAILED,
    PaymentStatus.FAILED: OrderStatus.FAILED,
    PaymentStatus.CANCELLED: OrderStatus.CANCELLED,
}


class OrderSettlementEngine:
    """Prices trades, drives payment confirmation and settles exactly once."""

    def __init__(
        self,
        price_engines: dict[MetalType, "PriceAcquisitionEngine"],
        order_repo: OrderRepository,
        user_repo: UserRepository,
        settlement_repo: SettlementRepository,
        payment_gateway: PaymentGateway,
        currency: str = "INR",
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the settlement engine.

        Args:
            price_engines: One price engine per metal
            order_repo: Order persistence
            user_repo: User aggregate (balances)
            settlement_repo: Atomic settlement
            payment_gateway: External payment provider
            currency: Order currency
            clock: Time source (injectable for tests)
        """
        self._engines = price_engines
        self._orders = order_repo
        self._users = user_repo
        self._settlement = settlement_repo
        self._gateway = payment_gateway
        self._currency = currency
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _engine(self, metal: MetalType) -> "PriceAcquisitionEngine":
        engine = self._engines.get(metal)
        if engine is None:
            raise InvalidOrderError(f"{metal.value} is not tradable")
        return engine

    # ==========================================================================
    # Buy
    # ==========================================================================

    async def initiate_buy(
        self, user_id: UUID, amount: Decimal, metal: MetalType
    ) -> BuyOrderResult:
        """Open a buy for a currency amount.

        Locks the current buy price, opens a payment order for the amount
        and persists the order as payment_pending.

        Returns:
            BuyOrderResult with the order and the checkout session.

        Raises:
            InvalidOrderError: Non-positive amount or amount below one unit
            UserNotFoundError: Unknown user
            PaymentGatewayError: Provider rejected the payment order
        """
        if amount <= 0:
            raise InvalidOrderError("amount must be positive")
        amount = amount.quantize(AMOUNT_QUANTUM, rounding=ROUND_DOWN)

        user = await self._users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)

        price = await self._engine(metal).get_effective_price()
        quantity = (amount / price.buy_price).quantize(QUANTITY_QUANTUM, rounding=ROUND_DOWN)
        if quantity <= 0:
            raise InvalidOrderError(
                f"amount {amount} buys less than {QUANTITY_QUANTUM}g at {price.buy_price}/g"
            )

        order_id = uuid4()
        session = await self._gateway.create_order(
            order_id=f"mv_{order_id.hex}",
            amount=amount,
            currency=self._currency,
            customer=PaymentCustomer(
                customer_id=str(user_id),
                name=user.name or None,
                email=user.email,
                phone=user.phone,
            ),
        )

        order = Order(
            id=order_id,
            user_id=user_id,
            side=OrderSide.BUY,
            metal_type=metal,
            amount=amount,
            quantity=quantity,
            price_per_unit=price.buy_price,
            currency=self._currency,
            status=OrderStatus.PAYMENT_PENDING,
            provider_order_ref=session.order_ref,
            created_at=self._clock(),
        )
        await self._orders.save(order)

        logger.info(
            f"Buy order {order.id} opened: {quantity}g {metal.value} for "
            f"{amount} {self._currency} at {price.buy_price}/g ({price.source.value})"
        )
        return BuyOrderResult(order=order, session=session)

    async def complete_buy(self, provider_order_ref: str) -> Order:
        """Settle a paid buy. Idempotent.

        Returns:
            The completed order. An already completed order is returned
            unchanged without side effects.

        Raises:
            OrderNotFoundError: No order with this reference
            OrderStateError: Order already failed/cancelled, or not a buy
            PaymentNotCompletedError: Provider does not report it paid
        """
        order = await self._orders.get_by_provider_ref(provider_order_ref)
        if order is None:
            raise OrderNotFoundError(provider_order_ref)

        if order.is_completed:
            logger.info(f"Order {order.id} already completed, duplicate settlement ignored")
            return order
        if not order.is_buy or order.is_terminal:
            raise OrderStateError(order.id, order.status)

        try:
            payment = await self._gateway.fetch_order_status(provider_order_ref)
        except PaymentGatewayError as e:
            logger.warning(f"Payment status fetch failed for {provider_order_ref}: {e}")
            raise PaymentNotCompletedError(provider_order_ref, "unknown") from e

        if not payment.is_paid:
            terminal = _TERMINAL_PAYMENT_STATUS.get(payment.status)
            if terminal is not None:
                moved = await self._orders.update_status(
                    order.id, terminal, expected=order.status
                )
                if moved:
                    logger.info(f"Order {order.id} {terminal.value}: payment {payment.status.value}")
            logger.info(
                f"Payment not completed for order {order.id} (status: {payment.status.value})"
            )
            raise PaymentNotCompletedError(provider_order_ref, payment.status.value)

        return await self._settle(order, payment.payment_ref)

    async def verify_order(self, user_id: UUID, order_id: UUID) -> Order:
        """Client-triggered verification of the user's own buy."""
        order = await self.get_order_by_id(user_id, order_id)
        if order.is_completed:
            return order
        if order.provider_order_ref is None:
            raise OrderStateError(order.id, order.status)
        return await self.complete_buy(order.provider_order_ref)

    # ==========================================================================
    # Sell
    # ==========================================================================

    async def initiate_sell(
        self, user_id: UUID, quantity: Decimal, metal: MetalType
    ) -> Order:
        """Sell grams of metal and settle immediately against the wallet.

        Raises:
            InvalidOrderError: Non-positive quantity
            UserNotFoundError: Unknown user
            InsufficientBalanceError: Quantity exceeds the holding. No order
                is created.
        """
        if quantity <= 0:
            raise InvalidOrderError("quantity must be positive")
        quantity = quantity.quantize(QUANTITY_QUANTUM, rounding=ROUND_DOWN)
        if quantity <= 0:
            raise InvalidOrderError(f"quantity must be at least {QUANTITY_QUANTUM}g")

        balance = await self._users.get_balance(user_id)
        if balance is None:
            raise UserNotFoundError(user_id)

        available = balance.metal_balance(metal)
        if quantity > available:
            raise InsufficientBalanceError(metal, quantity, available)

        price = await self._engine(metal).get_effective_price()
        amount = (quantity * price.sell_price).quantize(AMOUNT_QUANTUM, rounding=ROUND_DOWN)
        if amount <= 0:
            raise InvalidOrderError(f"{quantity}g is worth less than {AMOUNT_QUANTUM}")

        order = Order(
            user_id=user_id,
            side=OrderSide.SELL,
            metal_type=metal,
            amount=amount,
            quantity=quantity,
            price_per_unit=price.sell_price,
            currency=self._currency,
            status=OrderStatus.PENDING,
            created_at=self._clock(),
        )
        await self._orders.save(order)

        try:
            return await self._settle(order)
        except InsufficientBalanceError:
            # Balance moved between the check and settlement
            await self._orders.update_status(order.id, OrderStatus.FAILED, expected=order.status)
            raise

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_user_orders(self, user_id: UUID, limit: int = 50) -> list[Order]:
        """Get a user's orders, newest first."""
        return await self._orders.list_by_user(user_id, limit=limit)

    async def get_order_by_id(self, user_id: UUID, order_id: UUID) -> Order:
        """Get one of the user's orders.

        Raises:
            OrderNotFoundError: Missing or owned by another user
        """
        order = await self._orders.get(order_id)
        if order is None or order.user_id != user_id:
            raise OrderNotFoundError(order_id)
        return order

    # ==========================================================================
    # Settlement
    # ==========================================================================

    async def _settle(self, order: Order, payment_ref: str | None = None) -> Order:
        completed_at = self._clock()
        entry = LedgerEntry.for_order(order, created_at=completed_at)

        settled = await self._settlement.settle(
            order, entry, completed_at, provider_payment_ref=payment_ref
        )

        if settled:
            logger.info(
                f"Settled {order.side.value} order {order.id}: {order.quantity}g "
                f"{order.metal_type.value} for {order.amount} {order.currency}"
            )
            return order.model_copy(
                update={
                    "status": OrderStatus.COMPLETED,
                    "completed_at": completed_at,
                    "provider_payment_ref": payment_ref or order.provider_payment_ref,
                }
            )

        # Lost the race: someone else moved the order
        current = await self._orders.get(order.id)
        if current is not None and current.is_completed:
            logger.info(f"Order {order.id} settled concurrently, duplicate settlement ignored")
            return current
        raise OrderStateError(order.id, current.status if current else order.status)
