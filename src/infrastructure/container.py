"""Composition root for Metal Vault.

Builds every long-lived component once per process from Settings. One
price engine per metal is created here and shared by the scheduler,
the settlement engine and the queries.
"""

from dataclasses import dataclass

import httpx

from src.adapters.notifiers.expo_push import ExpoPushNotifier
from src.adapters.payments.cashfree_gateway import CashfreeGateway
from src.adapters.payments.paper_gateway import PaperPaymentGateway
from src.adapters.price_providers import (
    CachedFxRate,
    CompositePriceProvider,
    ExchangeRateApiProvider,
    GoldApiProvider,
    GoldPriceOrgProvider,
    MetalsDevProvider,
    MetalsLiveProvider,
)
from src.adapters.repositories.alert_repository import PostgresPriceAlertRepository
from src.adapters.repositories.ledger_repository import PostgresLedgerRepository
from src.adapters.repositories.order_repository import PostgresOrderRepository
from src.adapters.repositories.price_repository import PostgresPriceRepository
from src.adapters.repositories.settlement_repository import PostgresSettlementRepository
from src.adapters.repositories.user_repository import PostgresUserRepository
from src.application.commands.evaluate_alerts import AlertEvaluator
from src.application.commands.handle_payment_webhook import PaymentWebhookHandler
from src.application.commands.manage_alerts import AlertManager
from src.application.queries.price_history import PriceQueryService
from src.application.queries.wallet_summary import WalletQueryService
from src.application.workflows.order_settlement import OrderSettlementEngine
from src.application.workflows.price_engine import PriceAcquisitionEngine
from src.application.workflows.price_scheduler import MarketHours, PriceScheduler
from src.domain.interfaces.payment_gateway import PaymentGateway
from src.domain.models.enums import MetalType
from src.infrastructure.config import Settings, get_settings
from src.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Container:
    """Wired application components."""

    settings: Settings
    http_client: httpx.AsyncClient
    fx_rate: CachedFxRate
    price_engines: dict[MetalType, PriceAcquisitionEngine]
    payment_gateway: PaymentGateway
    settlement: OrderSettlementEngine
    alert_evaluator: AlertEvaluator
    alerts: AlertManager
    webhooks: PaymentWebhookHandler
    prices: PriceQueryService
    wallet: WalletQueryService
    scheduler: PriceScheduler

    async def aclose(self) -> None:
        """Release the shared HTTP client."""
        await self.http_client.aclose()


def build_price_provider(
    settings: Settings, client: httpx.AsyncClient
) -> CompositePriceProvider:
    """Provider chain in priority order."""
    timeout = settings.http_timeout_seconds
    providers = [
        GoldApiProvider(settings.gold_api_key, client=client, timeout=timeout),
        MetalsDevProvider(settings.metals_dev_api_key, client=client, timeout=timeout),
        MetalsLiveProvider(client=client, timeout=timeout),
        GoldPriceOrgProvider(client=client, timeout=timeout),
    ]
    return CompositePriceProvider(providers, timeout=timeout)


def build_payment_gateway(settings: Settings, client: httpx.AsyncClient) -> PaymentGateway:
    """Cashfree when configured, otherwise the in-memory paper gateway."""
    if settings.payment_gateway.lower() == "cashfree":
        return CashfreeGateway(
            client_id=settings.cashfree_client_id,
            client_secret=settings.cashfree_client_secret,
            environment=settings.cashfree_environment,
            api_version=settings.cashfree_api_version,
            return_url=settings.cashfree_return_url,
            client=client,
            timeout=settings.http_timeout_seconds,
        )

    logger.warning("Using paper payment gateway, no real payments will be taken")
    return PaperPaymentGateway()


def build_container(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Container:
    """Build the component graph.

    Args:
        settings: Settings (defaults to the cached environment settings)
        http_client: Shared client for all outbound HTTP

    Returns:
        Container with every component wired
    """
    settings = settings or get_settings()
    client = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    price_repo = PostgresPriceRepository()
    user_repo = PostgresUserRepository()
    order_repo = PostgresOrderRepository()
    ledger_repo = PostgresLedgerRepository()
    settlement_repo = PostgresSettlementRepository()
    alert_repo = PostgresPriceAlertRepository()

    provider = build_price_provider(settings, client)
    fx_rate = CachedFxRate(
        ExchangeRateApiProvider(client=client, timeout=settings.http_timeout_seconds),
        base=settings.fx_base,
        quote=settings.fx_quote,
        default_rate=settings.fx_default_rate,
        refresh_interval=settings.fx_refresh_interval,
        timeout=settings.http_timeout_seconds,
    )

    engines = {
        metal: PriceAcquisitionEngine(
            metal,
            price_repo,
            provider,
            fx_rate,
            spread=settings.market_spread,
            api_interval=settings.price_api_interval,
            retention=settings.price_retention,
            currency=settings.price_currency,
        )
        for metal in MetalType
    }

    gateway = build_payment_gateway(settings, client)
    settlement = OrderSettlementEngine(
        engines,
        order_repo,
        user_repo,
        settlement_repo,
        gateway,
        currency=settings.price_currency,
    )

    notifier = ExpoPushNotifier(
        user_repo,
        access_token=settings.expo_access_token,
        client=client,
        timeout=settings.http_timeout_seconds,
    )
    evaluator = AlertEvaluator(
        alert_repo,
        notifier,
        cooldown=settings.alert_cooldown,
        currency=settings.price_currency,
    )

    scheduler = PriceScheduler(
        engines.values(),
        alert_evaluator=evaluator,
        market_hours=MarketHours(
            open=settings.market_open,
            close=settings.market_close,
            weekdays=settings.market_weekdays,
            timezone=settings.market_timezone,
        ),
        tick_interval_seconds=settings.scheduler_tick_seconds,
    )

    return Container(
        settings=settings,
        http_client=client,
        fx_rate=fx_rate,
        price_engines=engines,
        payment_gateway=gateway,
        settlement=settlement,
        alert_evaluator=evaluator,
        alerts=AlertManager(alert_repo, user_repo, engines),
        webhooks=PaymentWebhookHandler(gateway, settlement),
        prices=PriceQueryService(price_repo, engines),
        wallet=WalletQueryService(
            user_repo, order_repo, ledger_repo, engines, currency=settings.price_currency
        ),
        scheduler=scheduler,
    )
