"""Tests for the payment webhook handler."""

import json
from decimal import Decimal

import pytest

from src.adapters.payments.paper_gateway import PaperPaymentGateway
from src.application.commands.handle_payment_webhook import PaymentWebhookHandler
from src.application.workflows.order_settlement import OrderSettlementEngine
from src.domain.errors import InvalidWebhookSignatureError, PaymentGatewayError
from src.domain.models.enums import MetalType, OrderStatus


@pytest.fixture
def gateway() -> PaperPaymentGateway:
    return PaperPaymentGateway(secret="hook-secret")


@pytest.fixture
async def settlement(engines, order_repo, user_repo, settlement_repo, gateway, clock):
    await engines[MetalType.GOLD].update_price()
    return OrderSettlementEngine(
        engines, order_repo, user_repo, settlement_repo, gateway, clock=clock
    )


@pytest.fixture
def handler(gateway, settlement) -> PaymentWebhookHandler:
    return PaymentWebhookHandler(gateway, settlement)


def signed(gateway: PaperPaymentGateway, payload: dict, timestamp: str = "1717400000"):
    body = json.dumps(payload).encode()
    return body, timestamp, gateway.sign_webhook(body, timestamp)


class TestPaymentWebhookHandler:
    """Tests for webhook dispatch."""

    async def test_paid_webhook_settles(self, handler, settlement, gateway, user, ledger_repo):
        opened = await settlement.initiate_buy(user.id, Decimal("1000"), MetalType.GOLD)
        ref = opened.order.provider_order_ref
        gateway.mark_paid(ref)

        result = await handler.handle(*signed(gateway, {"order_ref": ref, "status": "PAID"}))

        assert result.acknowledged
        assert result.settled
        assert result.detail == "settled"
        assert len(ledger_repo.entries) == 1

    async def test_redelivery_is_idempotent(self, handler, settlement, gateway, user, ledger_repo):
        opened = await settlement.initiate_buy(user.id, Decimal("1000"), MetalType.GOLD)
        ref = opened.order.provider_order_ref
        gateway.mark_paid(ref)
        delivery = signed(gateway, {"order_ref": ref, "status": "PAID"})

        await handler.handle(*delivery)
        await settlement.verify_order(user.id, opened.order.id)
        second = await handler.handle(*delivery)

        assert second.settled
        assert len(ledger_repo.entries) == 1

    async def test_forged_signature_rejected(self, handler, gateway, ledger_repo):
        body, timestamp, _ = signed(gateway, {"order_ref": "mv_x", "status": "PAID"})

        with pytest.raises(InvalidWebhookSignatureError):
            await handler.handle(body, timestamp, "forged")
        assert ledger_repo.entries == []

    async def test_unpaid_status_acknowledged(self, handler, settlement, gateway, user, order_repo):
        opened = await settlement.initiate_buy(user.id, Decimal("1000"), MetalType.GOLD)
        ref = opened.order.provider_order_ref

        result = await handler.handle(*signed(gateway, {"order_ref": ref, "status": "FAILED"}))

        assert result.acknowledged
        assert not result.settled
        assert result.detail == "payment failed"
        assert (await order_repo.get(opened.order.id)).status == OrderStatus.PAYMENT_PENDING

    async def test_paid_claim_not_confirmed_by_provider(self, handler, settlement, gateway, user):
        """The webhook says paid but the provider's order status disagrees."""
        opened = await settlement.initiate_buy(user.id, Decimal("1000"), MetalType.GOLD)
        ref = opened.order.provider_order_ref

        result = await handler.handle(*signed(gateway, {"order_ref": ref, "status": "PAID"}))

        assert result.acknowledged
        assert not result.settled
        assert result.detail == "payment active"

    async def test_unknown_order_acknowledged(self, handler, gateway):
        result = await handler.handle(*signed(gateway, {"order_ref": "mv_missing", "status": "PAID"}))

        assert result.acknowledged
        assert result.detail == "unknown order"

    async def test_malformed_body(self, handler, gateway):
        body = b"not json"
        timestamp = "1"
        with pytest.raises(PaymentGatewayError):
            await handler.handle(body, timestamp, gateway.sign_webhook(body, timestamp))
