"""Tests for the Cashfree and paper payment gateways."""

import base64
import hashlib
import hmac
import json
from decimal import Decimal

import httpx
import pytest

from src.adapters.payments.cashfree_gateway import CashfreeGateway
from src.adapters.payments.paper_gateway import PaperPaymentGateway
from src.domain.errors import PaymentGatewayError
from src.domain.models.enums import PaymentStatus
from src.domain.models.order import PaymentCustomer

CUSTOMER = PaymentCustomer(customer_id="user-1", name="Asha", email="asha@example.com")


def sign(secret: str, timestamp: str, body: bytes) -> str:
    digest = hmac.new(secret.encode(), timestamp.encode() + body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def make_cashfree(handler, **kwargs) -> CashfreeGateway:
    return CashfreeGateway(
        "app-id",
        "secret-key",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        **kwargs,
    )


class TestCashfreeGateway:
    """Tests for the Cashfree PG adapter."""

    def test_requires_credentials(self):
        with pytest.raises(ValueError):
            CashfreeGateway("", "")

    def test_environment_urls(self):
        gateway = CashfreeGateway("id", "secret", environment="production")
        assert gateway.base_url == "https://api.cashfree.com/pg"

    async def test_create_order(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "order_id": "mv_abc",
                    "payment_session_id": "session_xyz",
                    "order_status": "ACTIVE",
                    "order_expiry_time": "2024-06-04T10:00:00+05:30",
                },
            )

        gateway = make_cashfree(handler, return_url="https://app.example/return?o={order_id}")
        session = await gateway.create_order("mv_abc", Decimal("1000.00"), "INR", CUSTOMER)

        assert session.order_ref == "mv_abc"
        assert session.session_token == "session_xyz"
        assert session.expires_at is not None

        request = seen[0]
        body = json.loads(request.content)
        assert request.method == "POST"
        assert request.url.path == "/pg/orders"
        assert request.headers["x-client-id"] == "app-id"
        assert request.headers["x-api-version"] == "2023-08-01"
        assert body["order_amount"] == 1000.0
        assert body["customer_details"]["customer_id"] == "user-1"
        assert body["order_meta"]["return_url"] == "https://app.example/return?o=mv_abc"

    async def test_create_order_error(self):
        def handler(request):
            return httpx.Response(400, json={"message": "order_amount is invalid"})

        gateway = make_cashfree(handler)
        with pytest.raises(PaymentGatewayError, match="order_amount is invalid") as exc:
            await gateway.create_order("mv_x", Decimal("1"), "INR", CUSTOMER)
        assert exc.value.status_code == 400

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("PAID", PaymentStatus.PAID),
            ("ACTIVE", PaymentStatus.ACTIVE),
            ("EXPIRED", PaymentStatus.EXPIRED),
            ("TERMINATED", PaymentStatus.CANCELLED),
            ("SOMETHING_NEW", PaymentStatus.ACTIVE),
        ],
    )
    async def test_fetch_order_status(self, raw, expected):
        def handler(request):
            assert request.url.path == "/pg/orders/mv_abc"
            return httpx.Response(200, json={"order_status": raw, "cf_order_id": 12345})

        result = await make_cashfree(handler).fetch_order_status("mv_abc")

        assert result.status == expected
        assert result.payment_ref == "12345"
        assert result.raw_status == raw

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(PaymentGatewayError, match="request failed"):
            await make_cashfree(handler).fetch_order_status("mv_abc")

    def test_verify_webhook(self):
        gateway = CashfreeGateway("id", "secret-key")
        body = b'{"data": {}}'

        assert gateway.verify_webhook(body, "1717400000", sign("secret-key", "1717400000", body))
        assert not gateway.verify_webhook(body, "1717400000", sign("other", "1717400000", body))
        assert not gateway.verify_webhook(body, "", "")

    def test_parse_webhook(self):
        gateway = CashfreeGateway("id", "secret")
        payload = {
            "type": "PAYMENT_SUCCESS_WEBHOOK",
            "data": {
                "order": {"order_id": "mv_abc", "order_amount": 1000},
                "payment": {"cf_payment_id": 987, "payment_status": "SUCCESS"},
            },
        }
        result = gateway.parse_webhook(payload)

        assert result.order_ref == "mv_abc"
        assert result.is_paid
        assert result.payment_ref == "987"

    def test_parse_malformed_webhook(self):
        with pytest.raises(PaymentGatewayError):
            CashfreeGateway("id", "secret").parse_webhook({"type": "PING"})


class TestPaperPaymentGateway:
    """Tests for the simulated gateway."""

    async def test_lifecycle(self):
        gateway = PaperPaymentGateway()
        session = await gateway.create_order("mv_1", Decimal("500"), "INR", CUSTOMER)

        assert (await gateway.fetch_order_status("mv_1")).status == PaymentStatus.ACTIVE

        gateway.mark_paid(session.order_ref)
        result = await gateway.fetch_order_status("mv_1")
        assert result.is_paid
        assert result.payment_ref.startswith("pay_")

    async def test_auto_pay(self):
        gateway = PaperPaymentGateway(auto_pay=True)
        await gateway.create_order("mv_2", Decimal("500"), "INR", CUSTOMER)
        assert (await gateway.fetch_order_status("mv_2")).is_paid

    async def test_rejects_duplicate_and_non_positive(self):
        gateway = PaperPaymentGateway()
        await gateway.create_order("mv_3", Decimal("500"), "INR", CUSTOMER)

        with pytest.raises(PaymentGatewayError):
            await gateway.create_order("mv_3", Decimal("500"), "INR", CUSTOMER)
        with pytest.raises(PaymentGatewayError):
            await gateway.create_order("mv_4", Decimal("0"), "INR", CUSTOMER)

    async def test_unknown_order(self):
        with pytest.raises(PaymentGatewayError):
            await PaperPaymentGateway().fetch_order_status("missing")

    def test_webhook_round_trip(self):
        gateway = PaperPaymentGateway(secret="s3cret")
        body = json.dumps({"order_ref": "mv_1", "status": "PAID"}).encode()
        signature = gateway.sign_webhook(body, "123")

        assert gateway.verify_webhook(body, "123", signature)
        assert not gateway.verify_webhook(body, "124", signature)
        assert gateway.parse_webhook(json.loads(body)).status == PaymentStatus.PAID
