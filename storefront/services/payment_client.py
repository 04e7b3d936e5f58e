# storefront/services/payment_client.py
from decimal import Decimal

import requests

from storefront.utils.retry import http_retry
from storefront.utils.settings import PAYMENT_GATEWAY_URL, PAYMENT_GATEWAY_TIMEOUT
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).to_integral_value())


class PaymentGatewayClient:
    """HTTP client for the third-party payment gateway (payment intents)."""

    def __init__(self, base_url: str | None = None, timeout: int | None = None):
        self.base_url = (base_url or PAYMENT_GATEWAY_URL).rstrip("/")
        self.timeout = timeout or PAYMENT_GATEWAY_TIMEOUT

    @http_retry()
    def create_payment_intent(self, amount: Decimal, currency: str, order_id: int) -> dict:
        """Returns the gateway's intent: {"id", "client_secret", "status", ...}."""
        url = f"{self.base_url}/payment_intents"
        logger.info(f"PaymentGatewayClient POST {url} order={order_id} amount={amount} {currency}")

        resp = requests.post(
            url,
            json={
                "amount": to_minor_units(amount),
                "currency": currency,
                "metadata": {"order_id": str(order_id)},
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()
