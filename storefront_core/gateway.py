"""
gateway.py — Payment Gateway Client (REST API)

Client for the payment provider's order-management API. Funds are authorized at
checkout and later captured, cancelled or refunded by the fulfillment state machine.

Every call has an explicit timeout. Outcomes are reported as GatewayResult:
    • HTTP error status (e.g. 402/403 declined)  → ok=False, status set
    • Timeout                                    → ok=False, status unknown
    • Connection failure or unexpected response  → the httpx exception propagates

When no credentials are configured the client runs in mock mode: no network I/O,
every call returns ok=True, mocked=True.
"""

import logging
import uuid
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from .config import (
    PAYMENT_GATEWAY_PASSWORD, PAYMENT_GATEWAY_READ_TIMEOUT, PAYMENT_GATEWAY_TIMEOUT,
    PAYMENT_GATEWAY_URL, PAYMENT_GATEWAY_USERNAME,
)

log = logging.getLogger(__name__)


class GatewayResult(BaseModel):
    ok: bool
    mocked: bool = False
    status: Optional[int] = None
    data: Any = None
    error: Optional[str] = None


class PaymentGatewayClient:
    """
    Client for the payment gateway.
    Handles authorization, capture, cancellation and refunds of gateway orders.
    """

    def __init__(
            self,
            base_url: str = PAYMENT_GATEWAY_URL,
            username: Optional[str] = PAYMENT_GATEWAY_USERNAME,
            password: Optional[str] = PAYMENT_GATEWAY_PASSWORD,
            timeout: float = PAYMENT_GATEWAY_TIMEOUT,
            read_timeout: float = PAYMENT_GATEWAY_READ_TIMEOUT,
            http_client: Optional[httpx.Client] = None,
    ):
        """
        Initializes the HTTP client with proper timeout configuration.

        Args:
            base_url (str): Gateway API origin.
            username (str | None): API username. Mock mode when username or password is missing.
            password (str | None): API password.
            timeout (float): Connect/write/pool timeout in seconds.
            read_timeout (float): Read timeout in seconds.
            http_client (httpx.Client | None): Pre-built client (e.g. a test client). Not closed by close().
        """
        self.configured = bool(username and password)
        self._owns_client = http_client is None
        if http_client is None:
            timeout_config = httpx.Timeout(timeout, read=read_timeout)
            auth = httpx.BasicAuth(username, password) if self.configured else None
            http_client = httpx.Client(base_url=base_url, timeout=timeout_config, auth=auth)
        elif self.configured:
            http_client.auth = httpx.BasicAuth(username, password)
        self.client = http_client

    def close(self):
        """Closes the HTTP client session if this instance created it."""
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _request(self, reference: str, path: str, payload: Optional[dict], mock_data: dict) -> GatewayResult:
        if not self.configured:
            log.warning(f"[Gateway: {reference}] Mock-Modus aktiv (keine Zugangsdaten). Pfad: {path}")
            return GatewayResult(ok=True, mocked=True, status=200, data=mock_data)

        headers = {"Idempotency-Key": str(uuid.uuid4())}
        try:
            response = self.client.post(path, json=payload, headers=headers)
            response.raise_for_status()  # Löst HTTPStatusError bei 4xx/5xx aus
        except httpx.TimeoutException:
            log.error(f"[Gateway: {reference}] Timeout bei {path}. Status beim Gateway unbekannt.")
            return GatewayResult(ok=False, error="Payment gateway timeout")
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (402, 403):
                log.warning(f"[Gateway: {reference}] Abgelehnt ({status}): {e.response.text}")
            else:
                log.error(f"[Gateway: {reference}] HTTP-Fehler bei {path}: {e}")
            return GatewayResult(
                ok=False, status=status, data=_body(e.response), error=f"Payment gateway error ({status})"
            )

        return GatewayResult(ok=True, status=response.status_code, data=_body(response))

    def authorize(self, authorization_token: str, amount: int, currency: str, order_lines: list) -> GatewayResult:
        """
        Turns a customer's authorization token into a gateway order.

        Returns:
            GatewayResult: data["order_id"] is the gateway reference to store on the order.

        Raises:
            ValueError: If a successful response carries no order id.
        """
        payload = {
            "purchase_currency": currency,
            "order_amount": amount,
            "order_lines": order_lines,
        }
        result = self._request(
            authorization_token,
            f"/payments/v1/authorizations/{authorization_token}/order",
            payload,
            {"order_id": f"mock-order-{uuid.uuid4().hex[:12]}", "fraud_status": "ACCEPTED"},
        )
        if result.ok and not (isinstance(result.data, dict) and result.data.get("order_id")):
            log.error(f"[Gateway: {authorization_token}] Unerwartete Antwort ohne order_id: {result.data!r}")
            raise ValueError("Unexpected authorization response from payment gateway")
        return result

    def capture(self, reference: str, amount: int) -> GatewayResult:
        return self._request(
            reference,
            f"/ordermanagement/v1/orders/{reference}/captures",
            {"captured_amount": amount},
            {"capture_id": f"mock-capture-{uuid.uuid4().hex[:12]}"},
        )

    def cancel(self, reference: str) -> GatewayResult:
        return self._request(
            reference,
            f"/ordermanagement/v1/orders/{reference}/cancel",
            None,
            {"cancelled": True},
        )

    def refund(self, reference: str, amount: int) -> GatewayResult:
        return self._request(
            reference,
            f"/ordermanagement/v1/orders/{reference}/refunds",
            {"refunded_amount": amount},
            {"refund_id": f"mock-refund-{uuid.uuid4().hex[:12]}"},
        )


def _body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
