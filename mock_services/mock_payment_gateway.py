"""
mock_payment_gateway.py — Mock Implementation of the Payment Gateway (REST API)

This module provides a simulated payment gateway for local development and tests.
It exposes a FastAPI application that mimics the order-management API used by the
fulfillment state machine.

Simulation Scenarios (selected by the gateway order reference / authorization token):
    • Any other reference     → success
    • Starts with "decline_"  → request rejected (HTTP 403)
    • Starts with "timeout_"  → simulated slow response (client read timeout)
    • Starts with "broken_"   → HTTP 200 with a non-JSON body

Endpoints:
    POST /payments/v1/authorizations/{token}/order
    POST /ordermanagement/v1/orders/{reference}/captures
    POST /ordermanagement/v1/orders/{reference}/cancel
    POST /ordermanagement/v1/orders/{reference}/refunds

Port:
    Default: 8001 (HTTP)
"""

import logging
import time
import uuid
from typing import Dict, Optional

from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

app = FastAPI(title="Mock Payment Gateway")
logging.basicConfig(level=logging.INFO)

# Gateway-side view of each order: {"status": ..., "captured": int, "refunded": int}
ORDERS: Dict[str, dict] = {}


class AuthorizationOrderRequest(BaseModel):
    purchase_currency: str
    order_amount: int
    order_lines: list = []


class CaptureRequest(BaseModel):
    captured_amount: int


class RefundRequest(BaseModel):
    refunded_amount: int


def _simulate(reference: str):
    """Applies the scenario encoded in the reference prefix."""
    if reference.startswith("decline_"):
        logging.warning(f"[GW] Anfrage für {reference} abgelehnt.")
        raise HTTPException(
            status_code=403,
            detail={"error_code": "NOT_ALLOWED", "error_messages": ["Operation declined."]}
        )
    if reference.startswith("timeout_"):
        logging.info(f"[GW] Simuliere Timeout für {reference}...")
        time.sleep(10)
        logging.error(f"[GW] Timeout-Anfrage {reference} abgeschlossen (zu spät).")
    if reference.startswith("broken_"):
        return PlainTextResponse("<html>upstream error</html>")
    return None


def _order(reference: str) -> dict:
    return ORDERS.setdefault(reference, {"status": "AUTHORIZED", "amount": None, "captured": 0, "refunded": 0})


@app.post("/payments/v1/authorizations/{token}/order")
def create_order(token: str, request: AuthorizationOrderRequest,
                 idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key")):
    logging.info(f"[GW] Autorisierung {token} → Order ({request.order_amount} {request.purchase_currency}, "
                 f"Idempotenz: {idempotency_key})")
    broken = _simulate(token)
    if broken:
        return broken
    order_id = f"gw_{uuid.uuid4().hex[:16]}"
    ORDERS[order_id] = {"status": "AUTHORIZED", "amount": request.order_amount, "captured": 0, "refunded": 0}
    return {"order_id": order_id, "fraud_status": "ACCEPTED"}


@app.post("/ordermanagement/v1/orders/{reference}/captures", status_code=201)
def capture(reference: str, request: CaptureRequest,
            idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key")):
    logging.info(f"[GW] Capture {request.captured_amount} für {reference} (Idempotenz: {idempotency_key})")
    broken = _simulate(reference)
    if broken:
        return broken
    order = _order(reference)
    if order["status"] != "AUTHORIZED":
        raise HTTPException(status_code=403, detail={"error_code": "CAPTURE_NOT_ALLOWED"})
    if order["amount"] is not None and request.captured_amount > order["amount"]:
        raise HTTPException(status_code=403, detail={"error_code": "CAPTURE_NOT_ALLOWED"})
    order["status"] = "CAPTURED"
    order["captured"] = request.captured_amount
    return {"capture_id": f"cap_{uuid.uuid4().hex[:12]}"}


@app.post("/ordermanagement/v1/orders/{reference}/cancel", status_code=204)
def cancel(reference: str):
    logging.info(f"[GW] Cancel für {reference}")
    broken = _simulate(reference)
    if broken:
        return broken
    order = _order(reference)
    if order["status"] != "AUTHORIZED":
        raise HTTPException(status_code=403, detail={"error_code": "CANCEL_NOT_ALLOWED"})
    order["status"] = "CANCELLED"
    return None


@app.post("/ordermanagement/v1/orders/{reference}/refunds", status_code=201)
def refund(reference: str, request: RefundRequest):
    logging.info(f"[GW] Refund {request.refunded_amount} für {reference}")
    broken = _simulate(reference)
    if broken:
        return broken
    order = _order(reference)
    if order["status"] != "CAPTURED" or order["refunded"] + request.refunded_amount > order["captured"]:
        raise HTTPException(status_code=403, detail={"error_code": "REFUND_NOT_ALLOWED"})
    order["refunded"] += request.refunded_amount
    if order["refunded"] == order["captured"]:
        order["status"] = "REFUNDED"
    return {"refund_id": f"ref_{uuid.uuid4().hex[:12]}"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8001)
