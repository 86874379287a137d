"""
main.py — FastAPI Entry Point for the Storefront Core

This module exposes the checkout pricing engine, order placement, the fulfillment
state machine and the activation policy over HTTP.

Responsibilities:
    • Price carts (POST /v1/checkout)
    • Place authorized orders (POST /v1/orders)
    • Run fulfillment transitions (POST /v1/orders/{orderId}/transitions/{transition})
    • Evaluate variant activation / product publishing
    • Provide system health information

Transition endpoints are plain (sync) handlers executed in the worker thread pool: once a
gateway call has started, the transition runs to completion and records its outcome even
if the HTTP client disconnects.
"""

from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, StrictInt

from .activation import can_activate_variant, can_publish_product, check_variant_activation, get_activation_status
from .catalog import InMemoryCatalog
from .config import DEFAULT_TAX_RATE_BP, SITE_URL
from .errors import CheckoutError, InvalidInputError
from .fulfillment import OrderFulfillmentService, Transition
from .gateway import PaymentGatewayClient
from .logging_config import get_logger, setup_logging
from .models import CheckoutRequest, Product, Quote, TransitionResult, Variant
from .orders import place_order
from .pricing import price_cart
from .status_mapping import admin_order_view, public_order_view
from .store import InMemoryOrderStore

# Initialization
# Configure logging and initialize FastAPI app
setup_logging()
log = get_logger(__name__)
app = FastAPI(title="Storefront Checkout & Fulfillment")

# Default collaborators; replaced through app.dependency_overrides in tests
_catalog = InMemoryCatalog()
_order_store = InMemoryOrderStore()
_gateway = PaymentGatewayClient()


def get_catalog():
    return _catalog


def get_order_store():
    return _order_store


def get_gateway():
    return _gateway


def get_fulfillment_service(store=Depends(get_order_store), gateway=Depends(get_gateway)):
    return OrderFulfillmentService(store, gateway)


class PlaceOrderRequest(BaseModel):
    """
    Request to persist an order after the gateway authorized the payment.

    Attributes:
        cart (CheckoutRequest): The cart; it is re-priced server side.
        gatewayReference (str): Gateway order id of the authorization.
        shipping (int): Shipping cost in minor units.
        discount (int): Pre-computed discount in minor units.
        customerEmail (str | None): Contact address.
    """
    cart: CheckoutRequest
    gatewayReference: str
    shipping: StrictInt = 0
    discount: StrictInt = 0
    customerEmail: Optional[str] = None


class TransitionRequest(BaseModel):
    carrier: Optional[str] = None
    tracking: Optional[str] = None
    amount: Optional[StrictInt] = None


class ActivationCheckRequest(BaseModel):
    variant: Variant
    product: Optional[Product] = None


# Error handlers: structured code + context, never a bare string
@app.exception_handler(CheckoutError)
async def checkout_error_handler(request: Request, exc: CheckoutError):
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return JSONResponse(status_code=400, content=jsonable_context(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [{"loc": list(err["loc"]), "message": err["msg"]} for err in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "INVALID_PAYLOAD", "details": details})


def jsonable_context(content: dict) -> dict:
    return {key: value if isinstance(value, (str, int, float, bool, type(None))) else str(value)
            for key, value in content.items()}


# Startup Event
@app.on_event("startup")
def on_startup():
    log.info("Storefront-Core startet...")
    if not _gateway.configured:
        log.warning("Payment Gateway ohne Zugangsdaten konfiguriert: Mock-Modus aktiv.")


@app.on_event("shutdown")
def on_shutdown():
    _gateway.close()


# API Endpoint: Storefront → Checkout
@app.post("/v1/checkout", response_model=Quote)
def checkout(request: CheckoutRequest, catalog=Depends(get_catalog)):
    """
    Prices a cart and returns the authoritative quote.

    Returns:
        Quote: currency, locale, orderAmount, orderTaxAmount, lineItems[], warnings[].

    Raises:
        CheckoutError: Rendered as 4xx with {"error": CODE, ...context}.
    """
    quote = price_cart(request, catalog, tax_rate_bp=DEFAULT_TAX_RATE_BP, site_url=SITE_URL)
    log.info(f"[Checkout] Angebot erstellt: {len(quote.lineItems)} Position(en), "
             f"{quote.orderAmount} {quote.currency}.")
    return quote


@app.post("/v1/orders", status_code=201)
def submit_order(request: PlaceOrderRequest, catalog=Depends(get_catalog), store=Depends(get_order_store)):
    """
    Persists an order for an authorized payment.

    The cart is priced again so the stored amounts never come from the client.
    """
    quote = price_cart(request.cart, catalog, tax_rate_bp=DEFAULT_TAX_RATE_BP, site_url=SITE_URL)
    order = place_order(
        quote,
        gateway_reference=request.gatewayReference,
        store=store,
        shipping=request.shipping,
        discount=request.discount,
        customer_email=request.customerEmail,
    )
    return {
        "orderId": order.id,
        "orderNumber": order.order_number,
        "total": order.total,
        "currency": order.currency,
        "warnings": [w.model_dump() for w in quote.warnings],
    }


@app.get("/v1/orders/{order_id}")
def get_order(order_id: str, store=Depends(get_order_store)):
    order = store.get(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return admin_order_view(order)


@app.get("/v1/orders/{order_id}/public")
def get_public_order(order_id: str, store=Depends(get_order_store)):
    order = store.get(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return public_order_view(order)


@app.post("/v1/orders/{order_id}/transitions/{transition}", response_model=TransitionResult)
def run_transition(
        order_id: str,
        transition: Transition,
        params: Optional[TransitionRequest] = None,
        service: OrderFulfillmentService = Depends(get_fulfillment_service),
):
    """
    Executes one fulfillment transition.

    Always answers 200 with {ok, message}; guard violations and gateway failures are
    reported with ok=false.
    """
    params = params or TransitionRequest()
    kwargs = {}
    if transition in (Transition.MARK_SHIPPED, Transition.UPDATE_SHIPPING):
        kwargs = {"carrier": params.carrier, "tracking": params.tracking}
    elif transition == Transition.REFUND_PAYMENT:
        kwargs = {"amount": params.amount}

    log.info(f"[Order: {order_id}] Transition {transition.value} angefordert.")
    return service.apply(order_id, transition, **kwargs)


@app.post("/v1/variants/activation-check")
def activation_check(request: ActivationCheckRequest):
    """Evaluates the activation policy and the admin activation gate for a variant."""
    return {
        "policy": can_activate_variant(request.variant, request.product).model_dump(),
        "activation": check_variant_activation(request.variant, request.product).model_dump(),
        "status": get_activation_status(request.variant, request.product),
    }


@app.post("/v1/products/publish-check")
def publish_check(product: Product):
    return can_publish_product(product).model_dump()


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}
