"""
orders.py — Order Placement

Creates the durable order once the payment gateway has authorized a priced quote.
Items are snapshotted from the quote; nothing is re-read from the catalog.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from .errors import InvalidInputError
from .models import FulfillmentStatus, Order, OrderItem, PaymentStatus, Quote
from .money import ensure_amount
from .store import OrderStore

log = logging.getLogger(__name__)


def generate_order_number(store: OrderStore, now: Optional[datetime] = None) -> str:
    """Returns ORDER-<year>-<NNNN> based on the number of stored orders."""
    year = (now or datetime.now(timezone.utc)).year
    return f"ORDER-{year}-{store.count() + 1:04d}"


def place_order(
        quote: Quote,
        gateway_reference: str,
        store: OrderStore,
        shipping: int = 0,
        discount: int = 0,
        customer_email: Optional[str] = None,
) -> Order:
    """
    Persists an order for an authorized quote.

    The order starts in fulfillment status NEW and payment status AUTHORIZED.

    Args:
        quote (Quote): The priced quote the customer accepted.
        gateway_reference (str): The gateway's id for the authorized payment.
        store (OrderStore): Order persistence.
        shipping (int): Shipping cost in minor units (opaque input).
        discount (int): Pre-computed discount in minor units (opaque input).
        customer_email (str | None): Contact address.

    Returns:
        Order: The stored order.

    Raises:
        InvalidInputError: If the reference is empty, the quote has no lines or the
            amounts do not add up to a non-negative total.
    """
    if not (gateway_reference or "").strip():
        raise InvalidInputError("gateway_reference is required")
    if not quote.lineItems:
        raise InvalidInputError("Cannot place an order without line items")

    ensure_amount(shipping, "shipping")
    ensure_amount(discount, "discount")
    subtotal = ensure_amount(quote.orderAmount, "subtotal")

    total = subtotal + shipping - discount
    if total < 0:
        raise InvalidInputError("discount exceeds subtotal plus shipping", subtotal=subtotal,
                                shipping=shipping, discount=discount)

    items = [
        OrderItem(
            sku=line.reference,
            name=line.name,
            product_id=line.merchantData.productId,
            variant_id=line.merchantData.variantId,
            quantity=line.quantity,
            unit_price=line.unitPrice,
            line_total=line.totalAmount,
            tax_rate_bp=line.taxRate,
        )
        for line in quote.lineItems
    ]

    order = Order(
        id=str(uuid.uuid4()),
        order_number=generate_order_number(store),
        currency=quote.currency,
        fulfillment_status=FulfillmentStatus.NEW,
        payment_status=PaymentStatus.AUTHORIZED,
        gateway_reference=gateway_reference.strip(),
        subtotal=subtotal,
        shipping=shipping,
        discount=discount,
        tax=quote.orderTaxAmount,
        total=total,
        customer_email=customer_email,
        items=items,
    )
    stored = store.create(order)
    log.info(f"[Order: {stored.id}] Bestellung {stored.order_number} angelegt (Summe {stored.total} {stored.currency}).")
    return stored
