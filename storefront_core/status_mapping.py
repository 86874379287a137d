"""
status_mapping.py — Order Read Views

Maps the internal status pair (fulfillment × payment) to what admins and customers
see. Internal enum values are never shown to customers directly.
"""

from .models import FulfillmentStatus, Order, PaymentStatus

PAYMENT_STATUS_LABELS = {
    PaymentStatus.AUTHORIZED: "Reserved",
    PaymentStatus.CAPTURED: "Paid",
    PaymentStatus.CANCELLED: "Cancelled",
    PaymentStatus.REFUNDED: "Refunded",
}

FULFILLMENT_STATUS_LABELS = {
    FulfillmentStatus.NEW: "New",
    FulfillmentStatus.READY_TO_PICK: "Ready to handle",
    FulfillmentStatus.PICKING: "Picking",
    FulfillmentStatus.PACKED: "Packed",
    FulfillmentStatus.SHIPPED: "Shipped",
    FulfillmentStatus.COMPLETED: "Completed",
    FulfillmentStatus.CANCELLED: "Cancelled",
}

# Customer-visible timeline, in order
TIMELINE_STEPS = (
    "Ready to be picked",
    "Being picked at the warehouse",
    "Packed",
    "Left the warehouse",
    "Delivered",
)

_TIMELINE_INDEX = {
    FulfillmentStatus.NEW: 0,
    FulfillmentStatus.READY_TO_PICK: 0,
    FulfillmentStatus.PICKING: 1,
    FulfillmentStatus.PACKED: 2,
    FulfillmentStatus.SHIPPED: 3,
    FulfillmentStatus.COMPLETED: 4,
}


def format_payment_status(status: PaymentStatus) -> str:
    return PAYMENT_STATUS_LABELS[PaymentStatus(status)]


def format_fulfillment_status(status: FulfillmentStatus) -> str:
    return FULFILLMENT_STATUS_LABELS[FulfillmentStatus(status)]


def is_negative_state(fulfillment: FulfillmentStatus, payment: PaymentStatus) -> bool:
    """True for cancelled or refunded orders."""
    return fulfillment == FulfillmentStatus.CANCELLED or payment == PaymentStatus.REFUNDED


def progress_index(fulfillment: FulfillmentStatus, payment: PaymentStatus) -> int:
    """Index into TIMELINE_STEPS, or -1 for a negative state (show an alert instead)."""
    if is_negative_state(fulfillment, payment):
        return -1
    return _TIMELINE_INDEX[FulfillmentStatus(fulfillment)]


def customer_status_label(fulfillment: FulfillmentStatus, payment: PaymentStatus) -> str:
    # Payment-based overrides take priority
    if payment == PaymentStatus.REFUNDED:
        return "Refunded"
    if fulfillment == FulfillmentStatus.CANCELLED:
        return "Cancelled"
    return TIMELINE_STEPS[_TIMELINE_INDEX[FulfillmentStatus(fulfillment)]]


def public_order_view(order: Order) -> dict:
    """
    The customer-facing projection of an order.

    Exposes labels, the timeline position, shipping info and item snapshots;
    never the gateway reference or internal statuses.
    """
    return {
        "orderNumber": order.order_number,
        "status": customer_status_label(order.fulfillment_status, order.payment_status),
        "timeline": list(TIMELINE_STEPS),
        "progressIndex": progress_index(order.fulfillment_status, order.payment_status),
        "currency": order.currency,
        "subtotal": order.subtotal,
        "shipping": order.shipping,
        "discount": order.discount,
        "tax": order.tax,
        "total": order.total,
        "shippingCarrier": order.shipping_carrier,
        "shippingTracking": order.shipping_tracking,
        "shippedAt": order.shipped_at.isoformat() if order.shipped_at else None,
        "items": [
            {
                "sku": item.sku,
                "name": item.name,
                "quantity": item.quantity,
                "unitPrice": item.unit_price,
                "lineTotal": item.line_total,
            }
            for item in order.items
        ],
    }


def admin_order_view(order: Order) -> dict:
    """Full order detail for the back office, with display labels added."""
    view = order.model_dump(mode="json")
    view["fulfillmentLabel"] = format_fulfillment_status(order.fulfillment_status)
    view["paymentLabel"] = format_payment_status(order.payment_status)
    return view
