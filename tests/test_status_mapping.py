"""Tests for the customer and admin order views."""

import pytest
from conftest import make_order

from storefront_core.models import FulfillmentStatus as F, PaymentStatus as P
from storefront_core.status_mapping import (
    TIMELINE_STEPS, customer_status_label, format_fulfillment_status, format_payment_status, is_negative_state,
    progress_index, public_order_view,
)


class TestCustomerLabels:
    @pytest.mark.parametrize("status,index", [
        (F.NEW, 0), (F.READY_TO_PICK, 0), (F.PICKING, 1), (F.PACKED, 2), (F.SHIPPED, 3), (F.COMPLETED, 4),
    ])
    def test_progress_index(self, status, index):
        assert progress_index(status, P.AUTHORIZED) == index
        assert customer_status_label(status, P.AUTHORIZED) == TIMELINE_STEPS[index]

    def test_refund_overrides_fulfillment(self):
        assert customer_status_label(F.SHIPPED, P.REFUNDED) == "Refunded"
        assert progress_index(F.SHIPPED, P.REFUNDED) == -1

    def test_cancelled(self):
        assert customer_status_label(F.CANCELLED, P.CANCELLED) == "Cancelled"
        assert is_negative_state(F.CANCELLED, P.AUTHORIZED) is True
        assert is_negative_state(F.SHIPPED, P.CAPTURED) is False


class TestAdminLabels:
    def test_every_status_has_a_label(self):
        assert all(format_fulfillment_status(status) for status in F)
        assert all(format_payment_status(status) for status in P)


def test_public_order_view():
    view = public_order_view(make_order(fulfillment_status=F.SHIPPED, shipping_carrier="DHL",
                                        shipping_tracking="T1"))
    assert view["orderNumber"] == "ORDER-2026-0001"
    assert view["status"] == "Left the warehouse"
    assert view["shippingTracking"] == "T1"
    assert view["items"][0]["lineTotal"] == 59000
    assert "gateway_reference" not in view and "gatewayReference" not in view
