"""Tests for order placement from an accepted quote."""

from datetime import datetime, timezone

import pytest
from conftest import make_product

from storefront_core.catalog import InMemoryCatalog
from storefront_core.errors import AmountError, InvalidInputError
from storefront_core.models import FulfillmentStatus, PaymentStatus
from storefront_core.orders import generate_order_number, place_order
from storefront_core.pricing import price_cart


def _quote(quantity=2):
    catalog = InMemoryCatalog([make_product()])
    request = {"currency": "SEK", "locale": "sv-SE", "items": [{"sku": "TEE-BLK-M", "quantity": quantity}]}
    return price_cart(request, catalog, tax_rate_bp=2500, site_url="https://shop.example.com")


class TestPlaceOrder:
    def test_new_order_is_authorized_and_new(self, store):
        order = place_order(_quote(), "gw-ref-1", store)
        assert order.fulfillment_status == FulfillmentStatus.NEW
        assert order.payment_status == PaymentStatus.AUTHORIZED
        assert order.gateway_reference == "gw-ref-1"
        assert store.get(order.id) == order

    def test_monetary_breakdown(self, store):
        order = place_order(_quote(), "gw-ref-1", store, shipping=4900, discount=2000)
        assert order.subtotal == 70000
        assert order.tax == 14000
        assert order.total == 70000 + 4900 - 2000

    def test_items_are_snapshots_of_quote_lines(self, store):
        order = place_order(_quote(quantity=3), "gw-ref-1", store)
        item = order.items[0]
        assert (item.sku, item.quantity, item.unit_price, item.line_total) == ("TEE-BLK-M", 3, 35000, 105000)
        assert item.variant_id == "var-tee-blk-m"
        assert item.tax_rate_bp == 2500

    def test_order_numbers_increase(self, store):
        first = place_order(_quote(), "gw-1", store)
        second = place_order(_quote(), "gw-2", store)
        year = datetime.now(timezone.utc).year
        assert first.order_number == f"ORDER-{year}-0001"
        assert second.order_number == f"ORDER-{year}-0002"

    def test_requires_gateway_reference(self, store):
        with pytest.raises(InvalidInputError):
            place_order(_quote(), "  ", store)

    def test_discount_cannot_exceed_total(self, store):
        with pytest.raises(InvalidInputError):
            place_order(_quote(), "gw-1", store, discount=100000)
        assert store.count() == 0

    def test_negative_shipping_rejected(self, store):
        with pytest.raises(AmountError):
            place_order(_quote(), "gw-1", store, shipping=-1)


def test_generate_order_number_uses_given_year(store):
    assert generate_order_number(store, now=datetime(2030, 1, 1)) == "ORDER-2030-0001"
