import pytest

from storefront_core.catalog import InMemoryCatalog
from storefront_core.gateway import GatewayResult
from storefront_core.models import (
    FulfillmentStatus, ImageRole, ImageStatus, Order, OrderItem, PaymentStatus, Product, Variant, VariantImage,
)
from storefront_core.store import InMemoryOrderStore


def primary_image(url="https://cdn.example.com/tee-black.jpg", status=ImageStatus.READY):
    return VariantImage(url=url, role=ImageRole.PRIMARY, status=status)


def secondary_image(url="https://cdn.example.com/tee-black-back.jpg"):
    return VariantImage(url=url, role=ImageRole.SECONDARY, status=ImageStatus.READY, sort_order=1)


def make_variant(**overrides):
    defaults = {
        "id": "var-tee-blk-m",
        "product_id": "prod-tee",
        "sku": "TEE-BLK-M",
        "stock": 10,
        "price": 35000,
        "active": True,
        "color_name": "Black",
        "images": [primary_image(), secondary_image()],
    }
    defaults.update(overrides)
    return Variant(**defaults)


def make_product(variants=None, **overrides):
    defaults = {
        "id": "prod-tee",
        "name": "Basic Tee",
        "slug": "basic-tee",
        "price": 29900,
        "canonical_image": "/images/basic-tee.jpg",
        "published": True,
        "variants": variants if variants is not None else [make_variant()],
    }
    defaults.update(overrides)
    return Product(**defaults)


def make_order(**overrides):
    defaults = {
        "id": "ord-001",
        "order_number": "ORDER-2026-0001",
        "currency": "SEK",
        "fulfillment_status": FulfillmentStatus.NEW,
        "payment_status": PaymentStatus.AUTHORIZED,
        "gateway_reference": "gw-ref-001",
        "subtotal": 59000,
        "shipping": 0,
        "discount": 0,
        "tax": 11800,
        "total": 59000,
        "items": [
            OrderItem(sku="TEE-BLK-M", name="Basic Tee - Black", product_id="prod-tee",
                      variant_id="var-tee-blk-m", quantity=1, unit_price=59000, line_total=59000,
                      tax_rate_bp=2500),
        ],
    }
    defaults.update(overrides)
    return Order(**defaults)


class RecordingGateway:
    """Fake payment gateway recording every call; outcome configurable per test."""

    configured = True

    def __init__(self, result=None, error=None):
        self.calls = []
        self.result = result or GatewayResult(ok=True, status=200)
        self.error = error
        self.on_call = None

    def _call(self, method, **kwargs):
        self.calls.append({"method": method, **kwargs})
        if self.on_call:
            self.on_call()
        if self.error:
            raise self.error
        return self.result

    def capture(self, reference, amount):
        return self._call("capture", reference=reference, amount=amount)

    def cancel(self, reference):
        return self._call("cancel", reference=reference)

    def refund(self, reference, amount):
        return self._call("refund", reference=reference, amount=amount)

    def close(self):
        pass


@pytest.fixture()
def catalog():
    return InMemoryCatalog([make_product()])


@pytest.fixture()
def store():
    return InMemoryOrderStore()


@pytest.fixture()
def gateway():
    return RecordingGateway()
