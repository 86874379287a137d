"""HTTP-level tests for the FastAPI binding."""

import pytest
from conftest import RecordingGateway, make_order, make_product, make_variant
from fastapi.testclient import TestClient

from storefront_core import main
from storefront_core.catalog import InMemoryCatalog
from storefront_core.models import FulfillmentStatus, PaymentStatus
from storefront_core.store import InMemoryOrderStore


@pytest.fixture()
def api():
    catalog = InMemoryCatalog([make_product()])
    store = InMemoryOrderStore()
    gateway = RecordingGateway()
    main.app.dependency_overrides[main.get_catalog] = lambda: catalog
    main.app.dependency_overrides[main.get_order_store] = lambda: store
    main.app.dependency_overrides[main.get_gateway] = lambda: gateway
    yield TestClient(main.app), store, gateway
    main.app.dependency_overrides.clear()


def _cart(**line):
    item = {"sku": "TEE-BLK-M", "quantity": 2}
    item.update(line)
    return {"currency": "SEK", "locale": "sv-SE", "items": [item]}


class TestCheckoutAPI:
    def test_checkout_returns_quote(self, api):
        client, _, _ = api
        response = client.post("/v1/checkout", json=_cart())
        assert response.status_code == 200
        body = response.json()
        assert body["orderAmount"] == 70000
        assert body["orderTaxAmount"] == 14000
        assert body["lineItems"][0]["totalTaxAmount"] == 14000
        assert body["warnings"] == []

    def test_price_change_warning(self, api):
        client, _, _ = api
        body = client.post("/v1/checkout", json=_cart(clientUnitPrice=30000)).json()
        assert body["warnings"][0]["code"] == "PRICE_CHANGED"

    def test_out_of_stock_is_409_with_context(self, api):
        client, _, _ = api
        response = client.post("/v1/checkout", json=_cart(quantity=99))
        assert response.status_code == 409
        assert response.json()["error"] == "OUT_OF_STOCK"
        assert response.json()["available"] == 10

    def test_unknown_variant_is_404(self, api):
        client, _, _ = api
        response = client.post("/v1/checkout", json=_cart(sku="NOPE"))
        assert response.status_code == 404
        assert response.json()["error"] == "VARIANT_NOT_FOUND"

    def test_malformed_payload_is_400(self, api):
        client, _, _ = api
        response = client.post("/v1/checkout", json={"items": "nope"})
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_PAYLOAD"

    def test_zero_quantity_is_400(self, api):
        client, _, _ = api
        response = client.post("/v1/checkout", json=_cart(quantity=0))
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_QUANTITY"

    def test_empty_cart_is_400(self, api):
        client, _, _ = api
        response = client.post("/v1/checkout", json={"currency": "SEK", "locale": "sv-SE", "items": []})
        assert response.status_code == 400
        assert response.json()["error"] == "EMPTY_CART"


class TestOrdersAPI:
    def test_place_order_and_read_it_back(self, api):
        client, store, _ = api
        response = client.post("/v1/orders", json={
            "cart": _cart(), "gatewayReference": "gw-123", "shipping": 4900, "discount": 1000,
        })
        assert response.status_code == 201
        body = response.json()
        assert body["total"] == 70000 + 4900 - 1000
        assert body["orderNumber"].startswith("ORDER-")

        order = client.get(f"/v1/orders/{body['orderId']}").json()
        assert order["fulfillment_status"] == "NEW"
        assert order["payment_status"] == "AUTHORIZED"
        assert order["tax"] == 14000
        assert order["paymentLabel"] == "Reserved"

    def test_discount_larger_than_total_is_rejected(self, api):
        client, store, _ = api
        response = client.post("/v1/orders", json={"cart": _cart(), "gatewayReference": "gw-1", "discount": 999999})
        assert response.status_code == 400
        assert store.count() == 0

    def test_unknown_order_is_404(self, api):
        client, _, _ = api
        assert client.get("/v1/orders/missing").status_code == 404

    def test_public_view_hides_gateway_reference(self, api):
        client, store, _ = api
        store.create(make_order(fulfillment_status=FulfillmentStatus.PACKED))
        body = client.get("/v1/orders/ord-001/public").json()
        assert body["status"] == "Packed"
        assert body["progressIndex"] == 2
        assert "gateway_reference" not in body


class TestTransitionsAPI:
    def test_full_fulfillment_flow(self, api):
        client, store, gateway = api
        store.create(make_order())
        url = "/v1/orders/ord-001/transitions/"

        assert client.post(url + "start_picking").json()["ok"] is True
        assert client.post(url + "mark_packed").json()["ok"] is True
        assert client.post(url + "mark_shipped", json={"carrier": "DHL", "tracking": "T1"}).json()["ok"] is True
        assert client.post(url + "capture_payment").json()["ok"] is True
        assert client.post(url + "refund_payment", json={"amount": 5000}).json()["ok"] is True

        order = store.get("ord-001")
        assert order.fulfillment_status == FulfillmentStatus.SHIPPED
        assert order.payment_status == PaymentStatus.REFUNDED
        assert [call["method"] for call in gateway.calls] == ["capture", "refund"]

    def test_guard_failure_is_ok_false(self, api):
        client, store, gateway = api
        store.create(make_order(fulfillment_status=FulfillmentStatus.SHIPPED, payment_status=PaymentStatus.CAPTURED))
        response = client.post("/v1/orders/ord-001/transitions/undo_shipped")
        assert response.status_code == 200
        assert response.json() == {
            "ok": False, "message": "Cannot undo shipping after capture", "changed": False, "mocked": False,
        }

    def test_unknown_transition_is_400(self, api):
        client, store, _ = api
        store.create(make_order())
        assert client.post("/v1/orders/ord-001/transitions/teleport").status_code == 400


class TestActivationAPI:
    def test_activation_check(self, api):
        client, _, _ = api
        variant = make_variant(images=[]).model_dump(mode="json")
        body = client.post("/v1/variants/activation-check", json={"variant": variant}).json()
        assert body["policy"]["canActivate"] is False
        assert "hasImages" in body["policy"]["reasons"]

    def test_publish_check(self, api):
        client, _, _ = api
        body = client.post("/v1/products/publish-check", json=make_product().model_dump(mode="json")).json()
        assert body == {"canActivate": True, "reasons": []}

    def test_health(self, api):
        client, _, _ = api
        assert client.get("/health").json() == {"status": "ok"}
