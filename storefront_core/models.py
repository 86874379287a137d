"""
models.py — Data Models for Checkout and Order Fulfillment

This module defines the data structures shared by the pricing engine, the activation
policy and the fulfillment state machine. It uses Pydantic models to ensure type
safety and automatic validation.

Models:
    Catalog snapshots (read-only input):
        - VariantImage, Variant, Product, CatalogItem
    Checkout wire models (camelCase, as exchanged with the storefront):
        - CartLineRequest, CheckoutRequest, MerchantReference, QuoteLineItem,
          PriceWarning, Quote
    Order record:
        - FulfillmentStatus, PaymentStatus, OrderItem, Order
    Results:
        - ActivationResult, TransitionResult
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator

from .money import MAX_SAFE_INTEGER


# --- Catalog snapshots ---

class ImageRole(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class ImageStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class VariantImage(BaseModel):
    """
    An image attached to a variant.

    Attributes:
        url (str): Reference to the asset; must be absolute http(s) to be usable as primary.
        role (ImageRole): 'primary' or 'secondary'.
        status (ImageStatus): Readiness of the underlying asset.
        sort_order (int): Display order.
    """
    url: str
    role: ImageRole = ImageRole.SECONDARY
    status: ImageStatus = ImageStatus.PENDING
    sort_order: int = 0
    alt: Optional[str] = None


class Variant(BaseModel):
    """
    A sellable unit of a product.

    Attributes:
        id (str): Variant identifier.
        product_id (str): Owning product.
        sku (str): Stock keeping unit, unique and non-empty when active.
        stock (int): Units on hand. Negative only as a data-quality defect.
        price (int | None): Price override in minor units; falls back to the product price.
        active (bool): Whether the variant is live.
        images (List[VariantImage]): Ordered image collection.
    """
    id: str
    product_id: str
    sku: Optional[str] = None
    stock: int = 0
    price: Optional[int] = None
    active: bool = False
    color_name: Optional[str] = None
    image: Optional[str] = None
    images: List[VariantImage] = Field(default_factory=list)


class Product(BaseModel):
    id: str
    name: str
    slug: str
    price: Optional[int] = None
    canonical_image: Optional[str] = None
    published: bool = False
    variants: List[Variant] = Field(default_factory=list)


class CatalogItem(BaseModel):
    """A variant together with its owning product, as returned by a catalog lookup."""
    variant: Variant
    product: Product


# --- Checkout wire models ---

class CartLineRequest(BaseModel):
    """
    A single line of a checkout request.

    Attributes:
        variantId (str | None): Variant reference; preferred over sku.
        sku (str | None): Fallback reference when variantId is absent or unknown.
        quantity (int): Requested quantity, positive integer (checked by the pricing engine).
        clientUnitPrice (int | None): Unit price the client displayed, for drift detection.
    """
    variantId: Optional[str] = None
    sku: Optional[str] = None
    quantity: StrictInt
    clientUnitPrice: Optional[StrictInt] = None

    @model_validator(mode="after")
    def _reference_required(self):
        if not self.variantId and not self.sku:
            raise ValueError("either variantId or sku is required")
        return self


class CheckoutRequest(BaseModel):
    currency: str = Field(..., min_length=1)
    locale: str = Field(..., min_length=1)
    items: List[CartLineRequest]


class MerchantReference(BaseModel):
    """Ids captured at quote time. Immutable even if the catalog changes later."""
    model_config = ConfigDict(frozen=True)

    productId: str
    variantId: str
    sku: Optional[str] = None
    slug: str


class QuoteLineItem(BaseModel):
    name: str
    reference: Optional[str] = None
    quantity: int
    unitPrice: int
    totalAmount: int
    taxRate: int
    totalTaxAmount: int
    imageUrl: Optional[str] = None
    productUrl: str
    merchantData: MerchantReference


class PriceWarning(BaseModel):
    code: str = "PRICE_CHANGED"
    index: int
    sku: Optional[str] = None
    variantId: str
    oldUnitPrice: int
    newUnitPrice: int


class Quote(BaseModel):
    currency: str
    locale: str
    orderAmount: int
    orderTaxAmount: int
    lineItems: List[QuoteLineItem]
    warnings: List[PriceWarning] = Field(default_factory=list)


# --- Order record ---

class FulfillmentStatus(str, Enum):
    NEW = "NEW"
    READY_TO_PICK = "READY_TO_PICK"
    PICKING = "PICKING"
    PACKED = "PACKED"
    SHIPPED = "SHIPPED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    AUTHORIZED = "AUTHORIZED"
    CAPTURED = "CAPTURED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class OrderItem(BaseModel):
    """Snapshot of a purchased line. Never re-derived from the live catalog."""
    model_config = ConfigDict(frozen=True)

    sku: Optional[str] = None
    name: str
    product_id: str
    variant_id: Optional[str] = None
    quantity: int = Field(..., gt=0)
    unit_price: int = Field(..., ge=0)
    line_total: int = Field(..., ge=0)
    tax_rate_bp: int = Field(..., ge=0)


class Order(BaseModel):
    """
    The durable order record.

    Status fields are changed only through the fulfillment state machine; every
    write bumps `version`, which the store uses as its optimistic concurrency guard.
    `pending_operation` marks a gateway call in flight for this order.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    order_number: str
    currency: str
    fulfillment_status: FulfillmentStatus = FulfillmentStatus.NEW
    payment_status: PaymentStatus = PaymentStatus.AUTHORIZED
    gateway_reference: Optional[str] = None

    subtotal: int = Field(..., ge=0, le=MAX_SAFE_INTEGER)
    shipping: int = Field(0, ge=0, le=MAX_SAFE_INTEGER)
    discount: int = Field(0, ge=0, le=MAX_SAFE_INTEGER)
    tax: int = Field(0, ge=0, le=MAX_SAFE_INTEGER)
    total: int = Field(..., ge=0, le=MAX_SAFE_INTEGER)
    refunded_amount: int = 0

    shipping_carrier: Optional[str] = None
    shipping_tracking: Optional[str] = None
    shipped_at: Optional[datetime] = None
    captured_at: Optional[datetime] = None
    picking_started_from: Optional[FulfillmentStatus] = None

    customer_email: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    items: List[OrderItem] = Field(default_factory=list)

    pending_operation: Optional[str] = None
    version: int = 0

    @model_validator(mode="after")
    def _total_matches_breakdown(self):
        if self.total != self.subtotal + self.shipping - self.discount:
            raise ValueError("total must equal subtotal + shipping - discount")
        return self


# --- Results ---

class ActivationResult(BaseModel):
    """Verdict of the activation policy; `reasons` lists every failed check in order."""
    canActivate: bool
    reasons: List[str] = Field(default_factory=list)


class TransitionResult(BaseModel):
    """
    Outcome of a fulfillment transition.

    Attributes:
        ok (bool): Whether the order is now in the requested state.
        message (str): Human readable outcome.
        changed (bool): False when nothing was written (guard failure or no-op).
        mocked (bool): True when the gateway ran in mock mode.
    """
    ok: bool
    message: str
    changed: bool = False
    mocked: bool = False
