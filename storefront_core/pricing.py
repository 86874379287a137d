"""
pricing.py — Checkout Pricing Engine

Turns a cart request into an authoritative, tax-inclusive Quote or a structured
CheckoutError. Pricing is all-or-nothing: the first failing line rejects the whole
request. The engine only reads from the catalog; stock is checked, never reserved.

Pipeline per cart line (in input order):
    1. Resolve the variant by id, falling back to SKU       → VARIANT_NOT_FOUND
    2. Variant active and purchasable, product published    → VARIANT_INACTIVE / PRODUCT_NOT_PUBLISHED
    3. Requested quantity within current stock              → OUT_OF_STOCK
    4. Effective unit price (override, else product price)  → PRICE_MISSING
    5. Line total and tax portion (money module)
    6. Client/server price drift                            → PRICE_CHANGED warning
    7. Absolute image/product URLs against the site origin
"""

import logging
from typing import Dict, Optional, Union
from urllib.parse import urljoin

from pydantic import ValidationError

from .activation import HAS_PRICE, can_activate_variant, effective_price, get_primary_image
from .catalog import CatalogLookup
from .config import DEFAULT_TAX_RATE_BP, SITE_URL
from .errors import CheckoutError, CheckoutErrorCode
from .models import (
    CatalogItem, CheckoutRequest, MerchantReference, PriceWarning, Quote, QuoteLineItem,
)
from .money import compute_line_total, compute_tax_portion, sum_amounts

log = logging.getLogger(__name__)


def _parse_request(request: Union[CheckoutRequest, dict]) -> CheckoutRequest:
    if isinstance(request, CheckoutRequest):
        return request
    if not isinstance(request, dict):
        raise CheckoutError(CheckoutErrorCode.INVALID_PAYLOAD, message="Payload must be an object")
    try:
        return CheckoutRequest.model_validate(request)
    except ValidationError as e:
        details = [
            {"loc": list(err["loc"]), "message": err["msg"]} for err in e.errors(include_url=False)
        ]
        raise CheckoutError(CheckoutErrorCode.INVALID_PAYLOAD, details=details)


def _absolute_url(reference: Optional[str], site_url: str) -> Optional[str]:
    if not reference:
        return None
    # Resolved the way a browser resolves links on the site origin
    return urljoin(site_url, reference)


def _display_name(item: CatalogItem) -> str:
    if item.variant.color_name:
        return f"{item.product.name} - {item.variant.color_name}"
    return item.product.name


def _image_reference(item: CatalogItem) -> Optional[str]:
    if item.variant.image:
        return item.variant.image
    primary = get_primary_image(item.variant)
    if primary is not None:
        return primary.url
    return item.product.canonical_image


def price_cart(
        request: Union[CheckoutRequest, dict],
        catalog: CatalogLookup,
        tax_rate_bp: int = DEFAULT_TAX_RATE_BP,
        site_url: str = SITE_URL,
) -> Quote:
    """
    Prices a cart.

    Args:
        request (CheckoutRequest | dict): currency, locale and cart lines.
        catalog (CatalogLookup): Read-only variant/product source.
        tax_rate_bp (int): Tax rate in basis points applied to every line.
        site_url (str): Origin used to make image/product references absolute.

    Returns:
        Quote: Line items in input order, totals and non-fatal warnings.

    Raises:
        CheckoutError: On any invalid input or non-purchasable line. No partial quote
            is ever returned.
    """
    checkout = _parse_request(request)

    if not checkout.items:
        raise CheckoutError(CheckoutErrorCode.EMPTY_CART)

    for index, line in enumerate(checkout.items):
        if line.quantity < 1:
            raise CheckoutError(CheckoutErrorCode.INVALID_QUANTITY, index=index, quantity=line.quantity)
        if line.clientUnitPrice is not None and line.clientUnitPrice < 0:
            raise CheckoutError(
                CheckoutErrorCode.INVALID_PAYLOAD, index=index, message="clientUnitPrice must not be negative"
            )

    variant_ids = [line.variantId for line in checkout.items if line.variantId]
    skus = [line.sku for line in checkout.items if line.sku]
    found = catalog.find_variants(variant_ids, skus)

    by_id: Dict[str, CatalogItem] = {}
    by_sku: Dict[str, CatalogItem] = {}
    for item in found:
        by_id[item.variant.id] = item
        if item.variant.sku:
            by_sku[item.variant.sku] = item

    line_items = []
    warnings = []

    for index, line in enumerate(checkout.items):
        item = None
        if line.variantId:
            item = by_id.get(line.variantId)
        if item is None and line.sku:
            item = by_sku.get(line.sku)

        if item is None:
            log.info(f"[Checkout] Variante nicht gefunden (Index {index}, SKU {line.sku}, ID {line.variantId}).")
            raise CheckoutError(
                CheckoutErrorCode.VARIANT_NOT_FOUND, index=index, sku=line.sku, variantId=line.variantId
            )

        variant, product = item.variant, item.product

        if not variant.active:
            raise CheckoutError(CheckoutErrorCode.VARIANT_INACTIVE, index=index, variantId=variant.id)

        if not product.published:
            raise CheckoutError(CheckoutErrorCode.PRODUCT_NOT_PUBLISHED, index=index, productId=product.id)

        # Preisprüfung folgt separat als PRICE_MISSING (Schritt 4)
        policy = can_activate_variant(variant, product)
        blocking = [reason for reason in policy.reasons if reason != HAS_PRICE]
        if blocking:
            log.warning(f"[Checkout] Aktive Variante {variant.id} verletzt Aktivierungsregeln: {blocking}")
            raise CheckoutError(
                CheckoutErrorCode.VARIANT_INACTIVE, index=index, variantId=variant.id, reasons=blocking
            )

        if variant.stock < line.quantity:
            raise CheckoutError(
                CheckoutErrorCode.OUT_OF_STOCK,
                index=index,
                variantId=variant.id,
                sku=variant.sku,
                available=variant.stock,
                requested=line.quantity,
            )

        unit_price = effective_price(variant, product)
        if unit_price is None or unit_price < 0:
            raise CheckoutError(CheckoutErrorCode.PRICE_MISSING, index=index, variantId=variant.id)

        total_amount = compute_line_total(unit_price, line.quantity)
        total_tax_amount = compute_tax_portion(total_amount, tax_rate_bp)

        if line.clientUnitPrice is not None and line.clientUnitPrice != unit_price:
            warnings.append(PriceWarning(
                index=index,
                sku=variant.sku,
                variantId=variant.id,
                oldUnitPrice=line.clientUnitPrice,
                newUnitPrice=unit_price,
            ))

        line_items.append(QuoteLineItem(
            name=_display_name(item),
            reference=variant.sku,
            quantity=line.quantity,
            unitPrice=unit_price,
            totalAmount=total_amount,
            taxRate=tax_rate_bp,
            totalTaxAmount=total_tax_amount,
            imageUrl=_absolute_url(_image_reference(item), site_url),
            productUrl=_absolute_url(f"/product/{product.slug}", site_url),
            merchantData=MerchantReference(
                productId=product.id, variantId=variant.id, sku=variant.sku, slug=product.slug
            ),
        ))

    quote = Quote(
        currency=checkout.currency,
        locale=checkout.locale,
        orderAmount=sum_amounts(li.totalAmount for li in line_items),
        orderTaxAmount=sum_amounts(li.totalTaxAmount for li in line_items),
        lineItems=line_items,
        warnings=warnings,
    )
    if warnings:
        log.info(f"[Checkout] Preisänderung bei {len(warnings)} Position(en) erkannt.")
    return quote
