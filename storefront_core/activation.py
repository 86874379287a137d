"""
activation.py — Variant Activation Policy

Single source of truth for whether a variant may be sellable. The publish workflow,
the admin activation toggle and the checkout pricing engine all call
can_activate_variant(); none of them re-implement the checks.

A variant can be activated only if:
    1. hasImages: at least one image is attached
    2. hasExactlyOnePrimary: exactly one image has role 'primary'
    3. primaryReady: the primary image's asset status is 'ready'
    4. primaryReferenceValid: the primary image URL is an absolute http(s) URL
    5. hasPrice: an effective price (override, else product price) is set and >= 0

All checks are evaluated; every failing one is reported, in the order above.
"""

from typing import List, Optional
from urllib.parse import urlsplit

from .models import ActivationResult, ImageRole, ImageStatus, Product, Variant, VariantImage

HAS_IMAGES = "hasImages"
HAS_EXACTLY_ONE_PRIMARY = "hasExactlyOnePrimary"
PRIMARY_READY = "primaryReady"
PRIMARY_REFERENCE_VALID = "primaryReferenceValid"
HAS_PRICE = "hasPrice"

# Extra gates applied by the activation toggle and the publish workflow
HAS_SKU = "hasSku"
STOCK_NOT_NEGATIVE = "stockNotNegative"

POLICY_CHECKS = (HAS_IMAGES, HAS_EXACTLY_ONE_PRIMARY, PRIMARY_READY, PRIMARY_REFERENCE_VALID, HAS_PRICE)

REASON_LABELS = {
    HAS_IMAGES: "No images attached",
    HAS_EXACTLY_ONE_PRIMARY: "Exactly one primary image is required",
    PRIMARY_READY: "Primary image is not ready",
    PRIMARY_REFERENCE_VALID: "Primary image URL must be an absolute http(s) URL",
    HAS_PRICE: "Price is missing",
    HAS_SKU: "SKU is missing",
    STOCK_NOT_NEGATIVE: "Stock is negative",
}


def effective_price(variant: Variant, product: Optional[Product] = None) -> Optional[int]:
    """Returns the variant's price override, else the product's fallback price, else None."""
    if variant.price is not None:
        return variant.price
    if product is not None:
        return product.price
    return None


def is_absolute_http_url(url: Optional[str]) -> bool:
    if not url or not url.strip():
        return False
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def _primary_images(variant: Variant) -> List[VariantImage]:
    return [image for image in variant.images if image.role == ImageRole.PRIMARY]


def get_primary_image(variant: Variant) -> Optional[VariantImage]:
    """Returns the first image with role 'primary', or None."""
    primaries = _primary_images(variant)
    return primaries[0] if primaries else None


def can_activate_variant(variant: Variant, product: Optional[Product] = None) -> ActivationResult:
    """
    Evaluates the activation policy for a variant.

    Args:
        variant (Variant): The variant snapshot. Its `active` flag is not consulted.
        product (Product | None): Owning product, used for the fallback price.

    Returns:
        ActivationResult: canActivate is True only when `reasons` is empty.
    """
    reasons = []
    primaries = _primary_images(variant)

    if not variant.images:
        reasons.append(HAS_IMAGES)

    if len(primaries) != 1:
        reasons.append(HAS_EXACTLY_ONE_PRIMARY)

    if not primaries or any(image.status != ImageStatus.READY for image in primaries):
        reasons.append(PRIMARY_READY)

    if not primaries or not all(is_absolute_http_url(image.url) for image in primaries):
        reasons.append(PRIMARY_REFERENCE_VALID)

    price = effective_price(variant, product)
    if price is None or price < 0:
        reasons.append(HAS_PRICE)

    return ActivationResult(canActivate=not reasons, reasons=reasons)


def check_variant_activation(variant: Variant, product: Optional[Product] = None) -> ActivationResult:
    """
    Gate for the admin toggle that turns a variant live.

    On top of the policy, a live variant needs a SKU and non-negative stock.
    """
    reasons = []
    if not (variant.sku or "").strip():
        reasons.append(HAS_SKU)
    if variant.stock < 0:
        reasons.append(STOCK_NOT_NEGATIVE)
    reasons.extend(can_activate_variant(variant, product).reasons)
    return ActivationResult(canActivate=not reasons, reasons=reasons)


def can_publish_product(product: Product) -> ActivationResult:
    """
    Gate for publishing a product.

    Requires at least one active variant, and every active variant must pass
    check_variant_activation(). Reasons are prefixed with the variant id.
    """
    active_variants = [variant for variant in product.variants if variant.active]
    if not active_variants:
        return ActivationResult(canActivate=False, reasons=["hasActiveVariant"])

    reasons = []
    for variant in active_variants:
        result = check_variant_activation(variant, product)
        reasons.extend(f"{variant.id}:{reason}" for reason in result.reasons)
    return ActivationResult(canActivate=not reasons, reasons=reasons)


def get_activation_status(variant: Variant, product: Optional[Product] = None) -> dict:
    """
    Describes a variant's activation state for admin lists and statistics.

    Returns:
        dict: {"status": "active" | "inactive" | "blocked", "label": str, "reasons": [...]}
    """
    if variant.active:
        return {"status": "active", "label": "Active", "reasons": []}

    result = check_variant_activation(variant, product)
    if not result.canActivate:
        return {
            "status": "blocked",
            "label": "Cannot activate",
            "reasons": [REASON_LABELS.get(reason, reason) for reason in result.reasons],
        }

    return {"status": "inactive", "label": "Inactive (can be activated)", "reasons": []}
