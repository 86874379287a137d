"""
errors.py — Structured Error Taxonomy

Every rejection raised by the checkout core carries a machine-readable code plus the
context fields (ids, amounts, indices) a presentation layer needs to render a specific
message without string matching.
"""

from enum import Enum


class CheckoutErrorCode(str, Enum):
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    EMPTY_CART = "EMPTY_CART"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    VARIANT_NOT_FOUND = "VARIANT_NOT_FOUND"
    VARIANT_INACTIVE = "VARIANT_INACTIVE"
    PRODUCT_NOT_PUBLISHED = "PRODUCT_NOT_PUBLISHED"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    PRICE_MISSING = "PRICE_MISSING"


# HTTP status used by the API binding for each code
HTTP_STATUS_BY_CODE = {
    CheckoutErrorCode.INVALID_PAYLOAD: 400,
    CheckoutErrorCode.EMPTY_CART: 400,
    CheckoutErrorCode.INVALID_QUANTITY: 400,
    CheckoutErrorCode.VARIANT_NOT_FOUND: 404,
    CheckoutErrorCode.VARIANT_INACTIVE: 400,
    CheckoutErrorCode.PRODUCT_NOT_PUBLISHED: 400,
    CheckoutErrorCode.OUT_OF_STOCK: 409,
    CheckoutErrorCode.PRICE_MISSING: 422,
}


class CheckoutError(Exception):
    """
    A fatal rejection of a whole checkout request.

    Attributes:
        code (CheckoutErrorCode): The error kind.
        context (dict): Structured details, e.g. variantId, available, requested.
    """

    def __init__(self, code: CheckoutErrorCode, **context):
        self.code = CheckoutErrorCode(code)
        self.context = context
        super().__init__(f"{self.code.value}: {context}")

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CODE[self.code]

    def to_dict(self) -> dict:
        return {"error": self.code.value, **self.context}


class InvalidInputError(ValueError):
    """Raised for malformed input before any lookup or state change happens."""

    def __init__(self, message: str, **context):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": "INVALID_INPUT", "message": self.message, **self.context}


class AmountError(InvalidInputError):
    """Raised for money values that are not safe non-negative integers."""


class ConcurrentUpdateError(Exception):
    """Raised by an order store when a conditional update finds a different version."""

    def __init__(self, order_id: str, expected_version: int, actual_version: int):
        self.order_id = order_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Order {order_id} changed concurrently (expected version {expected_version}, found {actual_version})"
        )


class OrderNotFoundError(KeyError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(order_id)
