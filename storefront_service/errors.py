"""
errors.py — Error Taxonomy for the Checkout Flow

Every failure the checkout flow can produce is one of these exceptions.
Each carries the HTTP status it maps to, a message that is safe to show to
the shopper, and (for upstream failures) an internal diagnostic detail.

    CallerInputError (400) — malformed or unknown input from the storefront
    UpstreamError   (500) — catalog source or payment provider failures
"""

from typing import Optional


class StorefrontError(Exception):
    """Base class for all expected checkout failures."""

    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_body(self) -> dict:
        return {"error": self.message}


class CallerInputError(StorefrontError):
    status_code = 400


class EmptyOrder(CallerInputError):
    def __init__(self):
        super().__init__("Missing items")


class InvalidOrderRequest(CallerInputError):
    def __init__(self, detail: Optional[str] = None):
        super().__init__("Invalid items", detail)


class UnknownOrInvalidItem(CallerInputError):
    def __init__(self, item_id: str):
        super().__init__(f"Unknown or invalid item: {item_id}")
        self.item_id = item_id


class InvalidQuantity(CallerInputError):
    def __init__(self, item_id: str):
        super().__init__(f"Invalid quantity for item: {item_id}")
        self.item_id = item_id


class MissingOrderId(CallerInputError):
    def __init__(self):
        super().__init__("Missing orderID")


class UpstreamError(StorefrontError):
    """Failure of an external collaborator; `detail` is diagnostic only."""

    status_code = 500

    def to_body(self) -> dict:
        return {"error": self.message, "detail": self.detail or ""}


class CatalogUnavailable(UpstreamError):
    def __init__(self, detail: Optional[str] = None):
        super().__init__("Catalog unavailable", detail)


class PaymentAuthFailed(UpstreamError):
    def __init__(self, detail: Optional[str] = None):
        super().__init__("PayPal auth failed", detail)


class PaymentCreateFailed(UpstreamError):
    def __init__(self, detail: Optional[str] = None):
        super().__init__("PayPal create failed", detail)


class PaymentCaptureFailed(UpstreamError):
    def __init__(self, detail: Optional[str] = None):
        super().__init__("PayPal capture failed", detail)
