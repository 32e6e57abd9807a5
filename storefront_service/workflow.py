"""
workflow.py — Checkout Orchestration

This module contains the two server-side steps of a PayPal checkout. Both
are stateless: nothing is kept between them except the provider's order
handle, which the storefront carries from the first call to the second.

Workflow Overview:
    begin_order:    Pricing -> Authenticating -> CreatingOrder -> Created
    finalize_order: Authenticating -> CapturingOrder -> Captured
    Any phase may end in Failed; the error propagates to the API layer.

The amount sent to PayPal is always computed here from the catalog. Client
prices are never read. Unit prices are rounded to cents once, and both the
line amounts and the total are derived from those rounded values so the
provider's `item_total == Σ(unit_amount × quantity)` check always holds.
"""

import enum
from decimal import ROUND_HALF_UP
from typing import Iterable, List, Optional

from .catalog import CatalogClient, CatalogSnapshot
from .clients import PayPalClient
from .config import settings
from .errors import (
    EmptyOrder,
    InvalidQuantity,
    MissingOrderId,
    StorefrontError,
    UnknownOrInvalidItem,
)
from .logging_config import get_logger
from .models import CENT, CartLine, PricedLine, PricedOrder, parse_quantity

log = get_logger(__name__)

ITEM_CATEGORY = "PHYSICAL_GOODS"
MAX_TEXT = 127


class OrderPhase(str, enum.Enum):
    PRICING = "Pricing"
    AUTHENTICATING = "Authenticating"
    CREATING_ORDER = "CreatingOrder"
    CREATED = "Created"
    CAPTURING_ORDER = "CapturingOrder"
    CAPTURED = "Captured"
    FAILED = "Failed"


def _enter(prefix: str, phase: OrderPhase):
    log.info(f"{prefix} -> {phase.value}")


def price_order(lines: Iterable[CartLine], snapshot: CatalogSnapshot,
                currency: Optional[str] = None, max_quantity: Optional[int] = None) -> PricedOrder:
    """
    Prices every cart line from the catalog snapshot.

    Args:
        lines (Iterable[CartLine]): Untrusted cart lines.
        snapshot (CatalogSnapshot): Catalog fetched for this request.
        currency (str, optional): ISO currency code. Defaults to CURRENCY.
        max_quantity (int, optional): Largest accepted quantity per line.

    Returns:
        PricedOrder: Lines with rounded unit and extended prices, and their sum.

    Raises:
        UnknownOrInvalidItem: On the first line that does not resolve; the
            whole order is refused.
        InvalidQuantity: If a quantity exceeds `max_quantity`.
    """
    currency = currency or settings.currency
    max_quantity = max_quantity or settings.max_quantity

    priced: List[PricedLine] = []
    for line in lines:
        entry = snapshot.resolve(line.id)
        unit_price = entry.price.quantize(CENT, rounding=ROUND_HALF_UP)
        if unit_price <= 0:
            raise UnknownOrInvalidItem(line.id)

        quantity = parse_quantity(line.quantity)
        if quantity.coerced:
            log.info(f"[Checkout] Quantity {line.quantity!r} for item '{line.id}' read as 1.")
        if quantity.value > max_quantity:
            raise InvalidQuantity(line.id)

        priced.append(PricedLine(
            sku=entry.id[:MAX_TEXT],
            name=(entry.name or "Article")[:MAX_TEXT],
            quantity=quantity.value,
            unit_price=unit_price,
            extended=unit_price * quantity.value,
        ))

    total = sum((p.extended for p in priced), CENT * 0)
    return PricedOrder(currency=currency, lines=tuple(priced), total=total)


def build_order_payload(order: PricedOrder) -> dict:
    """Renders a priced order as a PayPal Orders v2 creation body."""

    def money(value):
        return {"currency_code": order.currency, "value": f"{value:.2f}"}

    return {
        "intent": "CAPTURE",
        "purchase_units": [
            {
                "amount": {
                    **money(order.total),
                    "breakdown": {"item_total": money(order.total)},
                },
                "items": [
                    {
                        "name": line.name,
                        "quantity": str(line.quantity),
                        "unit_amount": money(line.unit_price),
                        "sku": line.sku,
                        "category": ITEM_CATEGORY,
                    }
                    for line in order.lines
                ],
            }
        ],
    }


def begin_order(lines: List[CartLine], catalog: CatalogClient, paypal: PayPalClient) -> str:
    """
    Creates a PayPal order for the given cart.

    Args:
        lines (List[CartLine]): Cart lines from the storefront.
        catalog (CatalogClient): Source of authoritative prices.
        paypal (PayPalClient): Authenticated provider client.

    Returns:
        str: The provider's order handle.

    Raises:
        EmptyOrder: If the cart is empty (checked before any I/O).
        UnknownOrInvalidItem / InvalidQuantity: On bad cart lines (no
            provider call is made).
        CatalogUnavailable: If the catalog cannot be read.
        PaymentAuthFailed / PaymentCreateFailed: On provider failures.
    """
    prefix = "[Checkout]"
    if not lines:
        raise EmptyOrder()

    try:
        _enter(prefix, OrderPhase.PRICING)
        snapshot = catalog.fetch_snapshot()
        order = price_order(lines, snapshot)
        log.info(f"{prefix} {len(order.lines)} line(s) priced, total {order.total:.2f} {order.currency}.")

        _enter(prefix, OrderPhase.AUTHENTICATING)
        token = paypal.authenticate()

        _enter(prefix, OrderPhase.CREATING_ORDER)
        created = paypal.create_order(build_order_payload(order), token)
    except StorefrontError as e:
        log.warning(f"{prefix} -> {OrderPhase.FAILED.value}: {e.message}")
        raise

    order_id = created["id"]
    _enter(f"[Order: {order_id}]", OrderPhase.CREATED)
    return order_id


def finalize_order(order_id: str, paypal: PayPalClient) -> dict:
    """
    Captures a previously created and buyer-approved PayPal order.

    The handle is not checked against anything local; PayPal rejects
    unknown, unapproved and already captured orders, and that rejection is
    surfaced as-is.

    Args:
        order_id (str): Provider order handle.
        paypal (PayPalClient): Authenticated provider client.

    Returns:
        dict: The provider's capture result, unmodified.

    Raises:
        MissingOrderId: If the handle is empty (checked before any I/O).
        PaymentAuthFailed / PaymentCaptureFailed: On provider failures.
    """
    if not order_id:
        raise MissingOrderId()

    prefix = f"[Order: {order_id}]"
    try:
        _enter(prefix, OrderPhase.AUTHENTICATING)
        token = paypal.authenticate()

        _enter(prefix, OrderPhase.CAPTURING_ORDER)
        result = paypal.capture_order(order_id, token)
    except StorefrontError as e:
        log.warning(f"{prefix} -> {OrderPhase.FAILED.value}: {e.message}")
        raise

    _enter(prefix, OrderPhase.CAPTURED)
    log.info(f"{prefix} Capture status: {result.get('status', 'UNKNOWN')}.")
    return result
