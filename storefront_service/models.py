"""
models.py — Data Models for the Checkout Flow

This module defines the data structures exchanged between the storefront,
the catalog and the payment provider. Pydantic models validate the untrusted
request payloads; the catalog and pricing models are immutable values.

Models:
    - CartLine: One client-supplied cart line (untrusted).
    - BeginOrderRequest: Payload of POST /api/create-order.
    - FinalizeOrderRequest: Payload of POST /api/capture-order.
    - CatalogEntry: One row of the catalog snapshot.
    - PricedLine / PricedOrder: Server-computed prices for an order.
    - ParsedQuantity: Result of the quantity parse policy.
"""

import math
import re
from decimal import Decimal
from typing import Any, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

CENT = Decimal("0.01")

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class ParsedQuantity(NamedTuple):
    """
    Outcome of `parse_quantity`.

    Attributes:
        value (int): The quantity to charge for, always >= 1.
        coerced (bool): True when the raw input was unusable and the
            fallback of 1 was applied.
    """
    value: int
    coerced: bool


def parse_quantity(raw: Any) -> ParsedQuantity:
    """
    Turns an untrusted quantity into an integer >= 1.

    Policy (permissive, matching what the storefront cart sends):
        - int >= 1 is taken as-is
        - float is truncated toward zero
        - str is read by its leading integer ("3 pcs" -> 3)
        - anything else (None, bool, "abc", NaN, <= 0) falls back to 1

    The upper bound is not enforced here; callers reject quantities above
    their configured maximum.
    """
    value = None
    if isinstance(raw, bool):
        value = None
    elif isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        value = int(raw) if math.isfinite(raw) else None
    elif isinstance(raw, str):
        match = _LEADING_INT.match(raw)
        value = int(match.group(1)) if match else None

    if value is None or value < 1:
        return ParsedQuantity(1, True)
    return ParsedQuantity(value, False)


class CartLine(BaseModel):
    """
    A single cart line as sent by the storefront.

    Attributes:
        id (str): Catalog identifier of the item; numbers are stringified.
        quantity (Any): Raw quantity, interpreted by `parse_quantity`.
    """
    id: str = ""
    quantity: Any = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        if value is None:
            return ""
        if isinstance(value, (dict, list)):
            raise ValueError("item id must be a scalar")
        return str(value).strip()


class BeginOrderRequest(BaseModel):
    """
    Payload of the order-creation endpoint.

    Attributes:
        items (List[CartLine]): Cart lines; a missing or non-list value is
            read as an empty cart.
    """
    items: List[CartLine] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _list_or_empty(cls, value):
        return value if isinstance(value, list) else []


class FinalizeOrderRequest(BaseModel):
    """
    Payload of the capture endpoint.

    Attributes:
        orderID (Optional[str]): Provider order handle returned by create-order.
    """
    orderID: Optional[str] = None

    @field_validator("orderID", mode="before")
    @classmethod
    def _scalar_handle(cls, value):
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return None
        return str(value).strip()


class CatalogEntry(BaseModel):
    """
    One catalog row, as read from the published sheet.

    Attributes:
        id (str): Unique identifier within the snapshot.
        name (str): Display name.
        price (Optional[Decimal]): Unit price, None when the cell was unusable.
        active (bool): Whether the item may be sold.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    price: Optional[Decimal] = None
    active: bool = True

    @property
    def orderable(self) -> bool:
        """True when the entry is active and carries a strictly positive, finite price."""
        return (
            self.active
            and self.price is not None
            and self.price.is_finite()
            and self.price > 0
        )


class PricedLine(BaseModel):
    """A cart line after server-side pricing. `extended` = `unit_price` × `quantity`."""
    model_config = ConfigDict(frozen=True)

    sku: str
    name: str
    quantity: int
    unit_price: Decimal
    extended: Decimal


class PricedOrder(BaseModel):
    """The authoritative order amounts; `total` is the exact sum of the line amounts."""
    model_config = ConfigDict(frozen=True)

    currency: str
    lines: Tuple[PricedLine, ...]
    total: Decimal
