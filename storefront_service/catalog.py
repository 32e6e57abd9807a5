"""
catalog.py — Catalog Resolver

The catalog is a spreadsheet published as tab-separated text. It is the only
source of truth for item names and prices: whatever the storefront claims
about a price is ignored, and every line of an order is priced from a
snapshot fetched for that request.

Components:
    - CatalogClient: fetches the published sheet over HTTP (no caching).
    - parse_catalog(): turns the TSV text into a CatalogSnapshot.
    - CatalogSnapshot: immutable id -> CatalogEntry lookup with resolve().
"""

from decimal import Decimal, InvalidOperation
from typing import Dict, Mapping, Optional

import httpx

from .config import settings
from .errors import CatalogUnavailable, UnknownOrInvalidItem
from .logging_config import get_logger
from .models import CatalogEntry

log = get_logger(__name__)

REQUIRED_COLUMNS = ("id", "name", "price")
TRUTHY = {"true", "yes", "1"}
# Prices at or above 10^12 are refused.
MAX_PRICE_DIGITS = 12


class CatalogSnapshot:
    """
    A read-only view of the catalog as fetched for one request.

    Args:
        entries (Mapping[str, CatalogEntry]): Entries keyed by identifier.
    """

    def __init__(self, entries: Mapping[str, CatalogEntry]):
        self._entries = dict(entries)

    def __len__(self):
        return len(self._entries)

    def __contains__(self, item_id):
        return item_id in self._entries

    def resolve(self, item_id: str) -> CatalogEntry:
        """
        Returns the entry for `item_id` if it exists and can be ordered.

        Raises:
            UnknownOrInvalidItem: If the id is empty, unknown, inactive, or
                the entry has no strictly positive, finite price.
        """
        entry = self._entries.get(item_id) if item_id else None
        if entry is None or not entry.orderable:
            raise UnknownOrInvalidItem(item_id)
        return entry


def _parse_price(raw: str) -> Optional[Decimal]:
    cleaned = raw.strip().rstrip("€").strip().replace(",", ".", 1)
    if not cleaned:
        return None
    try:
        price = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not price.is_finite() or price.adjusted() >= MAX_PRICE_DIGITS:
        return None
    return price


def parse_catalog(text: str) -> CatalogSnapshot:
    """
    Parses the published TSV into a snapshot.

    Columns are matched by lower-cased header name. `id`, `name` and `price`
    are required; `active` is read when present, other columns are ignored.
    Rows without an id are skipped, and a later row replaces an earlier one
    with the same id.

    Raises:
        CatalogUnavailable: If the document is empty or a required column is
            missing.
    """
    lines = [line for line in text.strip().splitlines() if line.strip()]
    if not lines:
        raise CatalogUnavailable("catalog document is empty")

    headers = [h.strip().lower() for h in lines[0].split("\t")]
    missing = [col for col in REQUIRED_COLUMNS if col not in headers]
    if missing:
        raise CatalogUnavailable(f"catalog is missing column(s): {', '.join(missing)}")

    idx = {name: headers.index(name) for name in REQUIRED_COLUMNS}
    active_idx = headers.index("active") if "active" in headers else -1

    entries: Dict[str, CatalogEntry] = {}
    for line in lines[1:]:
        cols = line.split("\t")

        def get(i):
            return cols[i].strip() if 0 <= i < len(cols) else ""

        item_id = get(idx["id"])
        if not item_id:
            continue
        if item_id in entries:
            log.warning(f"[Catalog] Duplicate id '{item_id}', later row replaces the earlier one.")

        entries[item_id] = CatalogEntry(
            id=item_id,
            name=get(idx["name"]),
            price=_parse_price(get(idx["price"])),
            active=get(active_idx).lower() in TRUTHY if active_idx >= 0 else True,
        )

    return CatalogSnapshot(entries)


class CatalogClient:
    """
    Client for the published catalog sheet.

    Args:
        url (str): Address of the TSV export. Defaults to CATALOG_URL.
        http_client (httpx.Client, optional): Pre-built client, mainly for
            tests. When omitted, one is created with the configured timeout.
    """

    def __init__(self, url: Optional[str] = None, http_client: Optional[httpx.Client] = None):
        self.url = url or settings.catalog_url
        self._owns_client = http_client is None
        self.client = http_client or httpx.Client(timeout=settings.http_timeout)

    def close(self):
        """Closes the HTTP session if this instance created it."""
        if self._owns_client:
            self.client.close()

    def fetch_snapshot(self) -> CatalogSnapshot:
        """
        Downloads and parses the catalog.

        Returns:
            CatalogSnapshot: A fresh snapshot; nothing is cached between calls.

        Raises:
            CatalogUnavailable: If the source cannot be reached, answers with
                an error status, or is malformed.
        """
        try:
            response = self.client.get(self.url, headers={"Cache-Control": "no-cache"})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error(f"[Catalog] Source answered HTTP {e.response.status_code}.")
            raise CatalogUnavailable(f"catalog source returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            log.error(f"[Catalog] Source unreachable: {e!r}")
            raise CatalogUnavailable(f"catalog source unreachable: {type(e).__name__}") from e

        snapshot = parse_catalog(response.text)
        log.info(f"[Catalog] Snapshot loaded with {len(snapshot)} entries.")
        return snapshot
