"""Vendor and market record access.

The record store is eventually consistent and owned by the storefront; this
package only reads vendors and writes back market corrections.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Optional, Protocol, Sequence

from pydantic import ValidationError

from ..config import settings
from ..models.domain import Coordinate, Vendor
from ..schemas.vendors import VendorRow
from ..services.normalization import AddressNormalizer, default_normalizer, sorted_days

logger = logging.getLogger(__name__)

VENDOR_COLUMNS = (
    "id, store_name, selected_markets, selected_market, search_term, market_address, "
    "market_days, latitude, longitude"
)


class RecordStore(Protocol):
    def query_vendors(self, status: str | None = "accepted", ids: Sequence[str] | None = None) -> list[Vendor]:
        ...

    def update_market_address(self, key: str, address: str) -> None:
        ...

    def update_market_days(self, key: str, days: Iterable[str]) -> None:
        ...

    def update_vendor_coordinates(self, vendor_id: str, coordinate: Coordinate) -> None:
        ...


def parse_vendor_rows(rows: Iterable[dict]) -> list[Vendor]:
    vendors: list[Vendor] = []
    for row in rows:
        try:
            vendors.append(VendorRow.model_validate(row).to_vendor())
        except ValidationError as e:
            logger.warning(f"Skipping malformed vendor row {row.get('id')!r}: {e.error_count()} error(s)")
    return vendors


class SupabaseRecordStore:
    """Reads ``submissions`` and corrects rows of ``markets`` by market key."""

    def __init__(
        self,
        client: Any,
        normalizer: AddressNormalizer | None = None,
        vendor_table: str | None = None,
        market_table: str | None = None,
    ) -> None:
        if client is None:
            raise ValueError("Supabase client is not configured.")
        self.client = client
        self.normalizer = normalizer or default_normalizer
        self.vendor_table = vendor_table or settings.vendor_table
        self.market_table = market_table or settings.market_table
        # market key -> [(row id, row name)]
        self._market_index: Optional[dict[str, list[tuple[Any, str]]]] = None
        self._lock = threading.Lock()

    def query_vendors(self, status: str | None = "accepted", ids: Sequence[str] | None = None) -> list[Vendor]:
        query = self.client.table(self.vendor_table).select(VENDOR_COLUMNS)
        if status:
            query = query.eq("status", status)
        if ids:
            query = query.in_("id", list(ids))
        response = query.execute()
        return parse_vendor_rows(response.data or [])

    def _load_market_index(self) -> dict[str, list[tuple[Any, str]]]:
        response = self.client.table(self.market_table).select("id, name, address").execute()
        index: dict[str, list[tuple[Any, str]]] = {}
        for row in response.data or []:
            key = self.normalizer.market_key(row.get("name"), row.get("address"))
            index.setdefault(key, []).append((row["id"], row.get("name") or ""))
        return index

    def _market_rows(self, key: str) -> list[tuple[Any, str]]:
        with self._lock:
            if self._market_index is None or key not in self._market_index:
                self._market_index = self._load_market_index()
            return list(self._market_index.get(key, []))

    def _market_ids(self, key: str) -> list[Any]:
        return [row_id for row_id, _ in self._market_rows(key)]

    def update_market_address(self, key: str, address: str) -> None:
        rows = self._market_rows(key)
        ids = [row_id for row_id, _ in rows]
        if not ids:
            logger.debug(f"No market row matches '{key}'; address correction skipped")
            return
        self.client.table(self.market_table).update({"address": address}).in_("id", ids).execute()
        with self._lock:
            # Rows stay reachable under the vendor-derived key and the key of their new address.
            if self._market_index is not None:
                for row_id, name in rows:
                    new_key = self.normalizer.market_key(name, address)
                    entries = self._market_index.setdefault(new_key, [])
                    if (row_id, name) not in entries:
                        entries.append((row_id, name))
        logger.info(f"Corrected address of market '{key}' to '{address}'")

    def update_market_days(self, key: str, days: Iterable[str]) -> None:
        ids = self._market_ids(key)
        if not ids:
            logger.debug(f"No market row matches '{key}'; days correction skipped")
            return
        self.client.table(self.market_table).update({"days": sorted_days(days)}).in_("id", ids).execute()

    def update_vendor_coordinates(self, vendor_id: str, coordinate: Coordinate) -> None:
        self.client.table(self.vendor_table).update(
            {"latitude": coordinate.latitude, "longitude": coordinate.longitude}
        ).eq("id", vendor_id).execute()


class InMemoryRecordStore:
    """Record store held in process memory; used for local runs and tests."""

    def __init__(self, vendors: Iterable[Vendor] = ()) -> None:
        self.vendors: dict[str, Vendor] = {vendor.id: vendor for vendor in vendors}
        self.market_addresses: dict[str, str] = {}
        self.market_days: dict[str, list[str]] = {}
        self.vendor_coordinates: dict[str, Coordinate] = {}

    def query_vendors(self, status: str | None = "accepted", ids: Sequence[str] | None = None) -> list[Vendor]:
        if ids is None:
            return list(self.vendors.values())
        wanted = set(ids)
        return [vendor for vendor in self.vendors.values() if vendor.id in wanted]

    def update_market_address(self, key: str, address: str) -> None:
        self.market_addresses[key] = address

    def update_market_days(self, key: str, days: Iterable[str]) -> None:
        self.market_days[key] = sorted_days(days)

    def update_vendor_coordinates(self, vendor_id: str, coordinate: Coordinate) -> None:
        self.vendor_coordinates[vendor_id] = coordinate
