"""Validation schemas for raw vendor rows read from the record store."""

from __future__ import annotations

import json
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..models.domain import MarketAssociation, Vendor
from ..services.normalization import normalize_days

UNKNOWN_MARKET = "Unknown Market"


class MarketAssociationModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    address: str = ""
    place_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("place_id", "placeId", "google_place_id"),
    )

    @field_validator("name", "address", mode="before")
    @classmethod
    def _blank_if_missing(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


def _association_payload(item: Any) -> dict | None:
    """Accept the shapes vendors have stored over time: plain names or autocomplete objects."""
    if isinstance(item, str):
        return {"name": item} if item.strip() else None
    if not isinstance(item, dict):
        return None
    formatting = item.get("structured_formatting") or {}
    return {
        "name": item.get("name") or formatting.get("main_text") or "",
        "address": (
            item.get("address")
            or item.get("formatted_address")
            or item.get("description")
            or formatting.get("secondary_text")
            or ""
        ),
        "place_id": item.get("place_id") or item.get("placeId") or item.get("google_place_id"),
    }


class VendorRow(BaseModel):
    """One row of the vendor submissions table."""

    model_config = ConfigDict(extra="ignore")

    id: str
    store_name: str = ""
    selected_markets: List[MarketAssociationModel] = Field(default_factory=list)
    selected_market: Optional[str] = None
    search_term: Optional[str] = None
    market_address: Optional[str] = None
    market_place_id: Optional[str] = None
    market_days: List[str] = Field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("store_name", mode="before")
    @classmethod
    def _coerce_name(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("market_days", mode="before")
    @classmethod
    def _coerce_days(cls, value: Any) -> list:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return list(value)

    @field_validator("selected_markets", mode="before")
    @classmethod
    def _parse_selected_markets(cls, value: Any) -> list:
        """selected_markets is stored as JSON text by older forms and as a JSON array by newer ones."""
        if value is None or value == "":
            return []
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                value = [value]
        if isinstance(value, dict):
            value = [value]
        if not isinstance(value, list):
            return []
        return [payload for payload in (_association_payload(item) for item in value) if payload]

    def associations(self) -> tuple[MarketAssociation, ...]:
        legacy_address = (self.market_address or "").strip()
        entries = [entry for entry in self.selected_markets if entry.name or entry.address]

        associations: list[MarketAssociation] = []
        for entry in entries:
            address = entry.address
            place_id = entry.place_id
            # A lone name-only entry belongs with the legacy single-address fields.
            if not address and len(entries) == 1:
                address = legacy_address
                place_id = place_id or self.market_place_id
            associations.append(MarketAssociation(name=entry.name or UNKNOWN_MARKET, address=address, place_id=place_id))

        if not associations:
            name = (self.selected_market or self.search_term or "").strip()
            if name or legacy_address:
                associations.append(
                    MarketAssociation(
                        name=name or UNKNOWN_MARKET,
                        address=legacy_address,
                        place_id=self.market_place_id,
                    )
                )
        return tuple(associations)

    def to_vendor(self) -> Vendor:
        return Vendor(
            id=self.id,
            store_name=self.store_name,
            markets=self.associations(),
            operating_days=normalize_days(self.market_days),
            latitude=self.latitude,
            longitude=self.longitude,
        )
