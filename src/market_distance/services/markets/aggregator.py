"""Collapse vendor records into the physical markets they sell at."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Collection, Iterable, Optional, Protocol

from ...models.domain import Coordinate, Market, Vendor, VendorRef
from ..caching.base import CoordinateCache
from ..normalization import AddressNormalizer, default_normalizer

if TYPE_CHECKING:
    from ...persistence.records import RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VerifiedAddress:
    """Address text confirmed by the geocoding provider."""

    address: str
    verified_at: datetime
    coordinate: Optional[Coordinate] = None


class AddressVerifier(Protocol):
    def verify(self, address: str) -> Optional[VerifiedAddress]:
        ...


class CachedAddressVerifier:
    """Reads provider-formatted addresses out of the coordinate cache; never calls the network."""

    def __init__(self, cache: CoordinateCache, normalizer: AddressNormalizer | None = None) -> None:
        self.cache = cache
        self.normalizer = normalizer or default_normalizer

    def verify(self, address: str) -> Optional[VerifiedAddress]:
        entry = self.cache.get_entry(self.normalizer.address_key(address))
        if entry is None or not entry.formatted_address:
            return None
        return VerifiedAddress(
            address=self.normalizer.display_address(entry.formatted_address),
            verified_at=entry.resolved_at,
            coordinate=entry.coordinate,
        )


class MarketCorrections(Protocol):
    def update_market_address(self, key: str, address: str) -> None:
        ...

    def update_market_days(self, key: str, days: Iterable[str]) -> None:
        ...


@dataclass(slots=True)
class _MarketDraft:
    key: str
    name: str
    address: str
    seed_address: str
    seed_days: frozenset[str]
    days: set[str]
    vendors: list[VendorRef] = field(default_factory=list)
    place_id: Optional[str] = None
    coordinate: Optional[Coordinate] = None
    verified_at: Optional[datetime] = None

    def adopt(self, verified: VerifiedAddress) -> None:
        self.address = verified.address
        self.verified_at = verified.verified_at
        if verified.coordinate is not None:
            self.coordinate = verified.coordinate

    def freeze(self) -> Market:
        return Market(
            key=self.key,
            name=self.name,
            address=self.address,
            operating_days=frozenset(self.days),
            vendors=tuple(self.vendors),
            place_id=self.place_id,
            coordinate=self.coordinate,
            address_verified=self.verified_at is not None,
        )


class MarketAggregator:
    """Groups vendors by market key and merges what they say about each market.

    A vendor may list several markets, so every association is visited. For a
    market seen more than once the operating days are unioned. A
    provider-verified address always replaces vendor free text, and among
    verified candidates the most recently verified one wins. Address and day
    corrections are written back to the record store when one is attached;
    a failed write is logged and dropped.
    """

    def __init__(
        self,
        normalizer: AddressNormalizer | None = None,
        verifier: AddressVerifier | None = None,
        corrections: MarketCorrections | None = None,
    ) -> None:
        self.normalizer = normalizer or default_normalizer
        self.verifier = verifier
        self.corrections = corrections

    def group(self, vendors: Iterable[Vendor], liked: Collection[str] = ()) -> list[Market]:
        drafts: dict[str, _MarketDraft] = {}

        for vendor in vendors:
            ref = VendorRef(id=vendor.id, store_name=vendor.store_name)
            for association in vendor.markets:
                key = self.normalizer.market_key(association.name, association.address)
                if not key.strip("-"):
                    continue
                verified = self._verify(association.address)
                draft = drafts.get(key)

                if draft is None:
                    canonical = self.normalizer.canonicalize(association.address)
                    draft = _MarketDraft(
                        key=key,
                        name=association.name.strip(),
                        address=canonical,
                        seed_address=canonical,
                        seed_days=vendor.operating_days,
                        days=set(vendor.operating_days),
                        place_id=association.place_id,
                    )
                    drafts[key] = draft
                else:
                    draft.days |= vendor.operating_days
                    draft.place_id = draft.place_id or association.place_id

                if all(existing.id != ref.id for existing in draft.vendors):
                    draft.vendors.append(ref)
                if draft.coordinate is None and len(vendor.markets) == 1:
                    draft.coordinate = vendor.coordinate
                if verified is not None and (draft.verified_at is None or verified.verified_at > draft.verified_at):
                    draft.adopt(verified)

        markets = [draft.freeze() for draft in drafts.values()]
        self._persist_corrections(drafts.values())

        liked_keys = set(liked)
        markets.sort(key=lambda market: market.key not in liked_keys)
        logger.debug(f"Grouped vendors into {len(markets)} market(s)")
        return markets

    def _verify(self, address: str) -> Optional[VerifiedAddress]:
        if self.verifier is None or not address:
            return None
        try:
            return self.verifier.verify(address)
        except Exception as e:
            logger.warning(f"Address verification failed for '{address}': {e}")
            return None

    def _persist_corrections(self, drafts: Iterable[_MarketDraft]) -> None:
        if self.corrections is None:
            return
        for draft in drafts:
            corrected = draft.verified_at is not None and draft.address != draft.seed_address
            if draft.days != draft.seed_days:
                # Once an earlier pass corrected the address, the stored row answers to the corrected key.
                keys = [draft.key]
                if corrected:
                    keys.append(self.normalizer.market_key(draft.name, draft.address))
                for key in dict.fromkeys(keys):
                    try:
                        self.corrections.update_market_days(key, draft.days)
                    except Exception as e:
                        logger.warning(f"Dropping days correction for '{key}': {e}")
            if corrected:
                try:
                    self.corrections.update_market_address(draft.key, draft.address)
                except Exception as e:
                    logger.warning(f"Dropping address correction for '{draft.key}': {e}")


def load_markets(
    store: "RecordStore",
    aggregator: MarketAggregator,
    liked: Collection[str] = (),
    status: str | None = "accepted",
) -> list[Market]:
    """Query vendors from the record store and group them."""
    return aggregator.group(store.query_vendors(status=status), liked=liked)
