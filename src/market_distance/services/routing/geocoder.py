"""Address to coordinate resolution backed by the coordinate cache."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from ...errors import AddressUnresolvable
from ...models.domain import Coordinate, CoordinateEntry, GeocodeResult
from ..caching.base import CoordinateCache
from ..normalization import AddressNormalizer, default_normalizer

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def geocode(self, address: str) -> GeocodeResult:
        ...


class CoordinateResolver:
    """Cache hit, else geocode once and remember the answer."""

    def __init__(
        self,
        cache: CoordinateCache,
        geocoder: Geocoder | None,
        normalizer: AddressNormalizer | None = None,
    ) -> None:
        self.cache = cache
        self.geocoder = geocoder
        self.normalizer = normalizer or default_normalizer

    def cached(self, address: str | None) -> Optional[Coordinate]:
        """Cache-only lookup; never touches the network."""
        return self.cache.get(self.normalizer.address_key(address))

    def resolve_entry(self, address: str | None) -> Optional[CoordinateEntry]:
        key = self.normalizer.address_key(address)
        if not key:
            return None

        entry = self.cache.get_entry(key)
        if entry is not None:
            return entry

        if self.geocoder is None:
            logger.warning(f"No geocoder configured; cannot resolve '{address}'")
            return None

        try:
            result = self.geocoder.geocode(self.normalizer.canonicalize(address))
        except AddressUnresolvable as e:
            logger.warning(f"Address unresolvable: {e}")
            return None

        self.cache.put(key, result.coordinate, result.formatted_address)
        return self.cache.get_entry(key) or CoordinateEntry(
            coordinate=result.coordinate,
            resolved_at=self.cache.clock(),
            formatted_address=result.formatted_address,
        )

    def resolve(self, address: str | None) -> Optional[Coordinate]:
        entry = self.resolve_entry(address)
        return entry.coordinate if entry else None
