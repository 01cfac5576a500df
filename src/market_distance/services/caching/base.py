"""Cache contracts shared by every storage backend.

Backends only implement raw ``_read``/``_write`` and raise ``CacheUnavailable``
on I/O problems; the public ``get``/``put`` here turn those failures into misses
so a broken store never blocks a caller.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ...errors import CacheUnavailable
from ...models.domain import Coordinate, CoordinateEntry, DistanceLookup

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DEFAULT_DISTANCE_TTL = timedelta(hours=24)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CoordinateCache(ABC):
    """Address key -> coordinate. Entries never expire; later writes win."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or utcnow

    @abstractmethod
    def _read(self, address_key: str) -> Optional[CoordinateEntry]:
        ...

    @abstractmethod
    def _write(self, address_key: str, entry: CoordinateEntry) -> None:
        ...

    def get_entry(self, address_key: str) -> Optional[CoordinateEntry]:
        if not address_key:
            return None
        try:
            entry = self._read(address_key)
        except CacheUnavailable as e:
            logger.error(f"Coordinate cache read failed for '{address_key}': {e}")
            return None
        if entry is None:
            logger.debug(f"Coordinate cache MISS: {address_key}")
        return entry

    def get(self, address_key: str) -> Optional[Coordinate]:
        entry = self.get_entry(address_key)
        return entry.coordinate if entry else None

    def put(self, address_key: str, coordinate: Coordinate, formatted_address: str | None = None) -> None:
        if not address_key:
            return
        entry = CoordinateEntry(coordinate=coordinate, resolved_at=self.clock(), formatted_address=formatted_address)
        try:
            self._write(address_key, entry)
        except CacheUnavailable as e:
            logger.error(f"Coordinate cache write failed for '{address_key}': {e}")


class DistanceCache(ABC):
    """(origin bucket, market key) -> distance text, fresh for ``ttl``."""

    def __init__(self, ttl: timedelta = DEFAULT_DISTANCE_TTL, clock: Clock | None = None) -> None:
        self.ttl = ttl
        self.clock = clock or utcnow

    @abstractmethod
    def _read(self, origin_bucket: str, market_key: str) -> Optional[tuple[str, datetime]]:
        ...

    @abstractmethod
    def _write(self, origin_bucket: str, market_key: str, distance_text: str, computed_at: datetime) -> None:
        ...

    def get(self, origin_bucket: str, market_key: str) -> Optional[DistanceLookup]:
        try:
            stored = self._read(origin_bucket, market_key)
        except CacheUnavailable as e:
            logger.error(f"Distance cache read failed for {origin_bucket} -> {market_key}: {e}")
            return None
        if stored is None:
            return None
        distance_text, computed_at = stored
        is_fresh = self.clock() - computed_at < self.ttl
        return DistanceLookup(distance_text=distance_text, computed_at=computed_at, is_fresh=is_fresh)

    def put(self, origin_bucket: str, market_key: str, distance_text: str) -> None:
        try:
            self._write(origin_bucket, market_key, distance_text, self.clock())
        except CacheUnavailable as e:
            logger.error(f"Distance cache write failed for {origin_bucket} -> {market_key}: {e}")


def distance_slot(origin_bucket: str, market_key: str) -> str:
    """Flat key used by backends that store both shapes in one namespace."""
    return f"{origin_bucket}|{market_key}"


def parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
