"""Process-local cache backends."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Optional

from ...models.domain import CoordinateEntry
from .base import DEFAULT_DISTANCE_TTL, Clock, CoordinateCache, DistanceCache, distance_slot


class InMemoryCoordinateCache(CoordinateCache):
    def __init__(self, clock: Clock | None = None) -> None:
        super().__init__(clock=clock)
        self._entries: dict[str, CoordinateEntry] = {}
        self._lock = threading.Lock()

    def _read(self, address_key: str) -> Optional[CoordinateEntry]:
        with self._lock:
            return self._entries.get(address_key)

    def _write(self, address_key: str, entry: CoordinateEntry) -> None:
        with self._lock:
            self._entries[address_key] = entry

    def __len__(self) -> int:
        return len(self._entries)


class InMemoryDistanceCache(DistanceCache):
    def __init__(self, ttl: timedelta = DEFAULT_DISTANCE_TTL, clock: Clock | None = None) -> None:
        super().__init__(ttl=ttl, clock=clock)
        self._entries: dict[str, tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def _read(self, origin_bucket: str, market_key: str) -> Optional[tuple[str, datetime]]:
        with self._lock:
            return self._entries.get(distance_slot(origin_bucket, market_key))

    def _write(self, origin_bucket: str, market_key: str, distance_text: str, computed_at: datetime) -> None:
        with self._lock:
            self._entries[distance_slot(origin_bucket, market_key)] = (distance_text, computed_at)

    def __len__(self) -> int:
        return len(self._entries)
