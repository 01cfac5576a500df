"""JSON-file cache backends.

Entries are held in memory and the whole map is flushed to disk after every
write; the snapshot is loaded once at construction.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Optional

from ...errors import CacheUnavailable
from ...models.domain import Coordinate, CoordinateEntry
from ...persistence.filesystem import FileStorage
from .base import DEFAULT_DISTANCE_TTL, Clock, CoordinateCache, DistanceCache, distance_slot, parse_timestamp

logger = logging.getLogger(__name__)


class _JsonSnapshot:
    def __init__(self, storage: FileStorage, name: str) -> None:
        self.storage = storage
        self.path = storage.path_for(name)
        self.lock = threading.Lock()
        self.entries: dict[str, dict[str, Any]] = self._load()

    def _load(self) -> dict[str, dict[str, Any]]:
        try:
            data = self.storage.read_json(self.path, default={})
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Ignoring unreadable cache file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Ignoring cache file {self.path}: expected an object, got {type(data).__name__}")
            return {}
        return data

    def get(self, key: str) -> Optional[dict[str, Any]]:
        with self.lock:
            return self.entries.get(key)

    def set(self, key: str, value: dict[str, Any]) -> None:
        with self.lock:
            self.entries[key] = value
            try:
                self.storage.write_json(self.path, self.entries)
            except OSError as e:
                raise CacheUnavailable(f"could not flush {self.path}: {e}") from e


class JsonFileCoordinateCache(CoordinateCache):
    def __init__(self, storage: FileStorage | None = None, name: str = "coordinates", clock: Clock | None = None) -> None:
        super().__init__(clock=clock)
        self._snapshot = _JsonSnapshot(storage or FileStorage(), name)

    def _read(self, address_key: str) -> Optional[CoordinateEntry]:
        raw = self._snapshot.get(address_key)
        if raw is None:
            return None
        try:
            return CoordinateEntry(
                coordinate=Coordinate(float(raw["latitude"]), float(raw["longitude"])),
                resolved_at=parse_timestamp(raw["resolved_at"]),
                formatted_address=raw.get("formatted_address"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CacheUnavailable(f"malformed coordinate entry '{address_key}': {e}") from e

    def _write(self, address_key: str, entry: CoordinateEntry) -> None:
        self._snapshot.set(
            address_key,
            {
                "latitude": entry.coordinate.latitude,
                "longitude": entry.coordinate.longitude,
                "formatted_address": entry.formatted_address,
                "resolved_at": entry.resolved_at.isoformat(),
            },
        )


class JsonFileDistanceCache(DistanceCache):
    def __init__(
        self,
        storage: FileStorage | None = None,
        name: str = "distances",
        ttl: timedelta = DEFAULT_DISTANCE_TTL,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ttl=ttl, clock=clock)
        self._snapshot = _JsonSnapshot(storage or FileStorage(), name)

    def _read(self, origin_bucket: str, market_key: str) -> Optional[tuple[str, datetime]]:
        raw = self._snapshot.get(distance_slot(origin_bucket, market_key))
        if raw is None:
            return None
        try:
            return str(raw["distance_text"]), parse_timestamp(raw["computed_at"])
        except (KeyError, TypeError, ValueError) as e:
            raise CacheUnavailable(f"malformed distance entry {origin_bucket} -> {market_key}: {e}") from e

    def _write(self, origin_bucket: str, market_key: str, distance_text: str, computed_at: datetime) -> None:
        self._snapshot.set(
            distance_slot(origin_bucket, market_key),
            {"distance_text": distance_text, "computed_at": computed_at.isoformat()},
        )
