"""Supabase-table cache backends.

Expected tables::

    geocode_cache(address_key text primary key, latitude float8, longitude float8,
                  formatted_address text, resolved_at timestamptz)
    distance_cache(origin_bucket text, market_key text, distance_text text,
                   computed_at timestamptz, primary key (origin_bucket, market_key))
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from ...config import settings
from ...errors import CacheUnavailable
from ...models.domain import Coordinate, CoordinateEntry
from .base import DEFAULT_DISTANCE_TTL, Clock, CoordinateCache, DistanceCache, parse_timestamp


def _first_row(response: Any) -> Optional[dict]:
    rows = getattr(response, "data", None) or []
    return rows[0] if rows else None


class SupabaseCoordinateCache(CoordinateCache):
    def __init__(self, client: Any, table: str | None = None, clock: Clock | None = None) -> None:
        super().__init__(clock=clock)
        if client is None:
            raise ValueError("Supabase client is not configured.")
        self.client = client
        self.table = table or settings.geocode_cache_table

    def _read(self, address_key: str) -> Optional[CoordinateEntry]:
        try:
            response = self.client.table(self.table).select("*").eq("address_key", address_key).limit(1).execute()
            row = _first_row(response)
            if row is None:
                return None
            return CoordinateEntry(
                coordinate=Coordinate(float(row["latitude"]), float(row["longitude"])),
                resolved_at=parse_timestamp(row["resolved_at"]),
                formatted_address=row.get("formatted_address"),
            )
        except Exception as e:
            raise CacheUnavailable(str(e)) from e

    def _write(self, address_key: str, entry: CoordinateEntry) -> None:
        row = {
            "address_key": address_key,
            "latitude": entry.coordinate.latitude,
            "longitude": entry.coordinate.longitude,
            "formatted_address": entry.formatted_address,
            "resolved_at": entry.resolved_at.isoformat(),
        }
        try:
            self.client.table(self.table).upsert(row, on_conflict="address_key").execute()
        except Exception as e:
            raise CacheUnavailable(str(e)) from e


class SupabaseDistanceCache(DistanceCache):
    def __init__(
        self,
        client: Any,
        table: str | None = None,
        ttl: timedelta = DEFAULT_DISTANCE_TTL,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ttl=ttl, clock=clock)
        if client is None:
            raise ValueError("Supabase client is not configured.")
        self.client = client
        self.table = table or settings.distance_cache_table

    def _read(self, origin_bucket: str, market_key: str) -> Optional[tuple[str, datetime]]:
        try:
            response = (
                self.client.table(self.table)
                .select("distance_text, computed_at")
                .eq("origin_bucket", origin_bucket)
                .eq("market_key", market_key)
                .limit(1)
                .execute()
            )
            row = _first_row(response)
            if row is None:
                return None
            return str(row["distance_text"]), parse_timestamp(row["computed_at"])
        except Exception as e:
            raise CacheUnavailable(str(e)) from e

    def _write(self, origin_bucket: str, market_key: str, distance_text: str, computed_at: datetime) -> None:
        row = {
            "origin_bucket": origin_bucket,
            "market_key": market_key,
            "distance_text": distance_text,
            "computed_at": computed_at.isoformat(),
        }
        try:
            self.client.table(self.table).upsert(row, on_conflict="origin_bucket,market_key").execute()
        except Exception as e:
            raise CacheUnavailable(str(e)) from e
