from datetime import datetime, timedelta, timezone
from pathlib import Path

from market_distance.errors import CacheUnavailable
from market_distance.models.domain import Coordinate
from market_distance.persistence.filesystem import FileStorage
from market_distance.services.caching import (
    InMemoryCoordinateCache,
    InMemoryDistanceCache,
    JsonFileCoordinateCache,
    JsonFileDistanceCache,
    SupabaseCoordinateCache,
    SupabaseDistanceCache,
)


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2025, 6, 7, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class _BrokenDistanceCache(InMemoryDistanceCache):
    def _read(self, origin_bucket, market_key):
        raise CacheUnavailable("disk on fire")

    def _write(self, origin_bucket, market_key, distance_text, computed_at):
        raise CacheUnavailable("disk on fire")


def test_distance_entry_is_fresh_within_ttl():
    clock = _Clock()
    cache = InMemoryDistanceCache(clock=clock)
    cache.put("40.000,-73.000", "main-st-market-123-main-st", "2.2 mi")

    clock.advance(hours=23)
    lookup = cache.get("40.000,-73.000", "main-st-market-123-main-st")

    assert lookup is not None
    assert lookup.distance_text == "2.2 mi"
    assert lookup.is_fresh


def test_distance_entry_older_than_ttl_is_found_but_stale():
    clock = _Clock()
    cache = InMemoryDistanceCache(clock=clock)
    cache.put("40.000,-73.000", "market", "2.2 mi")

    clock.advance(hours=25)
    lookup = cache.get("40.000,-73.000", "market")

    assert lookup is not None
    assert lookup.is_fresh is False


def test_stale_entry_is_superseded_by_a_new_put():
    clock = _Clock()
    cache = InMemoryDistanceCache(clock=clock)
    cache.put("b", "market", "2.2 mi")
    clock.advance(hours=30)

    cache.put("b", "market", "2.4 mi")

    lookup = cache.get("b", "market")
    assert lookup.distance_text == "2.4 mi"
    assert lookup.is_fresh
    assert len(cache) == 1


def test_distance_cache_is_keyed_by_origin_bucket():
    cache = InMemoryDistanceCache()
    cache.put("40.000,-73.000", "market", "2.2 mi")

    assert cache.get("41.000,-73.000", "market") is None


def test_coordinate_cache_last_write_wins():
    cache = InMemoryCoordinateCache()
    cache.put("123 main st", Coordinate(40.0, -73.0))
    cache.put("123 main st", Coordinate(40.0001, -73.0001), "123 Main St, Springfield, IL")

    assert cache.get("123 main st") == Coordinate(40.0001, -73.0001)
    assert cache.get_entry("123 main st").formatted_address == "123 Main St, Springfield, IL"
    assert cache.get("") is None


def test_storage_errors_degrade_to_misses():
    cache = _BrokenDistanceCache()

    cache.put("b", "market", "2.2 mi")

    assert cache.get("b", "market") is None


def test_json_file_caches_survive_a_reload(tmp_path: Path):
    storage = FileStorage(root=tmp_path)
    coordinates = JsonFileCoordinateCache(storage)
    distances = JsonFileDistanceCache(storage)
    coordinates.put("123 main st", Coordinate(40.0, -73.0), "123 Main St")
    distances.put("40.000,-73.000", "market", "2.2 mi")

    reloaded_coordinates = JsonFileCoordinateCache(FileStorage(root=tmp_path))
    reloaded_distances = JsonFileDistanceCache(FileStorage(root=tmp_path))

    assert reloaded_coordinates.get("123 main st") == Coordinate(40.0, -73.0)
    lookup = reloaded_distances.get("40.000,-73.000", "market")
    assert lookup.distance_text == "2.2 mi"
    assert lookup.is_fresh
    assert (tmp_path / "distances.json").exists()
    assert not (tmp_path / "distances.json.tmp").exists()


def test_corrupt_cache_file_starts_empty(tmp_path: Path):
    (tmp_path / "distances.json").write_text("{not json", encoding="utf-8")

    cache = JsonFileDistanceCache(FileStorage(root=tmp_path))

    assert cache.get("b", "market") is None
    cache.put("b", "market", "1.0 mi")
    assert cache.get("b", "market").distance_text == "1.0 mi"


def test_supabase_caches_upsert_and_read(fake_supabase):
    clock = _Clock()
    coordinates = SupabaseCoordinateCache(fake_supabase, table="geocode_cache", clock=clock)
    distances = SupabaseDistanceCache(fake_supabase, table="distance_cache", clock=clock)

    coordinates.put("123 main st", Coordinate(40.0, -73.0), "123 Main St")
    coordinates.put("123 main st", Coordinate(40.5, -73.5), "123 Main St")
    distances.put("40.000,-73.000", "market", "2.2 mi")
    distances.put("40.000,-73.000", "market", "2.3 mi")

    assert coordinates.get("123 main st") == Coordinate(40.5, -73.5)
    assert distances.get("40.000,-73.000", "market").distance_text == "2.3 mi"
    assert len(fake_supabase.tables["geocode_cache"].rows) == 1
    assert len(fake_supabase.tables["distance_cache"].rows) == 1


def test_supabase_outage_is_a_cache_miss(fake_supabase):
    distances = SupabaseDistanceCache(fake_supabase, table="distance_cache")
    fake_supabase.tables["distance_cache"].fail = True

    distances.put("b", "market", "2.2 mi")

    assert distances.get("b", "market") is None
