"""Wiring entry point: builds the distance engine from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import httpx

from .config import Settings, settings as default_settings
from .db.supabase import get_supabase_client
from .persistence.filesystem import FileStorage
from .persistence.records import InMemoryRecordStore, RecordStore, SupabaseRecordStore
from .services.caching import (
    CoordinateCache,
    DistanceCache,
    InMemoryCoordinateCache,
    InMemoryDistanceCache,
    JsonFileCoordinateCache,
    JsonFileDistanceCache,
    SupabaseCoordinateCache,
    SupabaseDistanceCache,
)
from .services.markets.aggregator import CachedAddressVerifier, MarketAggregator
from .services.normalization import AddressNormalizer
from .services.orchestrator import ResolutionOrchestrator
from .services.providers.google_maps import GoogleMapsClient
from .services.routing.batch import BatchScheduler
from .services.routing.geocoder import CoordinateResolver
from .services.routing.resolvers import default_chain

logger = logging.getLogger(__name__)


@dataclass
class DistanceEngine:
    settings: Settings
    maps: GoogleMapsClient
    normalizer: AddressNormalizer
    coordinate_cache: CoordinateCache
    distance_cache: DistanceCache
    coordinates: CoordinateResolver
    scheduler: BatchScheduler
    orchestrator: ResolutionOrchestrator
    aggregator: MarketAggregator
    record_store: RecordStore

    def close(self) -> None:
        self.orchestrator.close()


def build_caches(cfg: Settings, supabase_client: Any = None) -> tuple[CoordinateCache, DistanceCache]:
    ttl = timedelta(hours=cfg.distance_ttl_hours)
    if cfg.cache_backend == "supabase":
        client = supabase_client if supabase_client is not None else get_supabase_client(cfg)
        if client is not None:
            return (
                SupabaseCoordinateCache(client, table=cfg.geocode_cache_table),
                SupabaseDistanceCache(client, table=cfg.distance_cache_table, ttl=ttl),
            )
        logger.warning("Supabase cache backend requested but not configured; using in-memory caches")
    elif cfg.cache_backend == "file":
        storage = FileStorage(root=cfg.cache_root)
        return JsonFileCoordinateCache(storage), JsonFileDistanceCache(storage, ttl=ttl)
    return InMemoryCoordinateCache(), InMemoryDistanceCache(ttl=ttl)


def build_record_store(cfg: Settings, normalizer: AddressNormalizer, supabase_client: Any = None) -> RecordStore:
    client = supabase_client if supabase_client is not None else get_supabase_client(cfg)
    if client is None:
        logger.info("Supabase not configured - market corrections are kept in memory only")
        return InMemoryRecordStore()
    return SupabaseRecordStore(
        client,
        normalizer=normalizer,
        vendor_table=cfg.vendor_table,
        market_table=cfg.market_table,
    )


def create_distance_engine(
    cfg: Optional[Settings] = None,
    *,
    http_client: httpx.Client | None = None,
    supabase_client: Any = None,
) -> DistanceEngine:
    cfg = cfg or default_settings
    normalizer = AddressNormalizer(cfg.address_suffixes)
    maps = GoogleMapsClient(
        api_key=cfg.google_maps_api_key,
        geocode_url=cfg.geocode_url,
        distance_matrix_url=cfg.distance_matrix_url,
        timeout=cfg.http_timeout_seconds,
        client=http_client,
    )
    coordinate_cache, distance_cache = build_caches(cfg, supabase_client)
    record_store = build_record_store(cfg, normalizer, supabase_client)

    coordinates = CoordinateResolver(coordinate_cache, maps, normalizer)
    scheduler = BatchScheduler(
        coordinates,
        default_chain(maps),
        distance_cache,
        batch_size=cfg.batch_size,
        delay_seconds=cfg.batch_delay_seconds,
        bucket_precision=cfg.origin_bucket_precision,
    )
    orchestrator = ResolutionOrchestrator(
        distance_cache,
        scheduler,
        coordinates,
        bucket_precision=cfg.origin_bucket_precision,
        record_store=record_store,
    )
    aggregator = MarketAggregator(
        normalizer=normalizer,
        verifier=CachedAddressVerifier(coordinate_cache, normalizer),
        corrections=record_store,
    )
    return DistanceEngine(
        settings=cfg,
        maps=maps,
        normalizer=normalizer,
        coordinate_cache=coordinate_cache,
        distance_cache=distance_cache,
        coordinates=coordinates,
        scheduler=scheduler,
        orchestrator=orchestrator,
        aggregator=aggregator,
        record_store=record_store,
    )
