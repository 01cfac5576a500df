"""Coordinate and distance caches."""

from .base import CoordinateCache, DistanceCache
from .file import JsonFileCoordinateCache, JsonFileDistanceCache
from .memory import InMemoryCoordinateCache, InMemoryDistanceCache
from .supabase import SupabaseCoordinateCache, SupabaseDistanceCache

__all__ = [
    "CoordinateCache",
    "DistanceCache",
    "InMemoryCoordinateCache",
    "InMemoryDistanceCache",
    "JsonFileCoordinateCache",
    "JsonFileDistanceCache",
    "SupabaseCoordinateCache",
    "SupabaseDistanceCache",
]
