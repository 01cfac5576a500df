"""Coordinate resolution, distance strategies and batched scheduling."""

from .batch import BatchScheduler, partition
from .geocoder import CoordinateResolver
from .resolvers import FallbackChain, HaversineEstimator, RoutingResolver, default_chain

__all__ = [
    "BatchScheduler",
    "CoordinateResolver",
    "FallbackChain",
    "HaversineEstimator",
    "RoutingResolver",
    "default_chain",
    "partition",
]
