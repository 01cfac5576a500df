"""Distance resolution and market aggregation for the storefront."""

from .main import DistanceEngine, create_distance_engine
from .models.domain import Coordinate, Market, MarketAssociation, ResolutionTarget, Vendor

__all__ = [
    "Coordinate",
    "DistanceEngine",
    "Market",
    "MarketAssociation",
    "ResolutionTarget",
    "Vendor",
    "create_distance_engine",
]
