"""Market grouping and deduplication."""

from .aggregator import CachedAddressVerifier, MarketAggregator, VerifiedAddress, load_markets

__all__ = ["CachedAddressVerifier", "MarketAggregator", "VerifiedAddress", "load_markets"]
