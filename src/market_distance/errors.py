"""Exceptions raised inside the distance engine.

None of these reach callers of the orchestrator or the aggregator; they mark the
points where a tier gives up so the next one can take over.
"""


class MarketDistanceError(Exception):
    """Base class for engine errors."""


class AddressUnresolvable(MarketDistanceError):
    """The geocoding provider could not turn an address into coordinates."""

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"Could not geocode '{address}': {reason}")
        self.address = address
        self.reason = reason


class RoutingUnavailable(MarketDistanceError):
    """The routing provider did not return a usable distance."""


class CacheUnavailable(MarketDistanceError):
    """The cache storage backend failed with an I/O error."""
