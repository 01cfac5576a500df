"""Distance strategies: routing provider first, great-circle estimate as the floor."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from ...errors import RoutingUnavailable
from ...models.domain import Coordinate, ResolvedDistance, RouteLeg
from ..geospatial import format_miles, haversine_miles

logger = logging.getLogger(__name__)


class RouteProvider(Protocol):
    def route_distance(self, origin: Coordinate, destination: Coordinate) -> RouteLeg:
        ...


class DistanceResolver(Protocol):
    """A single tier. Raises ``RoutingUnavailable`` when it cannot answer."""

    name: str

    def resolve(self, origin: Coordinate, destination: Coordinate) -> ResolvedDistance:
        ...


class HaversineEstimator:
    """Straight-line distance; never fails, so it always closes a chain."""

    name = "haversine"

    def resolve(self, origin: Coordinate, destination: Coordinate) -> ResolvedDistance:
        miles = haversine_miles(origin, destination)
        return ResolvedDistance(distance_text=format_miles(miles), miles=miles, source=self.name)


class RoutingResolver:
    name = "routing"

    def __init__(self, provider: RouteProvider) -> None:
        self.provider = provider

    def resolve(self, origin: Coordinate, destination: Coordinate) -> ResolvedDistance:
        try:
            leg = self.provider.route_distance(origin, destination)
        except RoutingUnavailable:
            raise
        except Exception as e:
            raise RoutingUnavailable(f"Routing provider error: {e}") from e
        return ResolvedDistance(
            distance_text=leg.distance_text,
            miles=leg.miles,
            source=self.name,
            duration_text=leg.duration_text,
            maps_url=leg.maps_url,
        )


class FallbackChain:
    """Try each tier in order and return the first answer."""

    name = "chain"

    def __init__(self, tiers: Sequence[DistanceResolver]) -> None:
        if not tiers:
            raise ValueError("At least one distance resolver is required.")
        self.tiers = list(tiers)

    def resolve(self, origin: Coordinate, destination: Coordinate) -> ResolvedDistance:
        last_error: RoutingUnavailable | None = None
        for tier in self.tiers:
            try:
                return tier.resolve(origin, destination)
            except RoutingUnavailable as e:
                logger.warning(f"{tier.name} resolver unavailable, falling back: {e}")
                last_error = e
        raise RoutingUnavailable(f"All distance resolvers failed: {last_error}")


def default_chain(provider: RouteProvider | None) -> FallbackChain:
    tiers: list[DistanceResolver] = []
    if provider is not None:
        tiers.append(RoutingResolver(provider))
    tiers.append(HaversineEstimator())
    return FallbackChain(tiers)
