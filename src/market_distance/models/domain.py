"""Domain models for vendors, markets and resolved distances."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

UNKNOWN_DISTANCE = "-- mi"


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float

    def as_param(self) -> str:
        """Render as the ``lat,lng`` pair Google endpoints expect."""
        return f"{self.latitude},{self.longitude}"


@dataclass(frozen=True, slots=True)
class CoordinateEntry:
    """A geocoded address as stored in the coordinate cache."""

    coordinate: Coordinate
    resolved_at: datetime
    formatted_address: Optional[str] = None


@dataclass(frozen=True, slots=True)
class DistanceLookup:
    """Result of a distance cache read; ``is_fresh`` is False once the TTL has elapsed."""

    distance_text: str
    computed_at: datetime
    is_fresh: bool


@dataclass(frozen=True, slots=True)
class MarketAssociation:
    """One market a vendor sells at, as entered by the vendor."""

    name: str
    address: str
    place_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Vendor:
    """Represents an accepted vendor record read from the record store."""

    id: str
    store_name: str
    markets: tuple[MarketAssociation, ...] = ()
    operating_days: frozenset[str] = frozenset()
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def coordinate(self) -> Optional[Coordinate]:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(self.latitude, self.longitude)

    @property
    def primary_address(self) -> Optional[str]:
        for association in self.markets:
            if association.address:
                return association.address
        return None


@dataclass(frozen=True, slots=True)
class VendorRef:
    id: str
    store_name: str


@dataclass(frozen=True, slots=True)
class Market:
    """A physical market built from every vendor record that references it."""

    key: str
    name: str
    address: str
    operating_days: frozenset[str]
    vendors: tuple[VendorRef, ...]
    place_id: Optional[str] = None
    coordinate: Optional[Coordinate] = None
    address_verified: bool = False


@dataclass(frozen=True, slots=True)
class ResolutionTarget:
    """Anything that needs a distance from the user: a market or a vendor."""

    target_id: str
    address: Optional[str] = None
    coordinate: Optional[Coordinate] = None

    @classmethod
    def from_market(cls, market: Market) -> "ResolutionTarget":
        return cls(target_id=market.key, address=market.address, coordinate=market.coordinate)

    @classmethod
    def from_vendor(cls, vendor: Vendor) -> "ResolutionTarget":
        return cls(target_id=vendor.id, address=vendor.primary_address, coordinate=vendor.coordinate)


@dataclass(frozen=True, slots=True)
class ResolvedDistance:
    distance_text: str
    miles: Optional[float]
    source: str
    duration_text: Optional[str] = None
    maps_url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class DistanceResult:
    target_id: str
    distance_text: str
    miles: Optional[float]
    source: str
    duration_text: Optional[str] = None
    maps_url: Optional[str] = None
    coordinate: Optional[Coordinate] = None

    @property
    def is_known(self) -> bool:
        return self.source != "unavailable"

    @classmethod
    def unavailable(cls, target_id: str) -> "DistanceResult":
        return cls(target_id=target_id, distance_text=UNKNOWN_DISTANCE, miles=None, source="unavailable")

    @classmethod
    def from_resolved(
        cls, target_id: str, resolved: ResolvedDistance, coordinate: Optional[Coordinate] = None
    ) -> "DistanceResult":
        return cls(
            target_id=target_id,
            distance_text=resolved.distance_text,
            miles=resolved.miles,
            source=resolved.source,
            duration_text=resolved.duration_text,
            maps_url=resolved.maps_url,
            coordinate=coordinate,
        )


@dataclass(slots=True)
class GeocodeResult:
    coordinate: Coordinate
    formatted_address: Optional[str] = None
    place_id: Optional[str] = None


@dataclass(slots=True)
class ReverseGeocodeResult:
    zipcode: Optional[str]
    city: Optional[str]
    state: Optional[str]
    formatted_address: Optional[str]


@dataclass(slots=True)
class RouteLeg:
    distance_text: str
    miles: float
    duration_text: Optional[str] = None
    maps_url: Optional[str] = None
    raw: dict = field(default_factory=dict)
