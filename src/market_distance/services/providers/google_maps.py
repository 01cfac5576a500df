"""HTTP client for the Google Geocoding and Distance Matrix endpoints."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import settings
from ...errors import AddressUnresolvable, RoutingUnavailable
from ...models.domain import Coordinate, GeocodeResult, ReverseGeocodeResult, RouteLeg
from ..geospatial import METERS_TO_MILES

logger = logging.getLogger(__name__)


def directions_url(origin: Coordinate, destination: Coordinate) -> str:
    return f"https://maps.google.com/maps?saddr={origin.as_param()}&daddr={destination.as_param()}"


class GoogleMapsClient:
    """One-shot calls against Google Maps; every failure is raised as a typed engine error.

    Calls are never retried here. The batch scheduler owns the fallback path,
    and a retry would only stretch the worst-case latency of a group.
    """

    def __init__(
        self,
        api_key: str | None = None,
        geocode_url: str | None = None,
        distance_matrix_url: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.geocode_url = geocode_url or settings.geocode_url
        self.distance_matrix_url = distance_matrix_url or settings.distance_matrix_url
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._client = client

    def _get_client(self) -> httpx.Client:
        if self._client is not None:
            return self._client
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=5.0))

    def _get_json(self, url: str, params: dict[str, Any]) -> dict:
        client = self._get_client()
        try:
            response = client.get(url, params={**params, "key": self.api_key})
            response.raise_for_status()
            data = response.json()
        finally:
            if client is not self._client:
                client.close()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected response body of type {type(data).__name__}")
        return data

    def geocode(self, address: str) -> GeocodeResult:
        """Forward geocode an address to a coordinate."""
        if not address or not address.strip():
            raise AddressUnresolvable(address or "", "empty address")
        if not self.api_key:
            raise AddressUnresolvable(address, "Google Maps API key not configured")

        try:
            data = self._get_json(self.geocode_url, {"address": address})
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Geocoding request failed for '{address}': {e}")
            raise AddressUnresolvable(address, str(e)) from e

        status = data.get("status")
        results = data.get("results") or []
        if status != "OK" or not results:
            reason = data.get("error_message") or status or "no results"
            logger.warning(f"Geocoding failed for '{address}': {reason}")
            raise AddressUnresolvable(address, f"Geocoding failed: {reason}")

        first = results[0]
        try:
            location = first["geometry"]["location"]
            coordinate = Coordinate(float(location["lat"]), float(location["lng"]))
        except (KeyError, TypeError, ValueError) as e:
            raise AddressUnresolvable(address, f"malformed geocoding result: {e}") from e

        logger.info(f"Geocoded '{address}' to {coordinate.latitude}, {coordinate.longitude}")
        return GeocodeResult(
            coordinate=coordinate,
            formatted_address=first.get("formatted_address"),
            place_id=first.get("place_id"),
        )

    def reverse_geocode(self, coordinate: Coordinate) -> ReverseGeocodeResult:
        """Resolve a coordinate to zipcode, city and state for location pickers."""
        label = coordinate.as_param()
        if not self.api_key:
            raise AddressUnresolvable(label, "Google Maps API key not configured")

        try:
            data = self._get_json(self.geocode_url, {"latlng": label})
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Reverse geocoding request failed for {label}: {e}")
            raise AddressUnresolvable(label, str(e)) from e

        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            raise AddressUnresolvable(label, f"Reverse geocoding failed: {data.get('status')}")

        zipcode = city = state = None
        for result in results:
            for component in result.get("address_components") or []:
                types = component.get("types") or []
                if "postal_code" in types and not zipcode:
                    zipcode = component.get("long_name")
                if "locality" in types and not city:
                    city = component.get("long_name")
                if "administrative_area_level_1" in types and not state:
                    state = component.get("short_name")
            if zipcode and city and state:
                break

        return ReverseGeocodeResult(
            zipcode=zipcode,
            city=city,
            state=state,
            formatted_address=results[0].get("formatted_address"),
        )

    def route_distance(self, origin: Coordinate, destination: Coordinate) -> RouteLeg:
        """Driving distance between two points from the Distance Matrix API."""
        if not self.api_key:
            raise RoutingUnavailable("Google Maps API key not configured")

        params = {
            "origins": origin.as_param(),
            "destinations": destination.as_param(),
            "units": "imperial",
        }
        try:
            data = self._get_json(self.distance_matrix_url, params)
        except (httpx.HTTPError, ValueError) as e:
            raise RoutingUnavailable(f"Distance Matrix request failed: {e}") from e

        rows = data.get("rows") or []
        if data.get("status") != "OK" or not rows or not rows[0].get("elements"):
            raise RoutingUnavailable(f"Distance Matrix API failed: {data.get('status')}")

        element = rows[0]["elements"][0]
        if element.get("status") != "OK":
            raise RoutingUnavailable(f"Distance calculation failed: {element.get('status')}")

        try:
            distance_text = element["distance"]["text"]
            meters = float(element["distance"]["value"])
        except (KeyError, TypeError, ValueError) as e:
            raise RoutingUnavailable(f"Malformed Distance Matrix element: {e}") from e

        return RouteLeg(
            distance_text=distance_text,
            miles=round(meters * METERS_TO_MILES, 1),
            duration_text=(element.get("duration") or {}).get("text"),
            maps_url=directions_url(origin, destination),
            raw=element,
        )
