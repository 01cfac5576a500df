"""External geocoding and routing providers."""

from .google_maps import GoogleMapsClient, directions_url

__all__ = ["GoogleMapsClient", "directions_url"]
