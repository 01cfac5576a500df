import httpx
import pytest

from market_distance.errors import AddressUnresolvable, RoutingUnavailable
from market_distance.models.domain import Coordinate
from market_distance.services.providers.google_maps import GoogleMapsClient

ORIGIN = Coordinate(39.7817, -89.6501)
DESTINATION = Coordinate(39.8017, -89.6436)


def _client(handler, api_key: str | None = "test-key") -> GoogleMapsClient:
    transport = httpx.MockTransport(handler)
    return GoogleMapsClient(
        api_key=api_key,
        geocode_url="https://maps.test/geocode/json",
        distance_matrix_url="https://maps.test/distancematrix/json",
        client=httpx.Client(transport=transport),
    )


def test_geocode_returns_coordinate_and_formatted_address():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "status": "OK",
                "results": [
                    {
                        "geometry": {"location": {"lat": 39.8017, "lng": -89.6436}},
                        "formatted_address": "123 Main St, Springfield, IL 62701, USA",
                        "place_id": "place-1",
                    }
                ],
            },
        )

    result = _client(handler).geocode("123 Main St, Springfield")

    assert seen["params"]["address"] == "123 Main St, Springfield"
    assert seen["params"]["key"] == "test-key"
    assert result.coordinate == DESTINATION
    assert result.formatted_address == "123 Main St, Springfield, IL 62701, USA"
    assert result.place_id == "place-1"


def test_geocode_zero_results_is_unresolvable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})

    with pytest.raises(AddressUnresolvable):
        _client(handler).geocode("nowhere at all")


def test_geocode_without_api_key_never_calls_provider():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("provider should not be called")

    with pytest.raises(AddressUnresolvable):
        _client(handler, api_key=None).geocode("123 Main St")


def test_route_distance_parses_distance_matrix_element():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "status": "OK",
                "rows": [
                    {
                        "elements": [
                            {
                                "status": "OK",
                                "distance": {"text": "2.2 mi", "value": 3541},
                                "duration": {"text": "7 mins", "value": 420},
                            }
                        ]
                    }
                ],
            },
        )

    leg = _client(handler).route_distance(ORIGIN, DESTINATION)

    assert seen["params"]["origins"] == "39.7817,-89.6501"
    assert seen["params"]["destinations"] == "39.8017,-89.6436"
    assert seen["params"]["units"] == "imperial"
    assert leg.distance_text == "2.2 mi"
    assert leg.miles == 2.2
    assert leg.duration_text == "7 mins"
    assert leg.maps_url == "https://maps.google.com/maps?saddr=39.7817,-89.6501&daddr=39.8017,-89.6436"


def test_route_distance_element_failure_is_routing_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "OK", "rows": [{"elements": [{"status": "ZERO_RESULTS"}]}]})

    with pytest.raises(RoutingUnavailable):
        _client(handler).route_distance(ORIGIN, DESTINATION)


def test_route_distance_quota_error_is_routing_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "OVER_QUERY_LIMIT", "rows": []})

    with pytest.raises(RoutingUnavailable):
        _client(handler).route_distance(ORIGIN, DESTINATION)


def test_route_distance_http_and_transport_errors_are_routing_unavailable():
    def server_error(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    def connection_error(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RoutingUnavailable):
        _client(server_error).route_distance(ORIGIN, DESTINATION)
    with pytest.raises(RoutingUnavailable):
        _client(connection_error).route_distance(ORIGIN, DESTINATION)


def test_route_distance_is_called_once_without_retries():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    with pytest.raises(RoutingUnavailable):
        _client(handler).route_distance(ORIGIN, DESTINATION)
    assert len(calls) == 1


def test_reverse_geocode_extracts_zipcode_city_state():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["latlng"] == "39.7817,-89.6501"
        return httpx.Response(
            200,
            json={
                "status": "OK",
                "results": [
                    {
                        "formatted_address": "1 Capitol Ave, Springfield, IL 62701, USA",
                        "address_components": [
                            {"long_name": "Springfield", "short_name": "Springfield", "types": ["locality"]},
                            {"long_name": "Illinois", "short_name": "IL", "types": ["administrative_area_level_1"]},
                        ],
                    },
                    {
                        "address_components": [
                            {"long_name": "62701", "short_name": "62701", "types": ["postal_code"]},
                        ]
                    },
                ],
            },
        )

    result = _client(handler).reverse_geocode(ORIGIN)

    assert result.zipcode == "62701"
    assert result.city == "Springfield"
    assert result.state == "IL"
    assert result.formatted_address == "1 Capitol Ave, Springfield, IL 62701, USA"
