# ==============================================================================
# Tests for Geo Lookup — ipapi.py
# ==============================================================================
"""
Tests for IpApiGeoLookup with requests.get patched out.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from webanalytics.infrastructure.geo import (
    EMPTY_GEO,
    LOCAL_GEO,
    IpApiGeoLookup,
    NullGeoLookup,
    is_local_address,
)

REQUESTS_GET = "webanalytics.infrastructure.geo.ipapi.requests.get"

BERLIN_PAYLOAD = {
    "ip": "8.8.8.8",
    "city": "Berlin",
    "region": "Land Berlin",
    "country_code": "DE",
    "country_name": "Germany",
    "latitude": 52.5196,
    "longitude": "13.4069",
    "timezone": "Europe/Berlin",
}


def _response(payload=None) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    return response


@pytest.fixture()
def lookup():
    return IpApiGeoLookup(base_url="https://geo.test/", timeout=1.5)


class TestIsLocalAddress:
    """Tests for local address detection."""

    @pytest.mark.parametrize(
        "ip", ["", None, "127.0.0.1", "::1", "10.1.2.3", "192.168.0.10", "169.254.1.1", "0.0.0.0"]
    )
    def test_local(self, ip):
        assert is_local_address(ip) is True

    @pytest.mark.parametrize(
        "ip",
        [
            "192.0.2.10",  # TEST-NET-1
            "198.51.100.7",  # TEST-NET-2
            "203.0.113.9",  # TEST-NET-3
            "198.18.0.1",  # benchmarking
            "240.0.0.1",  # reserved
            "fc00::1",  # unique local
            "2001:db8::1",  # documentation
        ],
    )
    def test_non_routable_ranges_are_local(self, ip):
        # ipapi.co has nothing to say about these, so they never reach it
        assert is_local_address(ip) is True

    @pytest.mark.parametrize("ip", ["8.8.8.8", "1.1.1.1", "2001:4860:4860::8888", "garbage"])
    def test_not_local(self, ip):
        assert is_local_address(ip) is False


class TestIpApiLookup:
    """Tests for IpApiGeoLookup.lookup."""

    def test_maps_response_fields(self, lookup):
        with patch(REQUESTS_GET, return_value=_response(BERLIN_PAYLOAD)) as mock_get:
            geo = lookup.lookup("8.8.8.8")

        mock_get.assert_called_once_with("https://geo.test/8.8.8.8/json/", timeout=1.5)
        assert geo.country == "Germany"
        assert geo.country_code == "DE"
        assert geo.city == "Berlin"
        assert geo.region == "Land Berlin"
        assert geo.latitude == 52.5196
        assert geo.longitude == 13.4069
        assert geo.timezone == "Europe/Berlin"

    @pytest.mark.parametrize("ip", ["127.0.0.1", "192.168.1.20", "203.0.113.9", ""])
    def test_local_addresses_skip_the_network(self, lookup, ip):
        with patch(REQUESTS_GET) as mock_get:
            assert lookup.lookup(ip) == LOCAL_GEO
        mock_get.assert_not_called()

    def test_unparseable_address_is_empty(self, lookup):
        with patch(REQUESTS_GET) as mock_get:
            assert lookup.lookup("not-an-ip").is_empty
        mock_get.assert_not_called()

    def test_timeout_is_empty(self, lookup):
        with patch(REQUESTS_GET, side_effect=requests.exceptions.Timeout()) as mock_get:
            assert lookup.lookup("8.8.8.8") == EMPTY_GEO
        # No retries
        assert mock_get.call_count == 1

    def test_connection_error_is_empty(self, lookup):
        with patch(REQUESTS_GET, side_effect=requests.exceptions.ConnectionError("refused")):
            assert lookup.lookup("8.8.8.8").is_empty

    def test_http_error_is_empty(self, lookup):
        response = _response(BERLIN_PAYLOAD)
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("429 Too Many Requests")
        with patch(REQUESTS_GET, return_value=response):
            assert lookup.lookup("8.8.8.8").is_empty

    def test_invalid_json_is_empty(self, lookup):
        response = _response()
        response.json.side_effect = ValueError("Expecting value")
        with patch(REQUESTS_GET, return_value=response):
            assert lookup.lookup("8.8.8.8").is_empty

    def test_error_payload_is_empty(self, lookup):
        payload = {"ip": "8.8.8.8", "error": True, "reason": "RateLimited"}
        with patch(REQUESTS_GET, return_value=_response(payload)):
            assert lookup.lookup("8.8.8.8").is_empty

    def test_non_object_payload_is_empty(self, lookup):
        with patch(REQUESTS_GET, return_value=_response(["unexpected"])):
            assert lookup.lookup("8.8.8.8").is_empty

    def test_bad_coordinates_dropped(self, lookup):
        payload = {**BERLIN_PAYLOAD, "latitude": "n/a"}
        with patch(REQUESTS_GET, return_value=_response(payload)):
            geo = lookup.lookup("8.8.8.8")
        assert geo.latitude is None
        assert geo.city == "Berlin"


class TestNullGeoLookup:
    """Tests for the disabled lookup."""

    def test_always_empty(self):
        assert NullGeoLookup().lookup("8.8.8.8").is_empty
