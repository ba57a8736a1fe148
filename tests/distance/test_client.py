"""
Tests for Distance Matrix clients
"""

import os
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from commutecalc.config.models import AggregatorConfig, ProviderConfig
from commutecalc.distance.client import (
    BadUpstreamResponseError,
    DistanceMatrixClient,
    NoRouteError,
    RelayClient,
    UpstreamError,
    extract_duration,
)
from commutecalc.distance.models import GeocodingResult, LatLng

ORIGIN = LatLng(lat=49.8951, lng=-97.1384)
DEST = LatLng(lat=49.8075, lng=-97.1325)


def matrix_body(seconds=600, element_status="OK", status="OK"):
    """Single origin, single destination Distance Matrix response"""
    element = {"status": element_status}
    if element_status == "OK":
        element["duration"] = {"text": f"{seconds // 60} mins", "value": seconds}
        element["distance"] = {"text": "5.2 mi", "value": 8369}
    return {
        "status": status,
        "origin_addresses": ["Downtown, Winnipeg, MB"],
        "destination_addresses": ["University of Manitoba, Winnipeg, MB"],
        "rows": [{"elements": [element]}],
    }


def json_response(status_code, body, method="GET", url="https://example.test"):
    return httpx.Response(status_code, json=body, request=httpx.Request(method, url))


class TestExtractDuration:
    """Test matrix response parsing"""

    def test_success(self):
        """Test reading rows[0].elements[0].duration.value"""
        assert extract_duration(matrix_body(600)) == 600.0

    def test_fractional_duration(self):
        """Test fractional durations pass through"""
        body = matrix_body(600)
        body["rows"][0]["elements"][0]["duration"]["value"] = 612.7

        assert extract_duration(body) == 612.7

    def test_request_denied(self):
        """Test top level provider failure"""
        body = {"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid.", "rows": []}

        with pytest.raises(UpstreamError, match="REQUEST_DENIED"):
            extract_duration(body)

    def test_no_route(self):
        """Test element level failure"""
        with pytest.raises(NoRouteError) as exc_info:
            extract_duration(matrix_body(element_status="ZERO_RESULTS"))

        assert exc_info.value.element_status == "ZERO_RESULTS"

    @pytest.mark.parametrize("body", [
        [],
        {"rows": []},
        {"rows": [{"elements": []}]},
        {"rows": [{"elements": [{"status": "OK"}]}]},
        {"rows": [{"elements": [{"status": "OK", "duration": {"text": "10 mins"}}]}]},
        {"rows": [{"elements": [{"status": "OK", "duration": {"value": "600"}}]}]},
        {"rows": [{"elements": [{"status": "OK", "duration": {"value": -5}}]}]},
        {"rows": "nope"},
    ])
    def test_malformed_shapes(self, body):
        """Missing or wrong fields raise a typed error"""
        with pytest.raises(BadUpstreamResponseError):
            extract_duration(body)

    @pytest.mark.parametrize("body, cause", [
        ({"rows": []}, IndexError),
        ({"status": "OK"}, KeyError),
        ({"rows": [{"elements": [{"status": "OK", "duration": None}]}]}, TypeError),
    ])
    def test_malformed_shape_keeps_cause(self, body, cause):
        """The lookup error is chained onto the typed error"""
        with pytest.raises(BadUpstreamResponseError) as exc_info:
            extract_duration(body)

        assert isinstance(exc_info.value.__cause__, cause)


class TestDistanceMatrixClient:
    """Test direct Distance Matrix client"""

    def test_client_initialization(self):
        """Test client initialization with credentials"""
        client = DistanceMatrixClient(api_key="test_key")

        assert client.api_key == "test_key"
        assert client.base_url == "https://maps.googleapis.com/maps/api/distancematrix/json"
        assert client.units == "imperial"
        assert client.timeout == 30
        assert client.max_retries == 0

    def test_client_initialization_from_env(self):
        """Test client initialization from environment variables"""
        with patch.dict(os.environ, {"GOOGLE_MAPS_API_KEY": "env_key"}):
            client = DistanceMatrixClient()
            assert client.api_key == "env_key"

    def test_client_missing_credentials(self):
        """Test client initialization without credentials"""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="Google Maps API key required"):
                DistanceMatrixClient()

    def test_from_config(self):
        """Test building from provider config"""
        config = ProviderConfig(units="metric", timeout=5, api_key_env="MY_KEY")

        with patch.dict(os.environ, {"MY_KEY": "abc"}):
            client = DistanceMatrixClient.from_config(config, max_retries=3)

        assert client.api_key == "abc"
        assert client.units == "metric"
        assert client.timeout == 5
        assert client.max_retries == 3

    def test_matrix_params(self):
        """Test query for a single pair"""
        client = DistanceMatrixClient(api_key="test_key")

        params = client.matrix_params(ORIGIN, DEST)

        assert params == {
            "units": "imperial",
            "origins": "49.8951,-97.1384",
            "destinations": "49.8075,-97.1325",
            "key": "test_key",
        }

    @pytest.mark.asyncio
    async def test_get_duration_success(self):
        """Test successful duration lookup"""
        client = DistanceMatrixClient(api_key="test_key")

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = json_response(200, matrix_body(600))

            duration = await client.get_duration(ORIGIN, DEST)

            assert duration == 600.0
            mock_request.assert_called_once()
            call_args = mock_request.call_args
            assert call_args[0][0] == "GET"
            assert call_args[0][1] == client.base_url
            assert call_args[1]["params"]["origins"] == "49.8951,-97.1384"

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        """4xx other than 429 fails immediately"""
        client = DistanceMatrixClient(api_key="test_key", max_retries=3, retry_delay=0)

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = json_response(403, {"error": "forbidden"})

            with pytest.raises(UpstreamError) as exc_info:
                await client.fetch_matrix(ORIGIN, DEST)

            assert exc_info.value.status_code == 403
            assert mock_request.call_count == 1

    @pytest.mark.asyncio
    async def test_transient_errors_retried(self):
        """Timeouts and 5xx are retried with backoff"""
        client = DistanceMatrixClient(api_key="test_key", max_retries=2, retry_delay=0)

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = [
                httpx.ReadTimeout("timed out"),
                json_response(503, {"error": "unavailable"}),
                json_response(200, matrix_body(420)),
            ]

            duration = await client.get_duration(ORIGIN, DEST)

            assert duration == 420.0
            assert mock_request.call_count == 3

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        """Persistent failures raise UpstreamError"""
        client = DistanceMatrixClient(api_key="test_key", max_retries=1, retry_delay=0)

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = httpx.ConnectError("connection refused")

            with pytest.raises(UpstreamError, match="after 2 attempts"):
                await client.fetch_matrix(ORIGIN, DEST)

            assert mock_request.call_count == 2

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        """Non JSON bodies raise a typed error"""
        client = DistanceMatrixClient(api_key="test_key")
        response = httpx.Response(200, text="<html>oops</html>", request=httpx.Request("GET", "https://example.test"))

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = response

            with pytest.raises(BadUpstreamResponseError) as exc_info:
                await client.fetch_matrix(ORIGIN, DEST)

        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_geocode_success(self):
        """Test successful geocoding"""
        client = DistanceMatrixClient(api_key="test_key")

        body = {
            "status": "OK",
            "results": [{
                "formatted_address": "The Forks, Winnipeg, MB R3C 4S8, Canada",
                "geometry": {"location": {"lat": 49.8875, "lng": -97.1313}},
                "place_id": "abc123",
            }],
        }

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = json_response(200, body)

            result = await client.geocode("The Forks")

            assert isinstance(result, GeocodingResult)
            assert result.address == "The Forks"
            assert result.position == LatLng(lat=49.8875, lng=-97.1313)
            assert result.formatted_address.startswith("The Forks")
            assert result.place_id == "abc123"

            call_args = mock_request.call_args
            assert call_args[0][1] == client.geocode_url
            assert call_args[1]["params"]["address"] == "The Forks"

    @pytest.mark.asyncio
    async def test_geocode_no_results(self):
        """Test geocoding with no results"""
        client = DistanceMatrixClient(api_key="test_key")

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = json_response(200, {"status": "ZERO_RESULTS", "results": []})

            result = await client.geocode("Nowhere at all")

            assert result is None

    @pytest.mark.asyncio
    async def test_geocode_http_error(self):
        """Test geocoding with HTTP error"""
        client = DistanceMatrixClient(api_key="test_key")

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = httpx.ConnectError("API Error")

            result = await client.geocode("Test Address")

            assert result is None


class TestRelayClient:
    """Test relay client"""

    def test_from_config(self):
        """Test building from aggregator config"""
        config = AggregatorConfig(relay_url="https://relay.test/distance", max_retries=4)
        client = RelayClient.from_config(config)

        assert client.relay_url == "https://relay.test/distance"
        assert client.max_retries == 4
        assert client.headers["Origin"] == "https://ihatedriving.web.app"

    def test_headers_without_origin(self):
        """Test Origin header is optional"""
        client = RelayClient("https://relay.test/distance")

        assert client.headers == {"Content-Type": "application/json"}

    @pytest.mark.asyncio
    async def test_get_duration_posts_pair(self):
        """Test the pair is posted as origin/dest JSON"""
        client = RelayClient("https://relay.test/distance", retry_delay=0)

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = json_response(200, matrix_body(900), method="POST")

            duration = await client.get_duration(ORIGIN, DEST)

            assert duration == 900.0
            call_args = mock_request.call_args
            assert call_args[0] == ("POST", "https://relay.test/distance")
            assert call_args[1]["json"] == {
                "origin": {"lat": 49.8951, "lng": -97.1384},
                "dest": {"lat": 49.8075, "lng": -97.1325},
            }

    @pytest.mark.asyncio
    async def test_relay_error_status(self):
        """Relay 502 is retried then surfaces as UpstreamError"""
        client = RelayClient("https://relay.test/distance", max_retries=1, retry_delay=0)

        with patch("httpx.AsyncClient.request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = json_response(502, {"error": "upstream down"}, method="POST")

            with pytest.raises(UpstreamError) as exc_info:
                await client.get_duration(ORIGIN, DEST)

            assert exc_info.value.status_code == 502
            assert mock_request.call_count == 2
