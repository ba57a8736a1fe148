"""
Distance Matrix clients for commute analysis
"""

import asyncio
import logging
import os
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from commutecalc.config.models import AggregatorConfig, ProviderConfig

from .models import GeocodingResult, LatLng

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"
GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

# Status codes worth another attempt
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class DistanceClientError(Exception):
    """Base error for distance lookups"""
    pass


class UpstreamError(DistanceClientError):
    """Distance provider (or relay) unreachable or returned an error"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BadUpstreamResponseError(DistanceClientError):
    """Response body does not have the expected distance matrix shape"""
    pass


class NoRouteError(DistanceClientError):
    """Provider found no route between the pair"""

    def __init__(self, message: str, element_status: Optional[str] = None):
        super().__init__(message)
        self.element_status = element_status


def extract_duration(payload: Any) -> float:
    """
    Read the one-way duration from a single origin/destination matrix response

    Args:
        payload: Decoded Distance Matrix JSON body

    Returns:
        Duration in seconds

    Raises:
        UpstreamError: If the provider reported a request level failure
        NoRouteError: If the provider found no route for the pair
        BadUpstreamResponseError: If the body is missing the expected fields
    """
    if not isinstance(payload, dict):
        raise BadUpstreamResponseError(f"Expected a JSON object, got {type(payload).__name__}")

    status = payload.get("status", "OK")
    if status != "OK":
        detail = payload.get("error_message") or "no details"
        raise UpstreamError(f"Distance Matrix request failed with status {status}: {detail}")

    try:
        element = payload["rows"][0]["elements"][0]
    except (KeyError, IndexError, TypeError) as e:
        raise BadUpstreamResponseError(f"Response has no rows[0].elements[0]: {e!r}") from e

    if not isinstance(element, dict):
        raise BadUpstreamResponseError("Matrix element is not an object")

    element_status = element.get("status", "OK")
    if element_status != "OK":
        raise NoRouteError(f"No route for pair (status {element_status})", element_status)

    try:
        value = element["duration"]["value"]
    except (KeyError, TypeError) as e:
        raise BadUpstreamResponseError(f"Matrix element has no duration.value: {e!r}") from e

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise BadUpstreamResponseError(f"Duration value is not a number: {value!r}")
    if value < 0:
        raise BadUpstreamResponseError(f"Duration value is negative: {value!r}")

    return float(value)


class BaseDistanceClient:
    """
    Shared request handling for distance clients
    Retries transient failures with exponential backoff
    """

    def __init__(self, timeout: float = 30, max_retries: int = 0, retry_delay: float = 1.0):
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.logger = logging.getLogger(__name__)

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        """
        Make HTTP request and decode the JSON body

        Raises:
            UpstreamError: If the request fails after retries
            BadUpstreamResponseError: If the body is not JSON
        """
        last_error = "no attempts made"
        last_status = None

        for attempt in range(self.max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, **kwargs)

                if response.status_code < 400:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise BadUpstreamResponseError(f"Response from {url} is not JSON: {e}") from e

                last_status = response.status_code
                last_error = f"HTTP {response.status_code}"
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    raise UpstreamError(f"HTTP {response.status_code} from {url}", response.status_code)
                self.logger.warning(f"HTTP {response.status_code} from {url} (attempt {attempt + 1})")

            except httpx.TimeoutException:
                last_status = None
                last_error = "timeout"
                self.logger.warning(f"Timeout for {url} (attempt {attempt + 1})")
            except httpx.RequestError as e:
                last_status = None
                last_error = str(e) or type(e).__name__
                self.logger.warning(f"Request error for {url}: {last_error} (attempt {attempt + 1})")

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * (2 ** attempt))

        raise UpstreamError(
            f"Failed to fetch {url} after {self.max_retries + 1} attempts: {last_error}",
            last_status,
        )

    async def fetch_matrix(self, origin: LatLng, dest: LatLng) -> Any:
        raise NotImplementedError

    async def get_duration(self, origin: LatLng, dest: LatLng) -> float:
        """One-way travel duration in seconds for a single pair"""
        payload = await self.fetch_matrix(origin, dest)
        return extract_duration(payload)


class DistanceMatrixClient(BaseDistanceClient):
    """
    Async client for the Google Distance Matrix and Geocoding APIs
    Holds the API key, so it only runs server side
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DISTANCE_MATRIX_URL,
        geocode_url: str = GEOCODE_URL,
        units: str = "imperial",
        timeout: float = 30,
        max_retries: int = 0,
        retry_delay: float = 1.0,
        api_key_env: str = "GOOGLE_MAPS_API_KEY",
    ):
        super().__init__(timeout=timeout, max_retries=max_retries, retry_delay=retry_delay)
        self.api_key = api_key or os.getenv(api_key_env)
        self.base_url = base_url
        self.geocode_url = geocode_url
        self.units = units

        if not self.api_key:
            raise ValueError(f"Google Maps API key required. Set {api_key_env}")

    @classmethod
    def from_config(
        cls,
        config: ProviderConfig,
        api_key: Optional[str] = None,
        max_retries: int = 0,
        retry_delay: float = 1.0,
    ) -> "DistanceMatrixClient":
        return cls(
            api_key=api_key,
            max_retries=max_retries,
            retry_delay=retry_delay,
            base_url=config.distance_matrix_url,
            geocode_url=config.geocode_url,
            units=config.units,
            timeout=config.timeout,
            api_key_env=config.api_key_env,
        )

    def matrix_params(self, origin: LatLng, dest: LatLng) -> Dict[str, str]:
        """Query parameters for a single origin, single destination lookup"""
        return {
            "units": self.units,
            "origins": origin.as_param(),
            "destinations": dest.as_param(),
            "key": self.api_key,
        }

    async def fetch_matrix(self, origin: LatLng, dest: LatLng) -> Any:
        """Raw Distance Matrix response body for one pair"""
        return await self._request("GET", self.base_url, params=self.matrix_params(origin, dest))

    async def geocode(self, address: str) -> Optional[GeocodingResult]:
        """
        Geocode an address to get coordinates

        Args:
            address: Address to geocode

        Returns:
            GeocodingResult with coordinates or None if failed
        """
        try:
            data = await self._request(
                "GET", self.geocode_url, params={"address": address, "key": self.api_key}
            )

            if data.get("status") != "OK" or not data.get("results"):
                self.logger.warning(f"No geocoding results for address: {address}")
                return None

            result = data["results"][0]
            location = result["geometry"]["location"]

            return GeocodingResult(
                address=address,
                lat=location["lat"],
                lng=location["lng"],
                formatted_address=result.get("formatted_address"),
                place_id=result.get("place_id"),
            )

        except DistanceClientError as e:
            self.logger.error(f"Error geocoding address {address}: {e}")
            return None
        except (AttributeError, KeyError, IndexError, TypeError, ValidationError) as e:
            self.logger.error(f"Error parsing geocoding response for {address}: {e}")
            return None


class RelayClient(BaseDistanceClient):
    """
    Async client for the proxy relay
    Used by the aggregator so no API key is needed on the calling side
    """

    def __init__(
        self,
        relay_url: str,
        timeout: float = 30,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        origin_header: Optional[str] = None,
    ):
        super().__init__(timeout=timeout, max_retries=max_retries, retry_delay=retry_delay)
        self.relay_url = relay_url
        self.origin_header = origin_header

    @classmethod
    def from_config(cls, config: AggregatorConfig) -> "RelayClient":
        return cls(
            relay_url=config.relay_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
            origin_header=config.origin_header,
        )

    @property
    def headers(self) -> Dict[str, str]:
        """HTTP headers for relay requests"""
        headers = {"Content-Type": "application/json"}
        if self.origin_header:
            headers["Origin"] = self.origin_header
        return headers

    async def fetch_matrix(self, origin: LatLng, dest: LatLng) -> Any:
        """Distance Matrix response body as relayed by the proxy"""
        body = {"origin": origin.model_dump(), "dest": dest.model_dump()}
        return await self._request("POST", self.relay_url, json=body, headers=self.headers)
