"""
Relay gateway for the OpenRouteService API.

This module implements the RelayGateway class which turns browser requests into
provider calls. The provider credential lives only in server-side settings and
is attached to each outbound call; responses are handed back verbatim.

Provider endpoints used:
- GET  /geocode/search                       (credential as `api_key` query param)
- POST /optimization                         (credential in Authorization header)
- POST /v2/directions/driving-car/geojson    (credential in Authorization header)
"""

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

import requests

from config import Settings
from errors import UpstreamError, ValidationError
from logging_setup import LOGGER_NAME
from models import Coordinate

logger = logging.getLogger(LOGGER_NAME)

VEHICLE_PROFILE = "driving-car"
GEOCODE_PATH = "/geocode/search"
OPTIMIZATION_PATH = "/optimization"
DIRECTIONS_PATH = f"/v2/directions/{VEHICLE_PROFILE}/geojson"


def _require_coordinates(coordinates: Optional[List[Coordinate]]) -> List[Coordinate]:
    if coordinates is None or not isinstance(coordinates, list):
        raise ValidationError("Coordinates array is required")
    if not coordinates:
        raise ValidationError("Coordinates array must not be empty")
    return coordinates


def build_optimization_payload(
    coordinates: List[Coordinate],
    start_point: Optional[Coordinate] = None,
    end_point: Optional[Coordinate] = None
) -> Dict[str, Any]:
    """
    Build the provider optimization body: one job per stop and a single vehicle.

    Both vehicle ends fall back to the first stop when not given.

    Args:
        coordinates: Stops in request order, must not be empty
        start_point: Optional vehicle start override
        end_point: Optional vehicle end override

    Returns:
        Dict with `jobs` and `vehicles` keys, ready to be sent as JSON
    """
    jobs = [
        {"id": index + 1, "location": coord.as_pair()}
        for index, coord in enumerate(coordinates)
    ]

    first = coordinates[0]
    vehicle = {
        "id": 1,
        "profile": VEHICLE_PROFILE,
        "start": (start_point or first).as_pair(),
        # Defaults to the first stop, not the last.
        "end": (end_point or first).as_pair()
    }

    return {"jobs": jobs, "vehicles": [vehicle]}


def build_route_payload(coordinates: List[Coordinate]) -> Dict[str, Any]:
    """Build the directions body: raw [lon, lat] pairs in travel order."""
    return {"coordinates": [coord.as_pair() for coord in coordinates]}


class RelayGateway:
    """
    Forwards geocoding, optimization and directions requests to the provider.

    Responsible for:
    - Presence checks on incoming fields before any network call
    - Translating request models into provider payloads
    - Attaching the credential to each outbound call
    - Converting provider failures into UpstreamError

    The gateway keeps no per-request state; one outbound call is made per
    operation and nothing is retried. Blocking calls run on a dedicated thread
    pool sized by `upstream_max_workers`, separate from Starlette's shared one.
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        """
        Initialize the gateway.

        Args:
            settings: Loaded settings holding the credential and provider URL
            session: HTTP session used for outbound calls (a new one if omitted)
        """
        self.settings = settings
        self.session = session or requests.Session()
        self.base_url = settings.ors_base_url.rstrip("/")
        self.executor = ThreadPoolExecutor(
            max_workers=settings.upstream_max_workers,
            thread_name_prefix="relay-upstream"
        )

    async def geocode(self, address: Optional[str]) -> Any:
        """
        Look up an address with the provider's geocoding search.

        Raises:
            ValidationError: If address is missing or empty
            UpstreamError: If the provider call fails
        """
        if not address:
            raise ValidationError("Address is required")

        params = {
            "api_key": self.settings.openrouteservice_api_key,
            "text": address
        }
        return await self._send("geocode", "GET", GEOCODE_PATH, params=params)

    async def optimize(
        self,
        coordinates: Optional[List[Coordinate]],
        start_point: Optional[Coordinate] = None,
        end_point: Optional[Coordinate] = None
    ) -> Any:
        """
        Ask the provider for the best visiting order of the given stops.

        Raises:
            ValidationError: If coordinates are missing or empty
            UpstreamError: If the provider call fails
        """
        coordinates = _require_coordinates(coordinates)
        payload = build_optimization_payload(coordinates, start_point, end_point)
        return await self._send(
            "optimize", "POST", OPTIMIZATION_PATH,
            json=payload, headers=self._auth_headers()
        )

    async def route(self, coordinates: Optional[List[Coordinate]]) -> Any:
        """
        Fetch GeoJSON route geometry through the given waypoints.

        Raises:
            ValidationError: If coordinates are missing or empty
            UpstreamError: If the provider call fails
        """
        coordinates = _require_coordinates(coordinates)
        payload = build_route_payload(coordinates)
        return await self._send(
            "route", "POST", DIRECTIONS_PATH,
            json=payload, headers=self._auth_headers()
        )

    def _auth_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": self.settings.openrouteservice_api_key
        }

    def close(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)
        self.session.close()

    async def _send(self, operation: str, method: str, path: str, **kwargs) -> Any:
        """Run the blocking request on the gateway's own executor and return the decoded JSON body."""
        loop = asyncio.get_running_loop()
        call = functools.partial(self._request, operation, method, path, **kwargs)
        return await loop.run_in_executor(self.executor, call)

    def _request(self, operation: str, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, timeout=self.settings.upstream_timeout_seconds, **kwargs
            )
        except requests.RequestException as exc:
            # The exception text can hold the query string, which carries the key.
            logger.error(
                "upstream_request_failed",
                extra={"operation": operation, "error_type": type(exc).__name__}
            )
            raise UpstreamError("Upstream request failed") from exc

        # Only 2xx counts as success; unfollowed 3xx answers are failures too.
        if not 200 <= response.status_code < 300:
            logger.error(
                "upstream_status_error",
                extra={"operation": operation, "upstream_status": response.status_code}
            )
            raise UpstreamError(
                f"Upstream request failed with status {response.status_code}",
                upstream_status=response.status_code
            )

        try:
            return response.json()
        except ValueError as exc:
            logger.error(
                "upstream_invalid_json",
                extra={"operation": operation, "upstream_status": response.status_code}
            )
            raise UpstreamError("Upstream returned an invalid response") from exc
