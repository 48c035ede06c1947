# happyhour/services/geocoding.py
# Reverse geocoding, best effort: coordinate to address, city and country.

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Protocol

import httpx
from pydantic import ValidationError

from happyhour.core.config import settings
from happyhour.core.errors import GeocodeUnavailable
from happyhour.models.dto import Coordinate, GeocodeResult

logger = logging.getLogger(__name__)

# Platform lookup: returns address records shaped like
# {"street", "streetNumber", "city", "subregion", "country"}
PlatformLookup = Callable[[float, float], Awaitable[List[Mapping[str, Any]]]]


class ReverseGeocoder(Protocol):
    """Never raises: an empty GeocodeResult means the place is unknown."""
    async def resolve(self, coord: Coordinate) -> GeocodeResult: ...


class NativeReverseGeocoder:
    """Uses the device platform's own reverse geocoding."""

    def __init__(self, lookup: PlatformLookup):
        self._lookup = lookup

    async def resolve(self, coord: Coordinate) -> GeocodeResult:
        try:
            records = await self._lookup(coord.latitude, coord.longitude)
        except Exception as e:
            logger.warning(f"Native reverse geocoding failed for {coord.latitude},{coord.longitude}: {e}")
            return GeocodeResult()

        if not records:
            return GeocodeResult()

        try:
            record = records[0]
            address = f"{record.get('street') or ''} {record.get('streetNumber') or ''}".strip()
            return GeocodeResult(
                address=address or None,
                city=record.get("city") or record.get("subregion") or None,
                country=record.get("country") or None,
            )
        except (AttributeError, TypeError, KeyError, ValidationError) as e:
            logger.warning(f"Malformed platform geocode record: {e}")
            return GeocodeResult()


class WebReverseGeocoder:
    """HTTP reverse geocoding against a BigDataCloud-style client endpoint."""

    def __init__(
        self,
        url: str = settings.REVERSE_GEOCODE_URL,
        client: Optional[httpx.AsyncClient] = None,
        max_retries: int = settings.GEOCODE_MAX_RETRIES,
        initial_backoff: float = settings.GEOCODE_INITIAL_BACKOFF,
        timeout: float = settings.GEOCODE_TIMEOUT,
    ):
        self.url = url
        self._client = client
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.timeout = timeout

    async def resolve(self, coord: Coordinate) -> GeocodeResult:
        try:
            data = await self._fetch(coord)
        except GeocodeUnavailable as e:
            logger.warning(f"Reverse geocoding unavailable: {e}")
            return GeocodeResult()

        try:
            return GeocodeResult(
                address=data.get("locality") or None,
                city=data.get("city") or data.get("principalSubdivision") or None,
                country=data.get("countryName") or None,
            )
        except (AttributeError, TypeError, ValidationError) as e:
            logger.warning(f"Malformed reverse geocoding response: {e}")
            return GeocodeResult()

    async def _fetch(self, coord: Coordinate) -> dict:
        params = {
            "latitude": coord.latitude,
            "longitude": coord.longitude,
            "localityLanguage": "en",
        }
        backoff_time = self.initial_backoff

        # Retry only on timeouts, with exponential backoff and jitter
        for attempt in range(self.max_retries + 1):
            try:
                if self._client is not None:
                    response = await self._client.get(self.url, params=params, timeout=self.timeout)
                else:
                    async with httpx.AsyncClient(timeout=self.timeout) as client:
                        response = await client.get(self.url, params=params)
                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise GeocodeUnavailable("unexpected response body")
                return data

            except httpx.TimeoutException:
                logger.warning(f"Reverse geocoding attempt {attempt + 1} timed out.")
                if attempt < self.max_retries:
                    wait_time = max(0.0, backoff_time * (2 ** attempt) + random.uniform(-0.2, 0.2))
                    logger.info(f"Retrying in {wait_time:.2f}s...")
                    await asyncio.sleep(wait_time)
            except httpx.HTTPStatusError as e:
                raise GeocodeUnavailable(f"status {e.response.status_code}") from e
            except GeocodeUnavailable:
                raise
            except (httpx.HTTPError, ValueError) as e:
                raise GeocodeUnavailable(str(e)) from e

        raise GeocodeUnavailable(f"timed out after {self.max_retries + 1} attempts")


def build_reverse_geocoder(platform_lookup: Optional[PlatformLookup] = None) -> ReverseGeocoder:
    """Native lookup when the runtime provides one, the web endpoint otherwise."""
    if platform_lookup is not None:
        return NativeReverseGeocoder(platform_lookup)
    return WebReverseGeocoder()
