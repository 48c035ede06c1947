# happyhour/services/location.py
# Current-position acquisition with permission/error state and stale-result suppression.

import asyncio
from enum import Enum
from typing import Callable, List, Optional, Protocol

import structlog

from happyhour.core.config import settings
from happyhour.core.errors import (
    LocationError,
    LocationPermissionDenied,
    LocationTimeout,
    LocationUnavailable,
)
from happyhour.models.dto import Coordinate, GeocodeResult, LocationFix
from happyhour.services.geocoding import ReverseGeocoder

logger = structlog.get_logger(__name__)


class LocationStatus(str, Enum):
    IDLE = "IDLE"
    ACQUIRING = "ACQUIRING"
    READY = "READY"
    FAILED = "FAILED"


class LocationBackend(Protocol):
    """Platform positioning capability."""
    def is_available(self) -> bool: ...
    async def request_permission(self) -> bool: ...
    async def get_current_position(self, maximum_age: float) -> Coordinate: ...


class StaticLocationBackend:
    """
    Backend that reports a fixed position. Used by the HTTP service, where the
    client reports its own coordinates, and by tests.
    """

    def __init__(
        self,
        coordinate: Optional[Coordinate] = None,
        permission_granted: bool = True,
        available: bool = True,
    ):
        self.coordinate = coordinate or Coordinate(
            latitude=settings.DEFAULT_LATITUDE,
            longitude=settings.DEFAULT_LONGITUDE,
        )
        self.permission_granted = permission_granted
        self.available = available

    def is_available(self) -> bool:
        return self.available

    async def request_permission(self) -> bool:
        return self.permission_granted

    async def get_current_position(self, maximum_age: float) -> Coordinate:
        return self.coordinate


Listener = Callable[["LocationProvider"], None]


class LocationProvider:
    """State machine IDLE -> ACQUIRING -> READY | FAILED.

    - At most one acquisition runs at a time. A second `acquire()` joins the
      pending one instead of starting or cancelling anything.
    - `close()` retires the provider: results that land afterwards are dropped
      and listeners are not called again.
    """

    def __init__(
        self,
        backend: LocationBackend,
        geocoder: ReverseGeocoder,
        timeout: float = settings.LOCATION_TIMEOUT_SECONDS,
        maximum_age: float = settings.LOCATION_MAXIMUM_AGE_SECONDS,
    ):
        self.backend = backend
        self.geocoder = geocoder
        self.timeout = timeout
        self.maximum_age = maximum_age

        self.status = LocationStatus.IDLE
        self.fix: Optional[LocationFix] = None
        self.error: Optional[LocationError] = None

        self._alive = True
        self._inflight: Optional[asyncio.Future] = None
        self._listeners: List[Listener] = []

    @property
    def loading(self) -> bool:
        return self.status == LocationStatus.ACQUIRING

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None

    @property
    def closed(self) -> bool:
        return not self._alive

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def acquire(self) -> Optional[LocationFix]:
        """Resolve the current position. Returns the new fix, or None on failure."""
        if not self._alive:
            return None

        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._acquire())
        else:
            logger.debug("location_acquire_joined")

        # shield: a cancelled caller must not cancel the shared acquisition
        return await asyncio.shield(self._inflight)

    async def refresh(self) -> Optional[LocationFix]:
        return await self.acquire()

    def close(self) -> None:
        self._alive = False
        self._listeners.clear()

    async def _acquire(self) -> Optional[LocationFix]:
        self.status = LocationStatus.ACQUIRING
        self.error = None
        self._notify()

        try:
            fix = await self._locate()
        except LocationError as e:
            return self._fail(e)
        except Exception as e:
            logger.exception("location_acquire_error", error=str(e))
            return self._fail(LocationError())

        if not self._alive:
            logger.info("location_result_dropped", reason="provider closed")
            return None

        self.fix = fix
        self.status = LocationStatus.READY
        self._notify()
        logger.info("location_ready", latitude=fix.latitude, longitude=fix.longitude, city=fix.city)
        return fix

    async def _locate(self) -> LocationFix:
        if not self.backend.is_available():
            raise LocationUnavailable()

        if not await self.backend.request_permission():
            raise LocationPermissionDenied()

        try:
            coord = await asyncio.wait_for(
                self.backend.get_current_position(maximum_age=self.maximum_age),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise LocationTimeout()

        place = GeocodeResult()
        if self._alive:
            try:
                place = await self.geocoder.resolve(coord)
            except Exception as e:
                logger.warning("reverse_geocode_failed", error=str(e))

        return LocationFix(
            latitude=coord.latitude,
            longitude=coord.longitude,
            address=place.address,
            city=place.city,
            country=place.country,
        )

    def _fail(self, error: LocationError) -> None:
        if not self._alive:
            logger.info("location_error_dropped", kind=error.kind.value)
            return None
        self.error = error
        self.status = LocationStatus.FAILED
        self._notify()
        logger.warning("location_failed", kind=error.kind.value, message=error.message)
        return None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
