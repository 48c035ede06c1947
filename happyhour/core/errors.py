from enum import Enum
from typing import Optional


class LocationErrorKind(str, Enum):
    PERMISSION_DENIED = "PERMISSION_DENIED"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"


class HappyHourError(Exception):
    """Base class for errors raised by the discovery core."""


class LocationError(HappyHourError):
    """
    A failed location acquisition. Never fatal: the provider records it in
    its state and the caller may retry.
    """
    kind: LocationErrorKind = LocationErrorKind.UNKNOWN
    default_message = "Failed to get location"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class LocationPermissionDenied(LocationError):
    kind = LocationErrorKind.PERMISSION_DENIED
    default_message = "Location permission denied"


class LocationUnavailable(LocationError):
    kind = LocationErrorKind.PROVIDER_UNAVAILABLE
    default_message = "Geolocation is not supported on this device"


class LocationTimeout(LocationError):
    kind = LocationErrorKind.TIMEOUT
    default_message = "Unable to get your location in time"


class GeocodeUnavailable(HappyHourError):
    """Reverse geocoding failed. Absorbed by the geocoder, never surfaced."""


class PlaceRetrievalFailed(HappyHourError):
    """A place source could not answer. PlacesService falls back to static venues."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")
