from math import atan2, degrees, radians, sin, cos, sqrt, asin
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from happyhour.models.dto import Coordinate

# Earth's radius in kilometers
R = 6371.0

# Flat-earth approximation used when scattering points around an origin
METERS_PER_DEGREE = 111000.0

def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points
    on the Earth (specified in decimal degrees) using the Haversine formula.

    Args:
        lat1: Latitude of point 1.
        lon1: Longitude of point 1.
        lat2: Latitude of point 2.
        lon2: Longitude of point 2.

    Returns:
        Distance between the two points in kilometers.
    """
    # Convert decimal degrees to radians
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])

    dlon = lon2 - lon1
    dlat = lat2 - lat1

    a = sin(dlat / 2)**2 + cos(lat1) * cos(lat2) * sin(dlon / 2)**2
    # rounding can push `a` just above 1 for antipodal points
    c = 2 * asin(sqrt(min(1.0, a)))

    return R * c

def distance_km(a: "Coordinate", b: "Coordinate") -> float:
    """Haversine distance between two coordinate models, in kilometers."""
    return haversine(a.latitude, a.longitude, b.latitude, b.longitude)

def meters_to_degrees(meters: float) -> float:
    return meters / METERS_PER_DEGREE

def initial_bearing(a: "Coordinate", b: "Coordinate") -> float:
    """Compass bearing from a to b in degrees, 0 = north, clockwise, in [0, 360)."""
    lat1, lat2 = radians(a.latitude), radians(b.latitude)
    dlon = radians(b.longitude - a.longitude)

    x = sin(dlon) * cos(lat2)
    y = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(dlon)
    return (degrees(atan2(x, y)) + 360.0) % 360.0
