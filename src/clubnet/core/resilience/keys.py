"""Cache key derivation for coordinate-addressed reads.

Coordinates are rounded so nearby repeated queries share one entry:
2 decimals (~1 km buckets) for weather, 4 decimals (~11 m) for geocoding.
"""

import math

WEATHER_PRECISION = 2
GEOCODE_PRECISION = 4


def is_valid_coordinate(lat: float, lon: float) -> bool:
    """Check latitude/longitude are finite numbers within range."""
    if isinstance(lat, bool) or isinstance(lon, bool):
        return False
    if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
        return False
    if math.isnan(lat) or math.isnan(lon):
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def coordinate_key(lat: float, lon: float, precision: int) -> str:
    """Spatial fingerprint of a coordinate pair at ``precision`` decimals.

    Raises:
        ValueError: If the coordinates are out of range or not numbers.
    """
    if not is_valid_coordinate(lat, lon):
        raise ValueError(f"Invalid coordinates: lat={lat!r}, lon={lon!r}")
    lat_r = round(lat, precision) + 0.0  # normalise -0.0
    lon_r = round(lon, precision) + 0.0
    return f"{lat_r:.{precision}f},{lon_r:.{precision}f}"


def weather_key(lat: float, lon: float) -> str:
    return coordinate_key(lat, lon, WEATHER_PRECISION)


def geocode_key(lat: float, lon: float) -> str:
    return coordinate_key(lat, lon, GEOCODE_PRECISION)
