"""Geospatial helper functions."""

from __future__ import annotations

import math
import re

from ..models.domain import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push a just past 1 for antipodal points.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def is_valid_lat_lng(lat: float, lng: float) -> bool:
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def parse_lat_lng(text: str | None) -> Coordinate | None:
    """Parse ``"lat,lng"``, ``"lat;lng"`` or ``"lat lng"`` into a coordinate.

    Decimal parsing is locale independent. Returns None for anything that is not
    exactly two in-range numbers.
    """
    if not text or not text.strip():
        return None

    value = text.strip().replace(";", ",")
    if "," in value:
        parts = [part.strip() for part in value.split(",") if part.strip()]
    else:
        parts = re.split(r"\s+", value)
    if len(parts) != 2:
        return None

    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if math.isnan(lat) or math.isnan(lng) or not is_valid_lat_lng(lat, lng):
        return None
    return Coordinate(lat, lng)
