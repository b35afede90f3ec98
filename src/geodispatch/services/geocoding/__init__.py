"""Geocoding services."""

from .cache import GeocodeCache, make_key
from .candidates import build_candidates
from .nominatim_client import NominatimClient
from .normalizer import normalize, normalize_key, remove_diacritics
from .rate_gate import RateGate
from .results import GeocodeError, GeocodeErrorKind, GeocodeResult, ReverseResult
from .service import GeocodingService, get_geocoding_service

__all__ = [
    "GeocodeCache",
    "make_key",
    "build_candidates",
    "NominatimClient",
    "normalize",
    "normalize_key",
    "remove_diacritics",
    "RateGate",
    "GeocodeError",
    "GeocodeErrorKind",
    "GeocodeResult",
    "ReverseResult",
    "GeocodingService",
    "get_geocoding_service",
]
