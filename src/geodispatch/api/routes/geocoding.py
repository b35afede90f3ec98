"""Geocoding endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from ...config import settings
from ...models.domain import AddressQuery
from ...schemas.geocoding import AddressQueryModel, GeocodeResponse, ReverseGeocodeResponse
from ...services.geocoding.normalizer import compose_address, normalize
from ...services.geocoding.results import GeocodeResult
from ...services.geocoding.service import get_geocoding_service

router = APIRouter(prefix="/geocode", tags=["geocoding"])


def _to_response(raw: str, normalized: str, candidates: list[str], result: GeocodeResult) -> GeocodeResponse:
    return GeocodeResponse(
        ok=result.ok,
        input=raw,
        normalized=normalized,
        candidates=candidates,
        lat=result.coordinate.lat if result.coordinate else None,
        lng=result.coordinate.lng if result.coordinate else None,
        error=result.error.message if result.error else None,
        error_kind=result.error.kind.value if result.error else None,
    )


@router.get("/test", response_model=GeocodeResponse, status_code=status.HTTP_200_OK)
def geocode_test(q: str = Query(default="", description="Free-text address to resolve.")) -> GeocodeResponse:
    """Show how an address is normalised, which candidates are tried and what they resolve to."""
    service = get_geocoding_service()
    raw = q.strip()
    normalized = normalize(raw)
    candidates = service.candidates(normalized)
    result = service.resolve(raw, timeout=settings.geocode_timeout_seconds)
    return _to_response(raw, normalized, candidates, result)


@router.post("/resolve", response_model=GeocodeResponse, status_code=status.HTTP_200_OK)
def geocode_resolve(payload: AddressQueryModel) -> GeocodeResponse:
    service = get_geocoding_service()
    query = AddressQuery(
        text=payload.text,
        ward=payload.ward,
        district=payload.district,
        province=payload.province,
    )
    normalized = compose_address(query)
    result = service.resolve_query(query, timeout=settings.geocode_timeout_seconds)
    return _to_response(payload.text, normalized, service.candidates(normalized), result)


@router.get("/reverse", response_model=ReverseGeocodeResponse, status_code=status.HTTP_200_OK)
def geocode_reverse(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
) -> ReverseGeocodeResponse:
    result = get_geocoding_service().reverse(lat, lng, timeout=settings.reverse_timeout_seconds)
    return ReverseGeocodeResponse(
        ok=result.ok,
        lat=lat,
        lng=lng,
        display_name=result.display_name,
        error=result.error.message if result.error else None,
        error_kind=result.error.kind.value if result.error else None,
    )
