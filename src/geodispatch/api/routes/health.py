"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...services.geocoding.service import get_geocoding_service

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/geocoder", status_code=status.HTTP_200_OK)
def health_geocoder() -> dict:
    """Report geocoder configuration and cache sizes without calling the provider."""
    service = get_geocoding_service()
    pruned = service.cache.prune_expired()
    return {
        "service": "geocoder",
        "base_url": service.client.base_url,
        "min_interval_seconds": service.client.gate.min_interval_seconds,
        "cache": service.cache.stats(),
        "pruned_failures": pruned,
    }
