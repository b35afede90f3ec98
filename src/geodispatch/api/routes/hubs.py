"""Hub endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...data.hub_repository import get_hub_repository
from ...models.domain import Coordinate
from ...schemas.geocoding import HubModel, NearestHubResponse, PointModel
from ...services.routing.service import hub_to_model, suggest_hub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hubs", tags=["hubs"])


@router.get("", response_model=list[HubModel], status_code=status.HTTP_200_OK)
def list_hubs() -> list[HubModel]:
    try:
        return [hub_to_model(hub) for hub in get_hub_repository().active_hubs()]
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post("/nearest", response_model=NearestHubResponse, status_code=status.HTTP_200_OK)
def nearest(payload: PointModel) -> NearestHubResponse:
    """Suggest the active hub closest to a point."""
    try:
        hubs = get_hub_repository().active_hubs()
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        logger.exception("Hub workbook could not be read: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    suggestion = suggest_hub(Coordinate(payload.lat, payload.lng), hubs)
    if suggestion is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active hub has a coordinate.")
    return suggestion
