"""Routing request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class StopInput(BaseModel):
    id: str = Field(..., min_length=1)
    address: Optional[str] = Field(default=None, description="Delivery address text.")
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)

    @model_validator(mode="after")
    def _check_coordinate_pair(self) -> "StopInput":
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be provided together.")
        return self


class RoutePlanRequest(BaseModel):
    stops: List[StopInput] = Field(default_factory=list)
    hub_id: Optional[str] = Field(default=None, description="Start the route at this hub.")
    origin: Optional[str] = Field(
        default=None,
        description="Driver start position as address text or 'lat,lng'. Ignored when hub_id is set.",
    )
    geocode_missing: bool = Field(default=True, description="Geocode stops that have an address but no coordinate.")
    travel_mode: Optional[str] = None


class OriginModel(BaseModel):
    label: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    hub_id: Optional[str] = None


class PlannedStopModel(BaseModel):
    id: str
    sequence: int
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class RoutePlanResponse(BaseModel):
    origin: OriginModel
    stops: List[PlannedStopModel]
    directions_url: str
    total_distance_km: float
    geocoded_count: int = 0
    warnings: List[str] = Field(default_factory=list)
