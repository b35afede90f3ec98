"""Geocoding and hub request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class AddressQueryModel(BaseModel):
    text: str
    ward: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None


class GeocodeResponse(BaseModel):
    ok: bool
    input: str
    normalized: str
    candidates: List[str] = Field(default_factory=list)
    lat: Optional[float] = None
    lng: Optional[float] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None


class ReverseGeocodeResponse(BaseModel):
    ok: bool
    lat: float
    lng: float
    display_name: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None


class PointModel(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class HubModel(BaseModel):
    id: str
    name: str
    address: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None


class NearestHubResponse(BaseModel):
    hub: HubModel
    distance_km: float
