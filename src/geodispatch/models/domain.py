"""Domain models for addresses, coordinates, stops and hubs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A WGS84 point. Instances are always within valid latitude/longitude ranges."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.lat <= 90.0) or not (-180.0 <= self.lng <= 180.0):
            raise ValueError(f"Coordinate out of range: ({self.lat}, {self.lng})")

    def as_query(self) -> str:
        return f"{self.lat},{self.lng}"


@dataclass(frozen=True, slots=True)
class AddressQuery:
    """Raw address text with optional administrative hints."""

    text: str
    ward: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Stop:
    """A delivery stop. Routes hold their own copies, never shared mutable state."""

    id: str
    address_text: Optional[str] = None
    coordinate: Optional[Coordinate] = None
    sequence_index: int = 0


@dataclass(slots=True)
class Route:
    origin: Optional[Coordinate]
    ordered_stops: list[Stop] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Hub:
    """Represents a depot/hub location. Read-only for this service."""

    id: str
    name: str
    address: str = ""
    coordinate: Optional[Coordinate] = None
    active: bool = True
