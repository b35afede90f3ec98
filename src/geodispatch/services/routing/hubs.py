"""Nearest-hub selection."""

from __future__ import annotations

from typing import Optional, Sequence

from ...models.domain import Coordinate, Hub
from ..geospatial import distance_km


def nearest_hub(hubs: Sequence[Hub], point: Coordinate) -> Optional[Hub]:
    """Return the hub closest to ``point`` by haversine distance.

    Hubs without a coordinate are ignored; ties go to the earlier hub.
    """
    best: Optional[Hub] = None
    best_distance = float("inf")
    for hub in hubs:
        if hub.coordinate is None:
            continue
        distance = distance_km(hub.coordinate, point)
        if distance < best_distance:
            best, best_distance = hub, distance
    return best
