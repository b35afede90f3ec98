"""Route planning orchestration."""

from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence

from ...config import settings
from ...data.hub_repository import HubRepository, get_hub_repository
from ...models.domain import Coordinate, Hub, Route, Stop
from ...schemas.geocoding import HubModel, NearestHubResponse
from ...schemas.routing import (
    OriginModel,
    PlannedStopModel,
    RoutePlanRequest,
    RoutePlanResponse,
    StopInput,
)
from ..geocoding.service import GeocodingService, get_geocoding_service
from ..geospatial import distance_km, parse_lat_lng
from .directions import build_directions_url
from .hubs import nearest_hub
from .optimizer import path_length_km, sequence_route

logger = logging.getLogger(__name__)


def _to_stop(index: int, item: StopInput) -> Stop:
    coordinate = Coordinate(item.lat, item.lng) if item.lat is not None and item.lng is not None else None
    address = item.address.strip() if item.address and item.address.strip() else None
    return Stop(id=item.id, address_text=address, coordinate=coordinate, sequence_index=index)


def hub_to_model(hub: Hub) -> HubModel:
    return HubModel(
        id=hub.id,
        name=hub.name,
        address=hub.address,
        lat=hub.coordinate.lat if hub.coordinate else None,
        lng=hub.coordinate.lng if hub.coordinate else None,
    )


def _hub_origin(
    hub: Hub,
    geocoder: GeocodingService,
    warnings: list[str],
    cancel: threading.Event | None,
) -> tuple[Optional[Coordinate], str]:
    coordinate = hub.coordinate
    label = hub.address or (coordinate.as_query() if coordinate else hub.name)
    if coordinate is None and hub.address:
        result = geocoder.resolve(
            hub.address,
            namespace="hub",
            key_parts=(hub.id,),
            timeout=settings.origin_timeout_seconds,
            cancel=cancel,
        )
        if result.ok:
            coordinate = result.coordinate
            warnings.append(
                f"Hub '{hub.name}' has no stored coordinate; using a geocoded position. "
                "Store the hub coordinate to speed up planning."
            )
        else:
            message = result.error.message if result.error else "No result"
            warnings.append(
                f"Hub '{hub.name}' has no coordinate and could not be geocoded; the route order may be off. ({message})"
            )
    return coordinate, label


def plan_route(
    payload: RoutePlanRequest,
    geocoder: GeocodingService | None = None,
    hubs: HubRepository | None = None,
    cancel: threading.Event | None = None,
) -> RoutePlanResponse:
    """Resolve the origin, back-fill stop coordinates, order the stops and build the maps link."""
    geocoder = geocoder or get_geocoding_service()
    warnings: list[str] = []
    stops: list[Stop] = [_to_stop(index, item) for index, item in enumerate(payload.stops, start=1)]

    origin_coordinate: Optional[Coordinate] = None
    origin_label: Optional[str] = None
    hub: Optional[Hub] = None

    if payload.hub_id:
        hub = (hubs or get_hub_repository()).get(payload.hub_id)
        if hub is None:
            raise ValueError(f"Hub '{payload.hub_id}' does not exist or is not active.")
        origin_coordinate, origin_label = _hub_origin(hub, geocoder, warnings, cancel)
    elif payload.origin and payload.origin.strip():
        origin_label = payload.origin.strip()
        literal = parse_lat_lng(origin_label)
        if literal is not None:
            origin_coordinate = literal
            origin_label = literal.as_query()

    geocoded = 0
    if len(stops) <= 2:
        if stops:
            warnings.append("Only 1-2 stops: skipping geocoding, the maps link routes by address.")
    else:
        if payload.geocode_missing:
            fill = geocoder.ensure_coordinates(stops, timeout=settings.geocode_timeout_seconds, cancel=cancel)
            stops = fill.stops
            geocoded = fill.filled
            if fill.skipped:
                warnings.append(
                    f"Geocoding is limited to {settings.max_stops_to_geocode} stops per request; "
                    f"{fill.skipped} stop(s) were left unresolved."
                )
            if fill.debug:
                warnings.append("Geocode debug: " + " | ".join(fill.debug))

        if hub is None and origin_label and origin_coordinate is None:
            result = geocoder.resolve(
                origin_label,
                namespace="origin",
                timeout=settings.origin_timeout_seconds,
                cancel=cancel,
            )
            if result.ok:
                origin_coordinate = result.coordinate
            else:
                message = result.error.message if result.error else "No result"
                warnings.append(f"Could not geocode the origin; the route order may be off. ({message})")

    route = Route(origin=origin_coordinate, ordered_stops=sequence_route(stops, origin_coordinate))
    ordered = route.ordered_stops
    located = [stop for stop in ordered if stop.coordinate is not None]
    unresolved = len(ordered) - len(located)
    if unresolved and len(ordered) > 2:
        warnings.append(f"{unresolved} stop(s) have no coordinate and were placed at the end of the route.")

    total_distance = path_length_km(located, route.origin) if located else 0.0
    url = build_directions_url(ordered, origin_label, payload.travel_mode or settings.travel_mode)
    logger.info(
        "Planned route with %d stops (%d located, %d geocoded), %.2f km",
        len(ordered),
        len(located),
        geocoded,
        total_distance,
    )

    return RoutePlanResponse(
        origin=OriginModel(
            label=origin_label,
            lat=origin_coordinate.lat if origin_coordinate else None,
            lng=origin_coordinate.lng if origin_coordinate else None,
            hub_id=hub.id if hub else None,
        ),
        stops=[
            PlannedStopModel(
                id=stop.id,
                sequence=stop.sequence_index,
                address=stop.address_text,
                lat=stop.coordinate.lat if stop.coordinate else None,
                lng=stop.coordinate.lng if stop.coordinate else None,
            )
            for stop in ordered
        ],
        directions_url=url,
        total_distance_km=round(total_distance, 3),
        geocoded_count=geocoded,
        warnings=warnings,
    )


def suggest_hub(point: Coordinate, hubs: Sequence[Hub]) -> Optional[NearestHubResponse]:
    hub = nearest_hub(hubs, point)
    if hub is None:
        return None
    return NearestHubResponse(hub=hub_to_model(hub), distance_km=round(distance_km(hub.coordinate, point), 3))
