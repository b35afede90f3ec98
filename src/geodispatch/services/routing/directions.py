"""Navigation deep links for an ordered stop list."""

from __future__ import annotations

from typing import Optional, Sequence
from urllib.parse import quote

from ...models.domain import Stop

SEARCH_URL = "https://www.google.com/maps/search/?api=1"
DIRECTIONS_URL = "https://www.google.com/maps/dir/?api=1"
WAYPOINT_DELIMITER = "|"


def _encode(value: str) -> str:
    return quote(value.strip(), safe="")


def stop_to_query(stop: Stop) -> str:
    """Address text when present, otherwise ``"lat,lng"``, otherwise empty."""
    if stop.address_text and stop.address_text.strip():
        return stop.address_text.strip()
    if stop.coordinate is not None:
        return stop.coordinate.as_query()
    return ""


def build_directions_url(
    ordered_stops: Sequence[Stop],
    origin_text: Optional[str] = None,
    travel_mode: str = "driving",
) -> str:
    """Render the stops (already in visiting order) as a maps deep link.

    One stop without an origin becomes a location search; otherwise a
    directions link whose destination is the last stop and whose waypoints are
    everything between the start and the destination.
    """
    points = [query for query in (stop_to_query(stop) for stop in ordered_stops) if query]
    if not points:
        return ""

    origin = (origin_text or "").strip()
    if len(points) == 1 and not origin:
        return f"{SEARCH_URL}&query={_encode(points[0])}"

    if origin:
        start, waypoints = origin, points[:-1]
    else:
        start, waypoints = points[0], points[1:-1]
    destination = points[-1]

    url = f"{DIRECTIONS_URL}&travelmode={quote(travel_mode)}&origin={_encode(start)}&destination={_encode(destination)}"
    if waypoints:
        url += "&waypoints=" + WAYPOINT_DELIMITER.join(_encode(point) for point in waypoints)
    return url
