"""Open-path stop sequencing: nearest-neighbour construction plus bounded 2-opt.

The path starts at a fixed position (a hub or the driver) and does not return,
so the first stop chosen by construction is never moved by refinement.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import Coordinate, Stop
from ..geospatial import distance_km


def _require_coordinates(stops: Sequence[Stop]) -> list[Coordinate]:
    points: list[Coordinate] = []
    for stop in stops:
        if stop.coordinate is None:
            raise ValueError(f"Stop {stop.id!r} has no coordinate; filter unresolved stops before optimising.")
        points.append(stop.coordinate)
    return points


def _distance_matrix(points: Sequence[Coordinate]) -> list[list[float]]:
    n = len(points)
    matrix = [[0.0] * n for _ in range(n)]
    for i in range(n):
        for j in range(i + 1, n):
            matrix[i][j] = matrix[j][i] = distance_km(points[i], points[j])
    return matrix


def path_length_km(stops: Sequence[Stop], origin: Optional[Coordinate] = None) -> float:
    """Total haversine length of visiting ``stops`` in order, starting at ``origin`` if given."""
    points = _require_coordinates(stops)
    if origin is not None:
        points = [origin, *points]
    return sum(distance_km(a, b) for a, b in zip(points, points[1:]))


def nearest_neighbor_order(
    matrix: Sequence[Sequence[float]],
    first: int,
) -> list[int]:
    """Greedy visiting order over matrix indices; ties resolve to the lowest index."""
    order = [first]
    remaining = [index for index in range(len(matrix)) if index != first]
    current = first
    while remaining:
        row = matrix[current]
        next_index = min(remaining, key=lambda index: row[index])
        remaining.remove(next_index)
        order.append(next_index)
        current = next_index
    return order


def two_opt_keep_first(
    order: Sequence[int],
    matrix: Sequence[Sequence[float]],
    max_passes: int = 40,
    epsilon: float = 1e-9,
) -> list[int]:
    """Improve an open path by segment reversal without moving position 0.

    The first edge starts at ``i = 0`` and reversals only cover positions
    ``i + 1 .. k``, so the starting stop stays put. Stops after ``max_passes``
    full scans even if further improvement is possible.
    """
    route = list(order)
    n = len(route)
    if n <= 3:
        return route

    passes = 0
    improved = True
    while improved and passes < max_passes:
        passes += 1
        improved = False
        for i in range(n - 3):
            for k in range(i + 1, n - 1):
                a, b, c, d = route[i], route[i + 1], route[k], route[k + 1]
                current = matrix[a][b] + matrix[c][d]
                candidate = matrix[a][c] + matrix[b][d]
                if candidate + epsilon < current:
                    route[i + 1 : k + 1] = route[i + 1 : k + 1][::-1]
                    improved = True
    return route


def optimize_open_route(
    stops: Sequence[Stop],
    origin: Optional[Coordinate] = None,
    max_passes: int | None = None,
    epsilon: float | None = None,
) -> list[Stop]:
    """Order coordinate-bearing stops into a short open path.

    With an origin the first stop is the one nearest to it, otherwise the first
    input stop. Fewer than three stops are returned in input order.
    """
    if len(stops) <= 2:
        return list(stops)

    points = _require_coordinates(stops)
    matrix = _distance_matrix(points)

    if origin is not None:
        to_origin = [distance_km(origin, point) for point in points]
        first = min(range(len(points)), key=lambda index: to_origin[index])
    else:
        first = 0

    order = nearest_neighbor_order(matrix, first)
    order = two_opt_keep_first(
        order,
        matrix,
        max_passes=settings.two_opt_max_passes if max_passes is None else max_passes,
        epsilon=settings.two_opt_epsilon if epsilon is None else epsilon,
    )
    return [stops[index] for index in order]


def sequence_route(
    stops: Sequence[Stop],
    origin: Optional[Coordinate] = None,
    max_passes: int | None = None,
    epsilon: float | None = None,
    start_index: int = 1,
) -> list[Stop]:
    """Optimise the stops that have coordinates and append the rest.

    Stops lacking a coordinate keep their relative input order after all
    located stops. Every returned stop carries a fresh ``sequence_index``.
    """
    located = [stop for stop in stops if stop.coordinate is not None]
    unlocated = [stop for stop in stops if stop.coordinate is None]

    ordered = optimize_open_route(located, origin, max_passes=max_passes, epsilon=epsilon) + unlocated
    return [replace(stop, sequence_index=start_index + position) for position, stop in enumerate(ordered)]
