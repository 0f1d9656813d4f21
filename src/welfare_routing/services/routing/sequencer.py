"""Nearest-neighbour ordering of the stops assigned to a route."""

from __future__ import annotations

from dataclasses import replace
from typing import Literal, Sequence

from ...models.domain import Facility, Route, RouteStop
from ..geospatial import haversine_m, planar_distance

SequencingMetric = Literal["euclidean", "haversine"]

_METRICS = {
    "euclidean": planar_distance,
    "haversine": haversine_m,
}


def sequence_stops(
    stops: Sequence[RouteStop],
    origin: tuple[float, float],
    metric: SequencingMetric = "euclidean",
) -> list[RouteStop]:
    """Order stops by repeatedly visiting the closest unvisited one, starting at ``origin``.

    Ties go to the stop that appears first. Returns new stops numbered from 1.
    """
    try:
        distance = _METRICS[metric]
    except KeyError:
        raise ValueError(f"Unknown sequencing metric '{metric}'.") from None

    unvisited = list(stops)
    ordered: list[RouteStop] = []
    current_lat, current_lng = origin

    while unvisited:
        nearest_index = 0
        nearest_distance = float("inf")
        for index, stop in enumerate(unvisited):
            candidate = distance(current_lat, current_lng, stop.lat, stop.lng)
            if candidate < nearest_distance:
                nearest_distance = candidate
                nearest_index = index
        nearest = unvisited.pop(nearest_index)
        ordered.append(replace(nearest, stop_number=len(ordered) + 1))
        current_lat, current_lng = nearest.lat, nearest.lng

    return ordered


def sequence_route(route: Route, facility: Facility, metric: SequencingMetric = "euclidean") -> Route:
    route.stops = sequence_stops(route.stops, (facility.lat, facility.lng), metric)
    return route
