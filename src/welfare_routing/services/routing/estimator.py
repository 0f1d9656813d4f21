"""Route distance and duration estimation."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Mapping, Protocol, Sequence

from ...config import settings
from ...models.domain import Facility, Route
from ..geospatial import driving_seconds, haversine_m
from .distance_client import DistanceServiceError
from .errors import ErrorCollector
from .models import LegOk, LegResult, LegUnavailable

logger = logging.getLogger(__name__)

Coordinate = tuple[float, float]


class DistanceMatrixSource(Protocol):
    def matrix(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate]) -> list[list[LegResult]]:
        ...


def route_legs(route: Route, facility: Facility) -> tuple[list[Coordinate], list[Coordinate]]:
    """Origins and destinations of the facility -> stops -> facility legs, paired by index."""
    points = [(facility.lat, facility.lng), *((stop.lat, stop.lng) for stop in route.stops), (facility.lat, facility.lng)]
    return points[:-1], points[1:]


def diagonal(matrix: Sequence[Sequence[LegResult]], legs: int) -> list[LegResult]:
    """Pick ``matrix[i][i]`` for every leg, marking missing cells unavailable."""
    if len(matrix) != legs:
        logger.warning(f"Distance matrix has {len(matrix)} rows, expected {legs}")
    results: list[LegResult] = []
    for index in range(legs):
        if index >= len(matrix) or index >= len(matrix[index]):
            results.append(LegUnavailable(status="MISSING"))
        else:
            results.append(matrix[index][index])
    return results


class DistanceEstimator:
    def __init__(
        self,
        client: DistanceMatrixSource,
        *,
        errors: ErrorCollector | None = None,
        average_speed_kmh: float = settings.average_speed_kmh,
        anomaly_leg_distance_m: float = settings.anomaly_leg_distance_m,
        anomaly_leg_duration_s: float = settings.anomaly_leg_duration_s,
        zero_totals_on_failure: bool = settings.zero_totals_on_distance_failure,
        max_parallel_requests: int = settings.distance_max_parallel_requests,
    ) -> None:
        self.client = client
        self.errors = errors
        self.average_speed_kmh = average_speed_kmh
        self.anomaly_leg_distance_m = anomaly_leg_distance_m
        self.anomaly_leg_duration_s = anomaly_leg_duration_s
        self.zero_totals_on_failure = zero_totals_on_failure
        self.max_parallel_requests = max_parallel_requests

    def fallback_leg(self, origin: Coordinate, destination: Coordinate) -> LegOk:
        distance = haversine_m(origin[0], origin[1], destination[0], destination[1])
        return LegOk(distance_m=distance, duration_s=driving_seconds(distance, self.average_speed_kmh))

    def estimate(self, route: Route, facility: Facility) -> Route:
        """Fill ``route`` totals from the distance service, estimating legs it cannot provide."""
        route.total_distance_m = 0.0
        route.total_duration_s = 0.0
        if not route.stops:
            return route

        origins, destinations = route_legs(route, facility)
        try:
            legs = diagonal(self.client.matrix(origins, destinations), len(origins))
        except (DistanceServiceError, ValueError) as error:
            legs = self._recover(route, error, len(origins))
        except Exception as error:
            logger.exception(f"Unexpected distance client failure for {route.vehicle_name} ({route.time_window})")
            legs = self._recover(route, error, len(origins))
        if legs is None:
            return route

        for index, leg in enumerate(legs):
            if isinstance(leg, LegUnavailable):
                logger.warning(
                    f"Leg {index} of {route.vehicle_name} ({route.time_window}) unavailable ({leg.status}); "
                    f"using straight-line estimate"
                )
                leg = self.fallback_leg(origins[index], destinations[index])
            if leg.distance_m > self.anomaly_leg_distance_m:
                logger.error(
                    f"Anomalous distance on leg {index} of {route.vehicle_name}: "
                    f"{leg.distance_m:.0f}m from {origins[index]} to {destinations[index]}"
                )
            if leg.duration_s > self.anomaly_leg_duration_s:
                logger.error(f"Anomalous duration on leg {index} of {route.vehicle_name}: {leg.duration_s:.0f}s")
            route.total_distance_m += leg.distance_m
            route.total_duration_s += leg.duration_s

        logger.info(
            f"Route {route.vehicle_name}/{route.driver_name} to '{route.facility_name}' ({route.time_window}): "
            f"{len(route.stops)} stops, {route.total_distance_m / 1000:.2f}km, {route.total_duration_s / 60:.1f}min"
        )
        return route

    def estimate_all(self, routes: Sequence[Route], facilities: Mapping[str, Facility]) -> list[Route]:
        """Estimate every route concurrently; routes must already be sequenced."""
        jobs = [(route, facilities[route.facility_id]) for route in routes]
        if not jobs:
            return []
        workers = min(self.max_parallel_requests, len(jobs))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(lambda job: self.estimate(*job), jobs))

    def _recover(self, route: Route, error: Exception, count: int) -> list[LegResult] | None:
        self._report_failure(route, error)
        if self.zero_totals_on_failure:
            return None
        return [LegUnavailable(status="REQUEST_FAILED")] * count

    def _report_failure(self, route: Route, error: Exception) -> None:
        outcome = "totals set to zero" if self.zero_totals_on_failure else "totals estimated from straight-line distance"
        message = (
            f"Distance service failed for {route.vehicle_name}/{route.driver_name} to "
            f"'{route.facility_name}' ({route.time_window}); {outcome}: {error}"
        )
        if self.errors is not None:
            self.errors.add("distance", message, facility_id=route.facility_id, time_window=route.time_window)
        else:
            logger.warning(message)
