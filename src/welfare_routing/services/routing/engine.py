"""Route optimization engine entry point."""

from __future__ import annotations

import logging
from typing import Sequence

from ...models.domain import (
    Driver,
    Facility,
    OptimizationResult,
    ResourceAssignment,
    Rider,
    RiderRequest,
    Vehicle,
)
from .allocator import ResourceAllocator
from .distance_client import DistanceMatrixClient
from .errors import ErrorCollector
from .estimator import DistanceEstimator, DistanceMatrixSource
from .models import EngineConfig
from .sequencer import sequence_route
from .time_windows import group_requests

logger = logging.getLogger(__name__)


def optimize_routes(
    requests: Sequence[RiderRequest],
    assignments: Sequence[ResourceAssignment],
    facilities: Sequence[Facility],
    vehicles: Sequence[Vehicle],
    drivers: Sequence[Driver],
    riders: Sequence[Rider],
    *,
    distance_client: DistanceMatrixSource | None = None,
    config: EngineConfig | None = None,
) -> OptimizationResult:
    """Plan today's pickups for the selected requests.

    Requests are grouped by facility and pickup window, clustered, assigned to
    vehicle/driver pairs, ordered by nearest neighbour and finally measured with
    the distance service. Requests that cannot be placed come back as
    ``OptimizationError`` entries instead of raising.

    Raises:
        ValueError: when routes need measuring and no distance service is configured.
    """
    config = config or EngineConfig()
    errors = ErrorCollector()

    selected = [request for request in requests if request.selected]
    if not selected:
        return OptimizationResult(routes=[], errors=[])

    groups = group_requests(selected, config.time_window_minutes)
    logger.info(
        f"Planning {len(selected)} requests across {len(groups)} facilities "
        f"with {len(assignments)} resource assignments"
    )

    allocator = ResourceAllocator(
        assignments=assignments,
        vehicles=vehicles,
        drivers=drivers,
        riders=riders,
        errors=errors,
        wheelchair_radius_m=config.wheelchair_cluster_radius_m,
        regular_radius_m=config.regular_cluster_radius_m,
    )
    routes = allocator.allocate(groups, facilities)

    facilities_by_id = {facility.facility_id: facility for facility in facilities}
    for route in routes:
        sequence_route(route, facilities_by_id[route.facility_id], config.sequencing_metric)

    if routes:
        estimator = DistanceEstimator(
            distance_client or DistanceMatrixClient(),
            errors=errors,
            average_speed_kmh=config.average_speed_kmh,
            anomaly_leg_distance_m=config.anomaly_leg_distance_m,
            anomaly_leg_duration_s=config.anomaly_leg_duration_s,
            zero_totals_on_failure=config.zero_totals_on_distance_failure,
            max_parallel_requests=config.max_parallel_requests,
        )
        estimator.estimate_all(routes, facilities_by_id)

    logger.info(f"Optimization finished: {len(routes)} routes, {len(errors)} errors")
    return OptimizationResult(routes=routes, errors=errors.errors)
