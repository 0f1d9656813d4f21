"""Greedy assignment of vehicle/driver pairs to rider clusters.

Requests arrive bucketed by facility and pickup window. Inside a bucket,
wheelchair riders are clustered tightly and each cluster is placed whole on a
wheelchair-accessible vehicle chosen by best fit; regular riders are clustered
loosely and packed into the first vehicles with free seats. Pairs that have not
served another window of the facility are tried first, then pairs that already
did (serial reuse). Anything that cannot be placed is reported to the
``ErrorCollector`` and planning continues.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ...config import settings
from ...models.domain import (
    DEFAULT_ARRIVAL_TIME,
    Driver,
    Facility,
    ResourceAssignment,
    Rider,
    RiderRequest,
    Route,
    RouteStop,
    Vehicle,
)
from .clustering import cluster_requests
from .errors import ErrorCollector
from .time_windows import TimeWindowGroups

logger = logging.getLogger(__name__)

BucketKey = tuple[str, str]
PairKey = tuple[str, str]


@dataclass(slots=True)
class ResourcePair:
    assignment: ResourceAssignment
    vehicle: Vehicle
    driver: Driver

    @property
    def key(self) -> PairKey:
        return (self.vehicle.vehicle_id, self.driver.driver_id)


class ResourceLedger:
    """Tracks which route each (vehicle, driver) pair backs per facility and window."""

    def __init__(self) -> None:
        self._routes: dict[PairKey, dict[BucketKey, Route]] = {}

    def route_for(self, pair: PairKey, bucket: BucketKey) -> Optional[Route]:
        return self._routes.get(pair, {}).get(bucket)

    def register(self, pair: PairKey, bucket: BucketKey, route: Route) -> None:
        buckets = self._routes.setdefault(pair, {})
        if bucket in buckets:
            raise ValueError(f"Pair {pair} already backs a route for {bucket}.")
        buckets[bucket] = route

    def used_in_other_window(self, pair: PairKey, bucket: BucketKey) -> bool:
        facility_id, window = bucket
        return any(
            other_facility == facility_id and other_window != window
            for other_facility, other_window in self._routes.get(pair, {})
        )



Eligibility = Callable[[ResourcePair, BucketKey], bool]
RoomFor = Callable[[ResourcePair, Optional[Route]], int]


def best_fit_key(capacity: int, needed: int) -> tuple[int, int]:
    """Sort key: sufficient capacities first (smallest wins), then the largest insufficient."""
    if capacity >= needed:
        return (0, capacity)
    return (1, -capacity)


def describe_riders(requests: Sequence[RiderRequest]) -> str:
    names = ", ".join(request.rider.name for request in requests)
    noun = "rider" if len(requests) == 1 else "riders"
    return f"{len(requests)} {noun} ({names})"


class ResourceAllocator:
    def __init__(
        self,
        *,
        assignments: Sequence[ResourceAssignment],
        vehicles: Sequence[Vehicle],
        drivers: Sequence[Driver],
        riders: Sequence[Rider],
        errors: ErrorCollector,
        wheelchair_radius_m: float = settings.wheelchair_cluster_radius_m,
        regular_radius_m: float = settings.regular_cluster_radius_m,
    ) -> None:
        vehicles_by_id = {vehicle.vehicle_id: vehicle for vehicle in vehicles}
        drivers_by_id = {driver.driver_id: driver for driver in drivers}
        self._pairs: list[ResourcePair] = []
        for assignment in assignments:
            vehicle = vehicles_by_id.get(assignment.vehicle_id)
            driver = drivers_by_id.get(assignment.driver_id)
            if vehicle is None or driver is None:
                logger.warning(
                    f"Skipping resource assignment '{assignment.assignment_id}': "
                    f"vehicle '{assignment.vehicle_id}' or driver '{assignment.driver_id}' not found"
                )
                continue
            self._pairs.append(ResourcePair(assignment=assignment, vehicle=vehicle, driver=driver))

        self._riders = {rider.rider_id: rider for rider in riders}
        self._errors = errors
        self.wheelchair_radius_m = wheelchair_radius_m
        self.regular_radius_m = regular_radius_m
        self.ledger = ResourceLedger()
        self.routes: list[Route] = []

    @property
    def pairs(self) -> list[ResourcePair]:
        return list(self._pairs)

    def allocate(self, groups: TimeWindowGroups, facilities: Sequence[Facility]) -> list[Route]:
        facilities_by_id = {facility.facility_id: facility for facility in facilities}
        for facility_id, windows in groups.items():
            facility = facilities_by_id.get(facility_id)
            if facility is None:
                orphaned = [request for requests in windows.values() for request in requests]
                self._errors.add(
                    "other",
                    f"Facility '{facility_id}' was not found; {describe_riders(orphaned)} could not be planned.",
                    rider_ids=[request.rider.rider_id for request in orphaned],
                    facility_id=facility_id,
                )
                continue
            for window, requests in windows.items():
                self.allocate_bucket(facility, window, requests)
        return self.routes

    def allocate_bucket(self, facility: Facility, window: str, requests: Sequence[RiderRequest]) -> None:
        bucket: BucketKey = (facility.facility_id, window)
        if not self._pairs:
            self._errors.add(
                "resource",
                f"No vehicle/driver pairs are available for facility '{facility.name}' in the {window} window; "
                f"{describe_riders(requests)} could not be assigned. Add resources for the day.",
                rider_ids=[request.rider.rider_id for request in requests],
                facility_id=facility.facility_id,
                time_window=window,
            )
            return

        wheelchair_requests = [request for request in requests if request.rider.wheelchair_required]
        regular_requests = [request for request in requests if not request.rider.wheelchair_required]

        for cluster in cluster_requests(wheelchair_requests, self.wheelchair_radius_m):
            self._allocate_wheelchair_cluster(facility, bucket, cluster)
        for cluster in cluster_requests(regular_requests, self.regular_radius_m):
            self._allocate_regular_cluster(facility, bucket, cluster)

    def _allocate_wheelchair_cluster(
        self, facility: Facility, bucket: BucketKey, cluster: Sequence[RiderRequest]
    ) -> None:
        needed = len(cluster)
        pool = sorted(
            (pair for pair in self._pairs if pair.vehicle.wheelchair_accessible),
            key=lambda pair: best_fit_key(pair.vehicle.wheelchair_capacity, needed),
        )

        def room_for(pair: ResourcePair, route: Optional[Route]) -> int:
            seated = len(route.stops) if route else 0
            wheelchairs = route.wheelchair_count if route else 0
            if wheelchairs + needed <= pair.vehicle.wheelchair_capacity and seated + needed <= pair.vehicle.capacity:
                return needed
            return 0

        leftover = self._place(facility, bucket, cluster, pool, room_for)
        if not leftover:
            return

        sufficient_exists = any(
            pair.vehicle.wheelchair_accessible and pair.vehicle.wheelchair_capacity >= needed
            for pair in self._pairs
        )
        if sufficient_exists:
            hint = "Consider having a driver who has finished another run pick them up later."
        else:
            hint = f"Add a vehicle with wheelchair capacity of at least {needed}."
        self._errors.add(
            "welfare_vehicle",
            f"No wheelchair-accessible vehicle is available for {describe_riders(leftover)}. {hint}",
            rider_ids=[request.rider.rider_id for request in leftover],
            facility_id=facility.facility_id,
            time_window=bucket[1],
        )

    def _allocate_regular_cluster(
        self, facility: Facility, bucket: BucketKey, cluster: Sequence[RiderRequest]
    ) -> None:
        pool = [pair for pair in self._pairs if not pair.vehicle.wheelchair_accessible]

        def room_for(pair: ResourcePair, route: Optional[Route]) -> int:
            seated = len(route.stops) if route else 0
            return max(0, pair.vehicle.capacity - seated)

        leftover = self._place(facility, bucket, cluster, pool, room_for)
        if not leftover:
            return

        self._errors.add(
            "capacity",
            f"No vehicle has a free seat for {describe_riders(leftover)}. "
            "Consider having a driver who has finished another run pick them up later.",
            rider_ids=[request.rider.rider_id for request in leftover],
            facility_id=facility.facility_id,
            time_window=bucket[1],
        )

    def _place(
        self,
        facility: Facility,
        bucket: BucketKey,
        requests: Sequence[RiderRequest],
        pool: Sequence[ResourcePair],
        room_for: RoomFor,
    ) -> list[RiderRequest]:
        """Fill routes from ``pool`` until every request is seated; return the leftover."""
        remaining = list(requests)
        while remaining:
            found = self._find_resource(bucket, pool, room_for)
            if found is None:
                break
            pair, room = found
            taken, remaining = remaining[:room], remaining[room:]
            self._assign(facility, bucket, pair, taken)
        return remaining

    def _find_resource(
        self, bucket: BucketKey, pool: Sequence[ResourcePair], room_for: RoomFor
    ) -> Optional[tuple[ResourcePair, int]]:
        passes: tuple[Eligibility, ...] = (self._is_fresh, self._is_reusable)
        for eligible in passes:
            for pair in pool:
                if not eligible(pair, bucket):
                    continue
                room = room_for(pair, self.ledger.route_for(pair.key, bucket))
                if room > 0:
                    return pair, room
        return None

    def _is_fresh(self, pair: ResourcePair, bucket: BucketKey) -> bool:
        return not self.ledger.used_in_other_window(pair.key, bucket)

    def _is_reusable(self, pair: ResourcePair, bucket: BucketKey) -> bool:
        return self.ledger.used_in_other_window(pair.key, bucket)

    def _assign(
        self, facility: Facility, bucket: BucketKey, pair: ResourcePair, requests: Sequence[RiderRequest]
    ) -> Route:
        route = self.ledger.route_for(pair.key, bucket)
        if route is None:
            route = Route(
                vehicle_id=pair.vehicle.vehicle_id,
                vehicle_name=pair.vehicle.name,
                driver_id=pair.driver.driver_id,
                driver_name=pair.driver.name,
                facility_id=facility.facility_id,
                facility_name=facility.name,
                time_window=bucket[1],
            )
            if self._is_reusable(pair, bucket):
                logger.info(
                    f"Reusing {pair.vehicle.name}/{pair.driver.name} for '{facility.name}' in the {bucket[1]} window"
                )
            self.ledger.register(pair.key, bucket, route)
            self.routes.append(route)

        for request in requests:
            route.stops.append(self._make_stop(request, len(route.stops) + 1))
        return route

    def _make_stop(self, request: RiderRequest, stop_number: int) -> RouteStop:
        rider = self._riders.get(request.rider.rider_id, request.rider)
        lat, lng = rider.pickup_coordinates
        return RouteStop(
            rider_id=rider.rider_id,
            rider_name=rider.name,
            address=rider.pickup_address,
            lat=lat,
            lng=lng,
            arrival_time=rider.pickup_time or DEFAULT_ARRIVAL_TIME,
            stop_number=stop_number,
            # same flag that picked the vehicle
            wheelchair_required=request.rider.wheelchair_required,
        )
