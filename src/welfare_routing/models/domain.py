"""Domain models for transport records, requests and optimized routes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

PickupLocationType = Literal["home", "school", "station", "convenience_store", "other"]

ErrorKind = Literal["resource", "capacity", "welfare_vehicle", "time_conflict", "distance", "other"]

DEFAULT_ARRIVAL_TIME = "00:00"


@dataclass(slots=True)
class Facility:
    """Represents a care facility that riders are transported to."""

    facility_id: str
    name: str
    lat: float
    lng: float
    address: str = ""


@dataclass(slots=True)
class Rider:
    """Represents a facility client with home and pickup details."""

    rider_id: str
    name: str
    lat: float
    lng: float
    address: str = ""
    default_facility_id: Optional[str] = None
    wheelchair_required: bool = False
    pickup_location_type: PickupLocationType = "home"
    pickup_location_name: str = ""
    pickup_location_address: str = ""
    pickup_lat: Optional[float] = None
    pickup_lng: Optional[float] = None
    pickup_time: Optional[str] = None

    @property
    def pickup_coordinates(self) -> tuple[float, float]:
        if self.pickup_lat is not None and self.pickup_lng is not None:
            return (self.pickup_lat, self.pickup_lng)
        return (self.lat, self.lng)

    @property
    def pickup_address(self) -> str:
        return self.pickup_location_address or self.address


@dataclass(slots=True)
class RiderRequest:
    """A rider's transport request for today."""

    rider: Rider
    selected: bool
    target_facility_id: str


@dataclass(slots=True)
class Vehicle:
    vehicle_id: str
    name: str
    capacity: int
    wheelchair_accessible: bool = False
    wheelchair_capacity: int = 0


@dataclass(slots=True)
class Driver:
    driver_id: str
    name: str


@dataclass(slots=True)
class ResourceAssignment:
    """Pairs one vehicle with one driver for the day."""

    assignment_id: str
    vehicle_id: str
    driver_id: str


@dataclass(slots=True)
class RouteStop:
    rider_id: str
    rider_name: str
    address: str
    lat: float
    lng: float
    arrival_time: str
    stop_number: int
    wheelchair_required: bool = False


@dataclass(slots=True)
class Route:
    """A vehicle/driver pair's pickup run to one facility within one time window."""

    vehicle_id: str
    vehicle_name: str
    driver_id: str
    driver_name: str
    facility_id: str
    facility_name: str
    time_window: str
    stops: list[RouteStop] = field(default_factory=list)
    total_distance_m: float = 0.0
    total_duration_s: float = 0.0

    @property
    def wheelchair_count(self) -> int:
        return sum(1 for stop in self.stops if stop.wheelchair_required)


@dataclass(slots=True)
class OptimizationError:
    """A non-fatal planning failure reported next to the produced routes."""

    kind: ErrorKind
    message: str
    rider_ids: tuple[str, ...] = ()
    facility_id: Optional[str] = None
    time_window: Optional[str] = None


@dataclass(slots=True)
class OptimizationResult:
    routes: list[Route]
    errors: list[OptimizationError]
