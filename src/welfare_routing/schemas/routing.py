"""Routing request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class FacilityModel(BaseModel):
    facility_id: str
    name: str
    lat: float
    lng: float
    address: str = ""


class RiderModel(BaseModel):
    rider_id: str
    name: str
    lat: float
    lng: float
    address: str = ""
    default_facility_id: Optional[str] = None
    wheelchair_required: bool = False
    pickup_location_type: Literal["home", "school", "station", "convenience_store", "other"] = "home"
    pickup_location_name: str = ""
    pickup_location_address: str = ""
    pickup_lat: Optional[float] = None
    pickup_lng: Optional[float] = None
    pickup_time: Optional[str] = Field(default=None, description="Requested pickup time as HH:MM.")


class RiderRequestModel(BaseModel):
    rider: RiderModel
    selected: bool = False
    target_facility_id: str


class VehicleModel(BaseModel):
    vehicle_id: str
    name: str
    capacity: int = Field(..., ge=1)
    wheelchair_accessible: bool = False
    wheelchair_capacity: int = Field(default=0, ge=0)


class DriverModel(BaseModel):
    driver_id: str
    name: str


class ResourceAssignmentModel(BaseModel):
    assignment_id: str
    vehicle_id: str
    driver_id: str


class OptimizationRequest(BaseModel):
    requests: List[RiderRequestModel]
    assignments: List[ResourceAssignmentModel]
    facilities: List[FacilityModel]
    vehicles: List[VehicleModel]
    drivers: List[DriverModel]
    riders: List[RiderModel] = Field(
        default_factory=list,
        description="Current rider records; stops use these over the request snapshots when ids match.",
    )
    persist: bool = False
    run_label: Optional[str] = Field(default=None, description="Friendly name for persisted outputs.")


class RouteStopModel(BaseModel):
    rider_id: str
    rider_name: str
    address: str
    lat: float
    lng: float
    arrival_time: str
    stop_number: int
    wheelchair_required: bool


class RouteModel(BaseModel):
    vehicle_id: str
    vehicle_name: str
    driver_id: str
    driver_name: str
    facility_id: str
    facility_name: str
    time_window: str
    total_distance_m: float
    total_duration_s: float
    stops: List[RouteStopModel]


class OptimizationErrorModel(BaseModel):
    kind: Literal["resource", "capacity", "welfare_vehicle", "time_conflict", "distance", "other"]
    message: str
    rider_ids: List[str]
    facility_id: Optional[str] = None
    time_window: Optional[str] = None


class OptimizationResponse(BaseModel):
    metadata: dict
    routes: List[RouteModel]
    errors: List[OptimizationErrorModel]
