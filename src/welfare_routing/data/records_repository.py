"""Read-only access to facility, rider, vehicle and driver records in Supabase."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from ..db.supabase import get_supabase_client
from ..models.domain import Driver, Facility, Rider, Vehicle

logger = logging.getLogger(__name__)

T = TypeVar("T")

PICKUP_LOCATION_TYPES = {"home", "school", "station", "convenience_store", "other"}


@dataclass(slots=True)
class RecordSnapshot:
    facilities: list[Facility]
    riders: list[Rider]
    vehicles: list[Vehicle]
    drivers: list[Driver]


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def facility_from_row(row: dict) -> Facility:
    return Facility(
        facility_id=str(row["id"]),
        name=str(row["name"]),
        address=row.get("address") or "",
        lat=float(row["lat"]),
        lng=float(row["lng"]),
    )


def rider_from_row(row: dict) -> Rider:
    location_type = row.get("pickup_location_type") or "home"
    if location_type not in PICKUP_LOCATION_TYPES:
        location_type = "other"
    return Rider(
        rider_id=str(row["id"]),
        name=str(row["name"]),
        address=row.get("address") or "",
        lat=float(row["lat"]),
        lng=float(row["lng"]),
        default_facility_id=row.get("default_facility_id"),
        wheelchair_required=bool(row.get("welfare_vehicle_required", False)),
        pickup_location_type=location_type,
        pickup_location_name=row.get("pickup_location_name") or "",
        pickup_location_address=row.get("pickup_location_address") or "",
        pickup_lat=_optional_float(row.get("pickup_lat")),
        pickup_lng=_optional_float(row.get("pickup_lng")),
        pickup_time=row.get("pickup_time") or None,
    )


def vehicle_from_row(row: dict) -> Vehicle:
    return Vehicle(
        vehicle_id=str(row["id"]),
        name=str(row["name"]),
        capacity=int(row.get("capacity") or 1),
        wheelchair_accessible=bool(row.get("welfare_vehicle", False)),
        wheelchair_capacity=int(row.get("wheelchair_capacity") or 0),
    )


def driver_from_row(row: dict) -> Driver:
    return Driver(driver_id=str(row["id"]), name=str(row["name"]))


def _fetch(table: str, mapper: Callable[[dict], T]) -> list[T]:
    supabase = get_supabase_client()
    if supabase is None:
        raise ValueError("Record store is not configured. Set WFR_SUPABASE_URL and WFR_SUPABASE_KEY.")

    response = supabase.table(table).select("*").order("name").execute()
    records: list[T] = []
    for row in response.data or []:
        try:
            records.append(mapper(row))
        except (KeyError, ValueError, TypeError) as e:
            # Skip invalid rows but continue processing
            logger.warning(f"Skipping invalid {table} row {row.get('id')}: {e}")
    return records


def load_facilities() -> list[Facility]:
    return _fetch("facilities", facility_from_row)


def load_riders() -> list[Rider]:
    return _fetch("users", rider_from_row)


def load_vehicles() -> list[Vehicle]:
    return _fetch("vehicles", vehicle_from_row)


def load_drivers() -> list[Driver]:
    return _fetch("drivers", driver_from_row)


def load_snapshot() -> RecordSnapshot:
    """Point-in-time copy of every record the optimizer reads."""
    snapshot = RecordSnapshot(
        facilities=load_facilities(),
        riders=load_riders(),
        vehicles=load_vehicles(),
        drivers=load_drivers(),
    )
    logger.info(
        f"Loaded {len(snapshot.facilities)} facilities, {len(snapshot.riders)} riders, "
        f"{len(snapshot.vehicles)} vehicles, {len(snapshot.drivers)} drivers"
    )
    return snapshot
