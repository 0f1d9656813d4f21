"""Serializers for optimization outputs."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict

from ...models.domain import OptimizationResult


def optimization_result_to_json(result: OptimizationResult, metadata: dict | None = None) -> dict:
    return {
        "metadata": metadata or {},
        "routes": [
            {
                "vehicle_id": route.vehicle_id,
                "vehicle_name": route.vehicle_name,
                "driver_id": route.driver_id,
                "driver_name": route.driver_name,
                "facility_id": route.facility_id,
                "facility_name": route.facility_name,
                "time_window": route.time_window,
                "total_distance_m": route.total_distance_m,
                "total_duration_s": route.total_duration_s,
                "stops": [asdict(stop) for stop in route.stops],
            }
            for route in result.routes
        ],
        "errors": [
            {**asdict(error), "rider_ids": list(error.rider_ids)}
            for error in result.errors
        ],
    }


def optimization_result_to_csv(result: OptimizationResult) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "facility_name",
        "time_window",
        "vehicle_name",
        "driver_name",
        "stop_number",
        "rider_id",
        "rider_name",
        "address",
        "lat",
        "lng",
        "arrival_time",
        "wheelchair_required",
        "total_distance_m",
        "total_duration_s",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for route in result.routes:
        for stop in route.stops:
            writer.writerow(
                {
                    "facility_name": route.facility_name,
                    "time_window": route.time_window,
                    "vehicle_name": route.vehicle_name,
                    "driver_name": route.driver_name,
                    "stop_number": stop.stop_number,
                    "rider_id": stop.rider_id,
                    "rider_name": stop.rider_name,
                    "address": stop.address,
                    "lat": stop.lat,
                    "lng": stop.lng,
                    "arrival_time": stop.arrival_time,
                    "wheelchair_required": stop.wheelchair_required,
                    "total_distance_m": route.total_distance_m,
                    "total_duration_s": route.total_duration_s,
                }
            )
    return buffer.getvalue()
