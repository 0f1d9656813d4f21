"""Routing orchestration service."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Sequence

from ...data.records_repository import load_snapshot
from ...models.domain import (
    Driver,
    Facility,
    OptimizationResult,
    ResourceAssignment,
    Rider,
    RiderRequest,
    Vehicle,
)
from ...persistence.filesystem import FileStorage
from ...persistence.selection_store import SelectionStore
from ...schemas.routing import (
    OptimizationErrorModel,
    OptimizationRequest,
    OptimizationResponse,
    RiderModel,
    RiderRequestModel,
    RouteModel,
    RouteStopModel,
)
from ..outputs.routing_formatter import optimization_result_to_csv, optimization_result_to_json
from .distance_client import DistanceMatrixClient
from .engine import optimize_routes

logger = logging.getLogger(__name__)


def _rider(model: RiderModel) -> Rider:
    return Rider(**model.model_dump())


def _requests(models: Sequence[RiderRequestModel]) -> list[RiderRequest]:
    return [
        RiderRequest(rider=_rider(model.rider), selected=model.selected, target_facility_id=model.target_facility_id)
        for model in models
    ]


def _distance_client(requests: Sequence[RiderRequest]) -> DistanceMatrixClient | None:
    if not any(request.selected for request in requests):
        return None
    try:
        return DistanceMatrixClient()
    except ValueError as e:
        logger.error(f"Distance client initialization failed: {e}")
        raise ValueError(
            "Distance service is not configured. Please check WFR_DISTANCE_PROXY_URL or WFR_GOOGLE_MAPS_API_KEY."
        ) from e


def _build_metadata(result: OptimizationResult, requests: Sequence[RiderRequest], run_label: str | None) -> dict:
    selected = sum(1 for request in requests if request.selected)
    assigned = sum(len(route.stops) for route in result.routes)
    metadata = {
        "status": "complete",
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "selected_riders": selected,
        "assigned_riders": assigned,
        "unassigned_riders": sum(len(error.rider_ids) for error in result.errors),
        "routes": len(result.routes),
        "errors_by_kind": dict(Counter(error.kind for error in result.errors)),
        "total_distance_m": sum(route.total_distance_m for route in result.routes),
        "total_duration_s": sum(route.total_duration_s for route in result.routes),
    }
    if run_label:
        metadata["run_label"] = run_label
    return metadata


def _persist(result: OptimizationResult, metadata: dict, run_label: str | None) -> None:
    try:
        storage = FileStorage()
        run_dir = storage.make_run_directory(prefix=f"routes_{run_label}" if run_label else "routes")
        storage.write_json(run_dir / "summary.json", optimization_result_to_json(result, metadata))
        storage.write_csv(run_dir / "stops.csv", optimization_result_to_csv(result))
        metadata["output_dir"] = str(run_dir)
    except OSError as exc:
        logger.error(f"Failed to persist optimization outputs: {exc}")


def _to_response(result: OptimizationResult, metadata: dict) -> OptimizationResponse:
    return OptimizationResponse(
        metadata=metadata,
        routes=[
            RouteModel(
                vehicle_id=route.vehicle_id,
                vehicle_name=route.vehicle_name,
                driver_id=route.driver_id,
                driver_name=route.driver_name,
                facility_id=route.facility_id,
                facility_name=route.facility_name,
                time_window=route.time_window,
                total_distance_m=route.total_distance_m,
                total_duration_s=route.total_duration_s,
                stops=[RouteStopModel(**asdict(stop)) for stop in route.stops],
            )
            for route in result.routes
        ],
        errors=[
            OptimizationErrorModel(
                kind=error.kind,
                message=error.message,
                rider_ids=list(error.rider_ids),
                facility_id=error.facility_id,
                time_window=error.time_window,
            )
            for error in result.errors
        ],
    )


def _optimize(
    requests: list[RiderRequest],
    assignments: list[ResourceAssignment],
    facilities: list[Facility],
    vehicles: list[Vehicle],
    drivers: list[Driver],
    riders: list[Rider],
    *,
    persist: bool,
    run_label: str | None,
) -> OptimizationResponse:
    result = optimize_routes(
        requests,
        assignments,
        facilities,
        vehicles,
        drivers,
        riders,
        distance_client=_distance_client(requests),
    )
    metadata = _build_metadata(result, requests, run_label)
    if persist:
        _persist(result, metadata, run_label)
    return _to_response(result, metadata)


def run_optimization(payload: OptimizationRequest) -> OptimizationResponse:
    """Optimize the snapshot carried in ``payload``."""
    return _optimize(
        _requests(payload.requests),
        [ResourceAssignment(**model.model_dump()) for model in payload.assignments],
        [Facility(**model.model_dump()) for model in payload.facilities],
        [Vehicle(**model.model_dump()) for model in payload.vehicles],
        [Driver(**model.model_dump()) for model in payload.drivers],
        [_rider(model) for model in payload.riders],
        persist=payload.persist,
        run_label=payload.run_label,
    )


def run_saved_selection(*, persist: bool = True, run_label: str | None = None) -> OptimizationResponse:
    """Optimize the stored selection against the current records."""
    store = SelectionStore()
    requests = _requests(store.load_requests())
    assignments = [ResourceAssignment(**model.model_dump()) for model in store.load_resources()]
    if not any(request.selected for request in requests):
        raise ValueError("No riders are selected for today.")

    snapshot = load_snapshot()
    return _optimize(
        requests,
        assignments,
        snapshot.facilities,
        snapshot.vehicles,
        snapshot.drivers,
        snapshot.riders,
        persist=persist,
        run_label=run_label,
    )


def reconcile_requests(
    saved: Sequence[RiderRequestModel], riders: Sequence[Rider], facilities: Sequence[Facility]
) -> list[RiderRequestModel]:
    """Bring a saved selection in line with the current rider records.

    Saved entries get fresh rider data and keep their selection; riders that no
    longer exist are dropped; new riders are appended unselected, targeting their
    default facility or else the first facility.
    """
    riders_by_id = {rider.rider_id: rider for rider in riders}
    fallback_facility = facilities[0].facility_id if facilities else ""

    reconciled: list[RiderRequestModel] = []
    seen: set[str] = set()
    for request in saved:
        rider = riders_by_id.get(request.rider.rider_id)
        if rider is None or rider.rider_id in seen:
            continue
        seen.add(rider.rider_id)
        reconciled.append(
            RiderRequestModel(
                rider=RiderModel(**asdict(rider)),
                selected=request.selected,
                target_facility_id=request.target_facility_id or rider.default_facility_id or "",
            )
        )

    for rider in riders:
        if rider.rider_id in seen:
            continue
        reconciled.append(
            RiderRequestModel(
                rider=RiderModel(**asdict(rider)),
                selected=False,
                target_facility_id=rider.default_facility_id or fallback_facility,
            )
        )
    return reconciled


def sync_saved_requests() -> list[RiderRequestModel]:
    store = SelectionStore()
    snapshot = load_snapshot()
    requests = reconcile_requests(store.load_requests(), snapshot.riders, snapshot.facilities)
    store.save_requests(requests)
    return requests
