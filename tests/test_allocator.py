import pytest

from welfare_routing.models.domain import Driver, Facility, ResourceAssignment, Rider, RiderRequest, Vehicle
from welfare_routing.services.routing.allocator import ResourceAllocator, ResourceLedger, best_fit_key
from welfare_routing.services.routing.errors import ErrorCollector
from welfare_routing.services.routing.time_windows import group_requests

FACILITY = Facility(facility_id="F1", name="Sakura Day Center", lat=35.68, lng=139.76)


def _request(
    rid: str,
    lat: float = 35.7,
    lng: float = 139.7,
    *,
    wheelchair: bool = False,
    pickup_time: str = "08:10",
    facility: str = "F1",
) -> RiderRequest:
    rider = Rider(
        rider_id=rid,
        name=f"Rider {rid}",
        lat=lat,
        lng=lng,
        wheelchair_required=wheelchair,
        pickup_time=pickup_time,
    )
    return RiderRequest(rider=rider, selected=True, target_facility_id=facility)


def _fleet(*vehicles: Vehicle):
    drivers = [Driver(driver_id=f"D{i}", name=f"Driver {i}") for i in range(1, len(vehicles) + 1)]
    assignments = [
        ResourceAssignment(assignment_id=f"A{i}", vehicle_id=vehicle.vehicle_id, driver_id=f"D{i}")
        for i, vehicle in enumerate(vehicles, start=1)
    ]
    return list(vehicles), drivers, assignments


def _allocate(requests, vehicles, drivers, assignments, riders=(), facilities=(FACILITY,)):
    errors = ErrorCollector()
    allocator = ResourceAllocator(
        assignments=assignments,
        vehicles=vehicles,
        drivers=drivers,
        riders=list(riders),
        errors=errors,
        wheelchair_radius_m=100.0,
        regular_radius_m=500.0,
    )
    routes = allocator.allocate(group_requests(requests), list(facilities))
    return routes, errors.errors


def _van(vid: str, capacity: int) -> Vehicle:
    return Vehicle(vehicle_id=vid, name=f"Van {vid}", capacity=capacity)


def _welfare(vid: str, capacity: int, wheelchairs: int) -> Vehicle:
    return Vehicle(
        vehicle_id=vid,
        name=f"Welfare {vid}",
        capacity=capacity,
        wheelchair_accessible=True,
        wheelchair_capacity=wheelchairs,
    )


def test_best_fit_key_prefers_smallest_sufficient_then_largest_insufficient() -> None:
    capacities = [1, 4, 2, 3]

    assert sorted(capacities, key=lambda cap: best_fit_key(cap, 2)) == [2, 3, 4, 1]
    assert sorted(capacities, key=lambda cap: best_fit_key(cap, 5)) == [4, 3, 2, 1]


def test_ledger_rejects_second_route_for_same_bucket() -> None:
    ledger = ResourceLedger()
    routes, _ = _allocate([_request("R1")], *_fleet(_van("V1", 4)))

    ledger.register(("V1", "D1"), ("F1", "08:00"), routes[0])

    with pytest.raises(ValueError):
        ledger.register(("V1", "D1"), ("F1", "08:00"), routes[0])
    assert ledger.used_in_other_window(("V1", "D1"), ("F1", "09:00"))
    assert not ledger.used_in_other_window(("V1", "D1"), ("F1", "08:00"))
    assert not ledger.used_in_other_window(("V1", "D1"), ("F2", "09:00"))


def test_two_close_wheelchair_riders_share_one_vehicle() -> None:
    requests = [_request("W1", wheelchair=True), _request("W2", 35.70045, wheelchair=True)]

    routes, errors = _allocate(requests, *_fleet(_welfare("WV", capacity=4, wheelchairs=2)))

    assert errors == []
    assert len(routes) == 1
    assert [stop.rider_id for stop in routes[0].stops] == ["W1", "W2"]
    assert routes[0].wheelchair_count == 2


def test_third_regular_rider_reports_capacity_error() -> None:
    requests = [_request("R1"), _request("R2", 35.7001), _request("R3", 35.7002)]

    routes, errors = _allocate(requests, *_fleet(_van("V1", 2)))

    assert len(routes) == 1
    assert [stop.rider_id for stop in routes[0].stops] == ["R1", "R2"]
    assert len(errors) == 1
    assert errors[0].kind == "capacity"
    assert errors[0].rider_ids == ("R3",)
    assert "Rider R3" in errors[0].message


def test_cluster_spills_over_to_next_vehicle() -> None:
    requests = [_request(f"R{i}", 35.7 + i * 0.0001) for i in range(5)]

    routes, errors = _allocate(requests, *_fleet(_van("V1", 3), _van("V2", 3)))

    assert errors == []
    assert [len(route.stops) for route in routes] == [3, 2]
    assert {(route.vehicle_id, route.driver_id) for route in routes} == {("V1", "D1"), ("V2", "D2")}


def test_wheelchair_cluster_uses_best_fit_vehicle() -> None:
    requests = [_request("W1", wheelchair=True), _request("W2", 35.7003, wheelchair=True)]

    routes, errors = _allocate(
        requests, *_fleet(_welfare("BIG", capacity=8, wheelchairs=4), _welfare("SMALL", capacity=4, wheelchairs=2))
    )

    assert errors == []
    assert [route.vehicle_id for route in routes] == ["SMALL"]


def test_wheelchair_cluster_too_large_for_any_vehicle() -> None:
    requests = [_request(f"W{i}", 35.7 + i * 0.0002, wheelchair=True) for i in range(3)]

    routes, errors = _allocate(requests, *_fleet(_welfare("WV", capacity=4, wheelchairs=2)))

    assert routes == []
    assert [error.kind for error in errors] == ["welfare_vehicle"]
    assert errors[0].rider_ids == ("W0", "W1", "W2")
    assert "wheelchair capacity of at least 3" in errors[0].message


def test_wheelchair_riders_never_ride_regular_vehicles() -> None:
    routes, errors = _allocate([_request("W1", wheelchair=True)], *_fleet(_van("V1", 8)))

    assert routes == []
    assert errors[0].kind == "welfare_vehicle"


def test_regular_riders_use_regular_vehicles_only() -> None:
    routes, errors = _allocate(
        [_request("R1")], *_fleet(_welfare("WV", capacity=4, wheelchairs=2), _van("V1", 4))
    )

    assert errors == []
    assert [route.vehicle_id for route in routes] == ["V1"]


def test_unused_pair_preferred_before_serial_reuse() -> None:
    requests = [_request("R1", pickup_time="08:00"), _request("R2", pickup_time="09:00")]

    routes, errors = _allocate(requests, *_fleet(_van("V1", 4), _van("V2", 4)))

    assert errors == []
    assert [(route.time_window, route.vehicle_id) for route in routes] == [("08:00", "V1"), ("09:00", "V2")]


def test_single_pair_is_reused_across_windows() -> None:
    requests = [_request("R1", pickup_time="08:00"), _request("R2", pickup_time="09:00")]

    routes, errors = _allocate(requests, *_fleet(_van("V1", 4)))

    assert errors == []
    assert [(route.time_window, route.vehicle_id) for route in routes] == [("08:00", "V1"), ("09:00", "V1")]


def test_no_pairs_reports_resource_error_per_bucket() -> None:
    requests = [_request("R1", pickup_time="08:00"), _request("R2", pickup_time="09:00")]

    routes, errors = _allocate(requests, [], [], [])

    assert routes == []
    assert [(error.kind, error.time_window, error.rider_ids) for error in errors] == [
        ("resource", "08:00", ("R1",)),
        ("resource", "09:00", ("R2",)),
    ]


def test_assignment_with_unknown_vehicle_is_skipped() -> None:
    vehicles, drivers, assignments = _fleet(_van("V1", 4))
    assignments.append(ResourceAssignment(assignment_id="A9", vehicle_id="GHOST", driver_id="D1"))

    errors = ErrorCollector()
    allocator = ResourceAllocator(
        assignments=assignments, vehicles=vehicles, drivers=drivers, riders=[], errors=errors
    )

    assert [pair.assignment.assignment_id for pair in allocator.pairs] == ["A1"]


def test_missing_facility_reports_other_error() -> None:
    routes, errors = _allocate([_request("R1", facility="F404")], *_fleet(_van("V1", 4)))

    assert routes == []
    assert errors[0].kind == "other"
    assert errors[0].facility_id == "F404"
    assert errors[0].rider_ids == ("R1",)


def test_stops_use_current_rider_records() -> None:
    current = Rider(
        rider_id="R1",
        name="Renamed Rider",
        lat=35.7,
        lng=139.7,
        pickup_location_address="Station north exit",
        pickup_lat=35.701,
        pickup_lng=139.701,
        pickup_time="08:15",
    )

    routes, _ = _allocate([_request("R1")], *_fleet(_van("V1", 4)), riders=[current])

    stop = routes[0].stops[0]
    assert stop.rider_name == "Renamed Rider"
    assert stop.address == "Station north exit"
    assert (stop.lat, stop.lng) == (35.701, 139.701)
    assert stop.arrival_time == "08:15"


def test_welfare_vehicle_is_reused_across_windows() -> None:
    requests = [
        _request("W1", wheelchair=True, pickup_time="08:00"),
        _request("W2", wheelchair=True, pickup_time="09:00"),
    ]

    routes, errors = _allocate(requests, *_fleet(_welfare("WV", capacity=4, wheelchairs=2)))

    assert errors == []
    assert [(route.time_window, route.vehicle_id, route.wheelchair_count) for route in routes] == [
        ("08:00", "WV", 1),
        ("09:00", "WV", 1),
    ]


def test_second_wheelchair_cluster_rejected_when_vehicle_is_full() -> None:
    requests = [
        _request("W1", wheelchair=True),
        _request("W2", 35.70045, wheelchair=True),
        _request("W3", 35.71, wheelchair=True),
    ]

    routes, errors = _allocate(requests, *_fleet(_welfare("WV", capacity=4, wheelchairs=2)))

    assert [[stop.rider_id for stop in route.stops] for route in routes] == [["W1", "W2"]]
    assert [(error.kind, error.rider_ids) for error in errors] == [("welfare_vehicle", ("W3",))]
    assert "driver who has finished another run" in errors[0].message
