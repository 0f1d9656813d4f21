"""Routing engine models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

from ...config import settings


@dataclass(slots=True)
class EngineConfig:
    time_window_minutes: int = settings.time_window_minutes
    wheelchair_cluster_radius_m: float = settings.wheelchair_cluster_radius_m
    regular_cluster_radius_m: float = settings.regular_cluster_radius_m
    sequencing_metric: Literal["euclidean", "haversine"] = settings.sequencing_metric
    average_speed_kmh: float = settings.average_speed_kmh
    anomaly_leg_distance_m: float = settings.anomaly_leg_distance_m
    anomaly_leg_duration_s: float = settings.anomaly_leg_duration_s
    zero_totals_on_distance_failure: bool = settings.zero_totals_on_distance_failure
    max_parallel_requests: int = settings.distance_max_parallel_requests


@dataclass(frozen=True, slots=True)
class LegOk:
    distance_m: float
    duration_s: float


@dataclass(frozen=True, slots=True)
class LegUnavailable:
    status: str


LegResult = Union[LegOk, LegUnavailable]
