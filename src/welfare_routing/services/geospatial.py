"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_M = EARTH_RADIUS_KM * 1000.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_km(lat1, lon1, lat2, lon2) * 1000.0


def haversine_m_many(lat: float, lon: float, points: Sequence[tuple[float, float]]) -> np.ndarray:
    """Distances in meters from one coordinate to each of ``points``."""

    if not points:
        return np.empty(0)
    coords = np.radians(np.asarray(points, dtype=float))
    phi1 = math.radians(lat)
    phi2 = coords[:, 0]
    d_phi = phi2 - phi1
    d_lambda = coords[:, 1] - math.radians(lon)

    a = np.sin(d_phi / 2) ** 2 + math.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def planar_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Flat Euclidean distance in degrees, ignoring the earth's curvature."""

    return math.hypot(lat2 - lat1, lon2 - lon1)


def driving_seconds(distance_m: float, speed_kmh: float) -> float:
    """Travel time at a constant speed."""

    return distance_m / 1000.0 / speed_kmh * 3600.0
