"""HTTP client for the Google Distance Matrix service."""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

import httpx

from ...config import settings
from .models import LegOk, LegResult, LegUnavailable

GOOGLE_DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"

logger = logging.getLogger(__name__)


class DistanceServiceError(RuntimeError):
    """Raised when the distance service cannot produce a usable matrix."""


def _value(field: Any) -> float | None:
    # direct API wraps values as {"value": ..., "text": ...}; the proxy sends bare numbers
    if isinstance(field, dict):
        field = field.get("value")
    if isinstance(field, bool) or not isinstance(field, (int, float)):
        return None
    if field < 0:
        return None
    return float(field)


def parse_element(element: Any) -> LegResult:
    if not isinstance(element, dict):
        return LegUnavailable(status="INVALID_ELEMENT")
    status = element.get("status", "OK")
    if status != "OK":
        return LegUnavailable(status=str(status))
    distance = _value(element.get("distance"))
    duration = _value(element.get("duration"))
    if distance is None or duration is None:
        return LegUnavailable(status="INVALID_ELEMENT")
    return LegOk(distance_m=distance, duration_s=duration)


def parse_rows(data: Any) -> list[list[LegResult]]:
    """Convert a distance matrix payload into tagged leg results."""
    if not isinstance(data, dict):
        raise DistanceServiceError("Distance matrix response is not a JSON object.")
    status = data.get("status", "OK")
    if status != "OK":
        raise DistanceServiceError(f"Distance matrix failed: {status} {data.get('error_message', '')}".strip())
    rows = data.get("rows")
    if not isinstance(rows, list):
        raise DistanceServiceError("Distance matrix response missing rows.")

    matrix: list[list[LegResult]] = []
    for row_index, row in enumerate(rows):
        elements = row.get("elements") if isinstance(row, dict) else None
        if not isinstance(elements, list):
            logger.warning(f"Invalid distance matrix row at index {row_index}")
            matrix.append([])
            continue
        matrix.append([parse_element(element) for element in elements])
    return matrix


class DistanceMatrixClient:
    def __init__(
        self,
        proxy_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
    ) -> None:
        self.proxy_url = (proxy_url or settings.distance_proxy_url or "").rstrip("/") or None
        self.api_key = api_key or settings.google_maps_api_key
        if not self.proxy_url and not self.api_key:
            raise ValueError("Distance service is not configured (set a proxy URL or a Google Maps API key).")
        self.timeout = timeout if timeout is not None else settings.distance_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.distance_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.distance_backoff_seconds

    def _get_client(self) -> httpx.Client:
        # short-lived client per call
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0))

    def _request_with_retries(self, send) -> Any:
        attempt = 0
        while True:
            try:
                response = send()
                response.raise_for_status()
                return response.json()
            except (httpx.HTTPError, ValueError) as error:
                attempt += 1
                if attempt > self.max_retries:
                    raise DistanceServiceError(f"Distance matrix request failed: {error}") from error
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.debug(f"Distance request failed, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {error}")
                time.sleep(wait_time)

    def _via_proxy(self, origins: Sequence[tuple[float, float]], destinations: Sequence[tuple[float, float]]) -> Any:
        payload = {
            "origins": [{"lat": lat, "lng": lng} for lat, lng in origins],
            "destinations": [{"lat": lat, "lng": lng} for lat, lng in destinations],
        }
        url = f"{self.proxy_url}/distance-matrix"
        client = self._get_client()
        try:
            return self._request_with_retries(lambda: client.post(url, json=payload))
        finally:
            client.close()

    def _direct(self, origins: Sequence[tuple[float, float]], destinations: Sequence[tuple[float, float]]) -> Any:
        params = {
            "origins": "|".join(f"{lat},{lng}" for lat, lng in origins),
            "destinations": "|".join(f"{lat},{lng}" for lat, lng in destinations),
            "key": self.api_key,
            "language": "ja",
            "units": "metric",
            "mode": "driving",
        }
        client = self._get_client()
        try:
            return self._request_with_retries(lambda: client.get(GOOGLE_DISTANCE_MATRIX_URL, params=params))
        finally:
            client.close()

    def matrix(
        self, origins: Sequence[tuple[float, float]], destinations: Sequence[tuple[float, float]]
    ) -> list[list[LegResult]]:
        """Return ``matrix[i][j]`` results for travel from ``origins[i]`` to ``destinations[j]``."""
        if not origins or not destinations:
            raise ValueError("At least one origin and one destination are required.")

        if self.proxy_url:
            try:
                return parse_rows(self._via_proxy(origins, destinations))
            except DistanceServiceError as error:
                if not self.api_key:
                    raise
                logger.warning(f"Distance proxy failed, falling back to direct API: {error}")

        return parse_rows(self._direct(origins, destinations))


def check_health(client: DistanceMatrixClient | None = None) -> bool:
    """Check the distance service with a minimal one-leg request."""
    try:
        client = client or DistanceMatrixClient()
        # Two points in central Tokyo
        result = client.matrix([(35.681236, 139.767125)], [(35.689487, 139.691711)])
    except (ValueError, DistanceServiceError):
        return False
    return bool(result) and bool(result[0]) and isinstance(result[0][0], LegOk)
