import json

import httpx
import pytest

from welfare_routing.services.routing import distance_client
from welfare_routing.services.routing.distance_client import (
    DistanceMatrixClient,
    DistanceServiceError,
    check_health,
    parse_element,
    parse_rows,
)
from welfare_routing.services.routing.models import LegOk, LegUnavailable

ORIGINS = [(35.681236, 139.767125)]
DESTINATIONS = [(35.689487, 139.691711)]

PROXY_PAYLOAD = {"status": "OK", "rows": [{"elements": [{"status": "OK", "distance": 1200, "duration": 300}]}]}
DIRECT_PAYLOAD = {
    "status": "OK",
    "rows": [
        {
            "elements": [
                {
                    "status": "OK",
                    "distance": {"value": 1500, "text": "1.5 km"},
                    "duration": {"value": 240, "text": "4 分"},
                }
            ]
        }
    ],
}


def _use_transport(monkeypatch: pytest.MonkeyPatch, client: DistanceMatrixClient, handler) -> None:
    monkeypatch.setattr(client, "_get_client", lambda: httpx.Client(transport=httpx.MockTransport(handler)))


def test_parse_element_variants() -> None:
    assert parse_element({"status": "OK", "distance": 10, "duration": 5}) == LegOk(distance_m=10.0, duration_s=5.0)
    assert parse_element({"status": "NOT_FOUND"}) == LegUnavailable(status="NOT_FOUND")
    assert parse_element({"status": "OK", "distance": {"value": -1}, "duration": 5}) == LegUnavailable(
        status="INVALID_ELEMENT"
    )
    assert parse_element("garbage") == LegUnavailable(status="INVALID_ELEMENT")


def test_parse_rows_rejects_failed_status() -> None:
    with pytest.raises(DistanceServiceError):
        parse_rows({"status": "REQUEST_DENIED", "error_message": "bad key"})
    with pytest.raises(DistanceServiceError):
        parse_rows({"status": "OK"})


def test_parse_rows_keeps_invalid_rows_empty() -> None:
    rows = parse_rows({"status": "OK", "rows": [{"elements": [{"status": "ZERO_RESULTS"}]}, {"nope": 1}]})

    assert rows == [[LegUnavailable(status="ZERO_RESULTS")], []]


def test_client_requires_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(distance_client.settings, "distance_proxy_url", None)
    monkeypatch.setattr(distance_client.settings, "google_maps_api_key", None)

    with pytest.raises(ValueError):
        DistanceMatrixClient()


def test_proxy_request(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=PROXY_PAYLOAD)

    client = DistanceMatrixClient(proxy_url="https://proxy.example/maps/", api_key="")
    _use_transport(monkeypatch, client, handler)

    matrix = client.matrix(ORIGINS, DESTINATIONS)

    assert matrix == [[LegOk(distance_m=1200.0, duration_s=300.0)]]
    assert seen["url"] == "https://proxy.example/maps/distance-matrix"
    assert seen["body"]["origins"] == [{"lat": 35.681236, "lng": 139.767125}]


def test_direct_request(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=DIRECT_PAYLOAD)

    monkeypatch.setattr(distance_client.settings, "distance_proxy_url", None)
    client = DistanceMatrixClient(api_key="secret")
    _use_transport(monkeypatch, client, handler)

    matrix = client.matrix(ORIGINS, DESTINATIONS)

    assert matrix == [[LegOk(distance_m=1500.0, duration_s=240.0)]]
    assert seen["params"]["key"] == "secret"
    assert seen["params"]["origins"] == "35.681236,139.767125"
    assert seen["params"]["mode"] == "driving"


def test_proxy_failure_falls_back_to_direct(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "proxy.example":
            return httpx.Response(502, text="bad gateway")
        return httpx.Response(200, json=DIRECT_PAYLOAD)

    client = DistanceMatrixClient(proxy_url="https://proxy.example", api_key="secret", max_retries=0)
    _use_transport(monkeypatch, client, handler)

    assert client.matrix(ORIGINS, DESTINATIONS) == [[LegOk(distance_m=1500.0, duration_s=240.0)]]


def test_proxy_failure_without_key_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(distance_client.settings, "google_maps_api_key", None)
    client = DistanceMatrixClient(proxy_url="https://proxy.example", max_retries=0)
    _use_transport(monkeypatch, client, lambda request: httpx.Response(500))

    with pytest.raises(DistanceServiceError):
        client.matrix(ORIGINS, DESTINATIONS)


def test_retries_with_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json=PROXY_PAYLOAD)

    monkeypatch.setattr(distance_client.time, "sleep", lambda seconds: None)
    client = DistanceMatrixClient(proxy_url="https://proxy.example", max_retries=2, backoff_seconds=0.1)
    _use_transport(monkeypatch, client, handler)

    assert client.matrix(ORIGINS, DESTINATIONS) == [[LegOk(distance_m=1200.0, duration_s=300.0)]]
    assert len(attempts) == 2


def test_check_health(monkeypatch: pytest.MonkeyPatch) -> None:
    client = DistanceMatrixClient(proxy_url="https://proxy.example")
    _use_transport(monkeypatch, client, lambda request: httpx.Response(200, json=PROXY_PAYLOAD))
    assert check_health(client) is True

    monkeypatch.setattr(distance_client.settings, "google_maps_api_key", None)
    broken = DistanceMatrixClient(proxy_url="https://proxy.example", max_retries=0)
    _use_transport(monkeypatch, broken, lambda request: httpx.Response(500))
    assert check_health(broken) is False
