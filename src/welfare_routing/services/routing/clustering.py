"""Proximity clustering of pickup locations."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ...models.domain import RiderRequest
from ..geospatial import haversine_m_many


def cluster_requests(requests: Sequence[RiderRequest], threshold_m: float) -> list[list[RiderRequest]]:
    """Group requests whose pickup points lie within ``threshold_m`` of a cluster anchor.

    Each cluster is anchored at its first member's pickup coordinates. A request
    joins the first cluster whose anchor is close enough; otherwise it starts a
    new cluster. Input order decides both membership and cluster order.
    """
    anchors: list[tuple[float, float]] = []
    clusters: list[list[RiderRequest]] = []

    for request in requests:
        lat, lng = request.rider.pickup_coordinates
        distances = haversine_m_many(lat, lng, anchors)
        matches = np.flatnonzero(distances <= threshold_m)
        if matches.size:
            clusters[int(matches[0])].append(request)
        else:
            anchors.append((lat, lng))
            clusters.append([request])

    return clusters
