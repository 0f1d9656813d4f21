"""Grouping of selected requests into facility and pickup-time buckets."""

from __future__ import annotations

import logging
from typing import Iterable

from ...models.domain import DEFAULT_ARRIVAL_TIME, RiderRequest

logger = logging.getLogger(__name__)

TimeWindowGroups = dict[str, dict[str, list[RiderRequest]]]


def time_window(pickup_time: str | None, window_minutes: int = 30) -> str:
    """Return the ``HH:MM`` label of the window containing ``pickup_time``.

    Minutes are floored to a multiple of ``window_minutes``; a missing time
    falls into the ``00:00`` window.
    """
    if not pickup_time:
        return DEFAULT_ARRIVAL_TIME
    try:
        hours_text, minutes_text = pickup_time.strip().split(":")[:2]
        hours, minutes = int(hours_text), int(minutes_text)
        if not 0 <= hours < 24 or not 0 <= minutes < 60:
            raise ValueError(pickup_time)
    except ValueError:
        logger.warning(f"Unparseable pickup time '{pickup_time}', using the {DEFAULT_ARRIVAL_TIME} window")
        return DEFAULT_ARRIVAL_TIME
    window = (minutes // window_minutes) * window_minutes
    return f"{hours:02d}:{window:02d}"


def group_requests(requests: Iterable[RiderRequest], window_minutes: int = 30) -> TimeWindowGroups:
    """Bucket selected requests by target facility, then by pickup window.

    Facilities, windows and riders keep the order in which they first appear.
    """
    groups: TimeWindowGroups = {}
    for request in requests:
        if not request.selected:
            continue
        window = time_window(request.rider.pickup_time, window_minutes)
        groups.setdefault(request.target_facility_id, {}).setdefault(window, []).append(request)
    return groups
