"""Accumulator for non-fatal optimization errors."""

from __future__ import annotations

import logging
import threading
from typing import Iterator, Sequence

from ...models.domain import ErrorKind, OptimizationError

logger = logging.getLogger(__name__)


class ErrorCollector:
    """Collects planning failures so a run can report them next to its routes."""

    def __init__(self) -> None:
        self._errors: list[OptimizationError] = []
        # distance estimates report from worker threads
        self._lock = threading.Lock()

    def add(
        self,
        kind: ErrorKind,
        message: str,
        *,
        rider_ids: Sequence[str] = (),
        facility_id: str | None = None,
        time_window: str | None = None,
    ) -> OptimizationError:
        error = OptimizationError(
            kind=kind,
            message=message,
            rider_ids=tuple(rider_ids),
            facility_id=facility_id,
            time_window=time_window,
        )
        logger.warning(f"[{kind}] {message}")
        with self._lock:
            self._errors.append(error)
        return error

    def by_kind(self, kind: ErrorKind) -> list[OptimizationError]:
        return [error for error in self._errors if error.kind == kind]

    @property
    def errors(self) -> list[OptimizationError]:
        return list(self._errors)

    def __iter__(self) -> Iterator[OptimizationError]:
        return iter(self._errors)

    def __len__(self) -> int:
        return len(self._errors)
