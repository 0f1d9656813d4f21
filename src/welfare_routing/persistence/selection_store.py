"""Single-slot store for today's rider selection and resource pairs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from ..schemas.routing import ResourceAssignmentModel, RiderRequestModel
from .filesystem import FileStorage

logger = logging.getLogger(__name__)

REQUESTS_FILE = "requests.json"
RESOURCES_FILE = "resources.json"


class SelectionStore:
    """Keeps one current copy of each list; every save replaces the previous one."""

    def __init__(self, root: Path | None = None) -> None:
        self.storage = FileStorage(root=root)
        self.directory = self.storage.root / "selection"

    def _load(self, filename: str, model: type) -> list:
        items = self.storage.read_json(self.directory / filename, default=[])
        if not isinstance(items, list):
            logger.warning(f"Ignoring malformed selection file {filename}")
            return []
        loaded = []
        for item in items:
            try:
                loaded.append(model.model_validate(item))
            except ValidationError as exc:
                logger.warning(f"Skipping invalid entry in {filename}: {exc}")
        return loaded

    def load_requests(self) -> list[RiderRequestModel]:
        return self._load(REQUESTS_FILE, RiderRequestModel)

    def save_requests(self, requests: Sequence[RiderRequestModel]) -> None:
        self.storage.write_json(
            self.directory / REQUESTS_FILE, [request.model_dump() for request in requests]
        )

    def load_resources(self) -> list[ResourceAssignmentModel]:
        return self._load(RESOURCES_FILE, ResourceAssignmentModel)

    def save_resources(self, assignments: Sequence[ResourceAssignmentModel]) -> None:
        self.storage.write_json(
            self.directory / RESOURCES_FILE, [assignment.model_dump() for assignment in assignments]
        )
