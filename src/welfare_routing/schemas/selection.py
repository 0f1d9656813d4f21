"""Selection store schemas."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel

from .routing import ResourceAssignmentModel, RiderRequestModel


class RequestSelection(BaseModel):
    requests: List[RiderRequestModel]


class ResourceSelection(BaseModel):
    assignments: List[ResourceAssignmentModel]
