"""Endpoints for the saved daily selection."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...persistence.selection_store import SelectionStore
from ...schemas.selection import RequestSelection, ResourceSelection
from ...services.routing.service import sync_saved_requests

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/selections", tags=["selections"])


@router.get("/requests", response_model=RequestSelection, status_code=status.HTTP_200_OK)
def get_requests() -> RequestSelection:
    return RequestSelection(requests=SelectionStore().load_requests())


@router.put("/requests", response_model=RequestSelection, status_code=status.HTTP_200_OK)
def put_requests(payload: RequestSelection) -> RequestSelection:
    """Replace the saved rider selection."""
    SelectionStore().save_requests(payload.requests)
    return payload


@router.post("/requests/sync", response_model=RequestSelection, status_code=status.HTTP_200_OK)
def sync_requests() -> RequestSelection:
    """Refresh the saved selection from the current rider records."""
    try:
        return RequestSelection(requests=sync_saved_requests())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error syncing saved selection: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to sync selection: {str(exc)}"
        ) from exc


@router.get("/resources", response_model=ResourceSelection, status_code=status.HTTP_200_OK)
def get_resources() -> ResourceSelection:
    return ResourceSelection(assignments=SelectionStore().load_resources())


@router.put("/resources", response_model=ResourceSelection, status_code=status.HTTP_200_OK)
def put_resources(payload: ResourceSelection) -> ResourceSelection:
    """Replace the saved vehicle/driver pairs."""
    SelectionStore().save_resources(payload.assignments)
    return payload
