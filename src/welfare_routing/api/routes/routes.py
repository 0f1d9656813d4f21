"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from ...schemas.routing import OptimizationRequest, OptimizationResponse
from ...services.routing.service import run_optimization, run_saved_selection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/optimize", response_model=OptimizationResponse, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizationRequest) -> OptimizationResponse:
    try:
        return run_optimization(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error optimizing routes: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize routes: {str(exc)}"
        ) from exc


@router.post("/optimize/today", response_model=OptimizationResponse, status_code=status.HTTP_200_OK)
def optimize_today(
    persist: bool = Query(default=True, description="Write summary.json and stops.csv for this run"),
    run_label: str | None = Query(default=None, description="Friendly name for persisted outputs"),
) -> OptimizationResponse:
    """Optimize the saved selection against the current records."""
    try:
        return run_saved_selection(persist=persist, run_label=run_label)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error optimizing saved selection: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize routes: {str(exc)}"
        ) from exc
