"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.routing import ApplyRequest, ApplyResponse, OptimizeRequest, OptimizeResponse
from ...services.routing.errors import NoActiveTechniciansError
from ...services.routing.service import apply_assignments, optimize_day

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/optimize", response_model=OptimizeResponse, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizeRequest) -> OptimizeResponse:
    try:
        return optimize_day(payload)
    except NoActiveTechniciansError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": exc.code, "message": str(exc)},
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error optimizing routes: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize routes: {str(exc)}",
        ) from exc


@router.post("/apply", response_model=ApplyResponse, status_code=status.HTTP_200_OK)
def apply(payload: ApplyRequest) -> ApplyResponse:
    """Write accepted technician/time assignments back to the job store."""
    try:
        return apply_assignments(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error applying route assignments: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to apply assignments: {str(exc)}",
        ) from exc
