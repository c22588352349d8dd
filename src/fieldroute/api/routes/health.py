"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_osrm_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.osrm_client import check_health as osrm_health_check
    return osrm_health_check


@router.get("/health/osrm", status_code=status.HTTP_200_OK)
def health_osrm() -> dict:
    """Check OSRM service health; the optimizer falls back to straight-line estimates without it."""
    from ...config import settings

    if not settings.osrm_base_url:
        return {"service": "osrm", "configured": False, "healthy": False, "estimator": "straight_line"}
    osrm_health_check = _get_osrm_health_check()
    return {"service": "osrm", "configured": True, "healthy": osrm_health_check(), "estimator": "osrm"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check database connection and technician roster availability."""
    from ...db.supabase import get_supabase_client

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set FRO_SUPABASE_URL and FRO_SUPABASE_KEY environment variables.",
            "active_technicians": 0,
        }

    try:
        response = supabase.table("technicians").select("id", count="exact").eq("is_active", True).execute()
        count = response.count if response.count is not None else len(response.data or [])
        return {
            "configured": True,
            "connected": True,
            "active_technicians": count,
            "message": f"Database connected. Found {count} active technicians.",
        }
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
