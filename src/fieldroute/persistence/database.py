"""Supabase reads and write-backs for the optimizer's jobs and technicians."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Sequence

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import Location, OptimizationJob, OptimizationTechnician, priority_weight

CLOSED_JOB_STATUSES = ("cancelled", "completed")


def _parse_time(value: Any) -> time | None:
    if value in (None, ""):
        return None
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError:
        logging.warning(f"Ignoring unparseable time value '{value}'")
        return None


def _location(lat: Any, lng: Any) -> Location | None:
    if lat is None or lng is None:
        return None
    try:
        return Location(latitude=float(lat), longitude=float(lng))
    except (TypeError, ValueError):
        return None


def job_from_row(row: dict[str, Any]) -> OptimizationJob:
    customer = row.get("customer") or {}
    if isinstance(customer, list):
        customer = customer[0] if customer else {}
    return OptimizationJob(
        job_id=str(row["id"]),
        location=_location(customer.get("lat"), customer.get("lng")),
        duration_min=int(row.get("duration") or settings.default_job_duration_minutes),
        scheduled_time=_parse_time(row.get("scheduled_time")),
        priority=priority_weight(row.get("priority")),
        technician_id=str(row["technician_id"]) if row.get("technician_id") else None,
        customer_name=customer.get("name"),
        address=customer.get("address"),
    )


def technician_from_row(row: dict[str, Any]) -> OptimizationTechnician:
    max_jobs = row.get("max_jobs_per_day")
    return OptimizationTechnician(
        technician_id=str(row["id"]),
        name=row.get("name") or str(row["id"]),
        work_start=_parse_time(row.get("working_hours_start")) or settings.default_work_start,
        work_end=_parse_time(row.get("working_hours_end")) or settings.default_work_end,
        max_jobs=int(max_jobs) if max_jobs is not None else settings.default_max_jobs,
        start_location=_location(row.get("home_lat"), row.get("home_lng")),
        active=bool(row.get("is_active", True)),
    )


def get_jobs_for_date(day: date) -> list[OptimizationJob]:
    """Open jobs scheduled on ``day`` with their customer coordinates."""

    supabase = get_supabase_client()
    if not supabase:
        logging.warning("Database not configured - cannot fetch jobs")
        return []

    try:
        response = (
            supabase.table("jobs")
            .select("id, technician_id, scheduled_time, duration, priority, status, customer:customers(id, name, address, lat, lng)")
            .eq("scheduled_date", day.isoformat())
            .not_.in_("status", list(CLOSED_JOB_STATUSES))
            .order("scheduled_time")
            .execute()
        )
    except Exception as e:
        logging.error(f"Failed to load jobs for {day.isoformat()}: {e}")
        raise ValueError(f"Failed to load jobs for {day.isoformat()}") from e

    rows = response.data or []
    logging.info(f"Retrieved {len(rows)} open jobs for {day.isoformat()} from database")
    return [job_from_row(row) for row in rows]


def get_active_technicians() -> list[OptimizationTechnician]:
    supabase = get_supabase_client()
    if not supabase:
        logging.warning("Database not configured - cannot fetch technicians")
        return []

    try:
        response = supabase.table("technicians").select("*").eq("is_active", True).order("name").execute()
    except Exception as e:
        logging.error(f"Failed to load technicians: {e}")
        raise ValueError("Failed to load technicians") from e

    return [technician_from_row(row) for row in response.data or []]


def save_job_assignments(
    day: date,
    assignments: Sequence[tuple[str, str, time]],
) -> tuple[int, list[str]]:
    """Write ``(job_id, technician_id, scheduled_time)`` triples back to the jobs table.

    Returns:
        Number of jobs updated and the ids that could not be written.
        Concurrent writers are not coordinated; the last write wins.
    """
    supabase = get_supabase_client()
    if not supabase:
        logging.warning("Database not configured - assignments were not saved")
        return 0, [job_id for job_id, _, _ in assignments]

    updated = 0
    failed: list[str] = []
    now = datetime.now(timezone.utc).isoformat()
    for job_id, technician_id, scheduled_time in assignments:
        try:
            response = (
                supabase.table("jobs")
                .update(
                    {
                        "technician_id": technician_id,
                        "scheduled_date": day.isoformat(),
                        "scheduled_time": scheduled_time.strftime("%H:%M"),
                        "updated_at": now,
                    }
                )
                .eq("id", job_id)
                .execute()
            )
        except Exception as e:
            logging.error(f"Failed to update schedule for job {job_id}: {e}")
            failed.append(job_id)
            continue
        if response.data:
            updated += 1
        else:
            logging.warning(f"Job {job_id} not found while saving assignments")
            failed.append(job_id)

    logging.info(f"Saved {updated} job assignment(s) for {day.isoformat()} ({len(failed)} failed)")
    return updated, failed
