"""Routing orchestration service."""

from __future__ import annotations

import logging
from datetime import date
from typing import Sequence

from ...config import settings
from ...db.supabase import get_supabase_client
from ...models.domain import Location, OptimizationJob, OptimizationTechnician, priority_weight
from ...persistence.database import get_active_technicians, get_jobs_for_date, save_job_assignments
from ...schemas.routing import (
    ApplyRequest,
    ApplyResponse,
    FleetSummaryModel,
    JobInput,
    OptimizeRequest,
    OptimizeResponse,
    RoutePlanModel,
    RouteStopModel,
    SavingsModel,
    TechnicianInput,
    UnassignedJobModel,
)
from ..reports.summary import build_fleet_summary, route_violations, unoptimized_baseline
from .assigner import assign_jobs
from .clock import format_minutes, minutes_to_time
from .estimator import TravelEstimator, build_estimator
from .models import OptimizationResult
from .sequencer import sequence_route

logger = logging.getLogger(__name__)


def optimize_schedule(
    jobs: Sequence[OptimizationJob],
    technicians: Sequence[OptimizationTechnician],
    *,
    day: date | None = None,
    strategy: str | None = None,
    estimator: TravelEstimator | None = None,
    use_two_opt: bool | None = None,
    include_savings: bool = False,
) -> OptimizationResult:
    """Assign and sequence one day of jobs.

    The result depends only on the inputs and settings; nothing is read from
    or written to the store here.

    Raises:
        NoActiveTechniciansError: if no technician in ``technicians`` is active.
    """
    estimator = estimator or build_estimator()
    strategy = strategy or settings.assignment_strategy
    use_two_opt = settings.two_opt_enabled if use_two_opt is None else use_two_opt

    assignment = assign_jobs(jobs, technicians, strategy=strategy)
    routes = [
        sequence_route(
            technician,
            assignment.jobs_for(technician.technician_id),
            estimator,
            use_two_opt=use_two_opt,
        )
        for technician in assignment.technicians
    ]

    baseline = unoptimized_baseline(assignment, estimator) if include_savings else None
    summary = build_fleet_summary(routes, assignment.unassigned, baseline)

    logger.info(
        f"Optimized {summary.jobs_assigned} job(s) across {len(routes)} technician(s): "
        f"{summary.total_distance:.1f} {settings.distance_unit}, {summary.total_travel_min:.0f} min travel, "
        f"{summary.jobs_unassigned} unassigned"
    )

    return OptimizationResult(
        date=day.isoformat() if day else None,
        routes=routes,
        unassigned=assignment.unassigned,
        summary=summary,
        metadata={
            "strategy": strategy,
            "estimator": estimator.name,
            "distance_unit": settings.distance_unit,
            "two_opt": use_two_opt,
        },
    )


def _job_from_input(item: JobInput) -> OptimizationJob:
    location = None
    if item.latitude is not None and item.longitude is not None:
        location = Location(latitude=item.latitude, longitude=item.longitude)
    return OptimizationJob(
        job_id=item.job_id,
        location=location,
        duration_min=item.duration_min or settings.default_job_duration_minutes,
        scheduled_time=item.scheduled_time,
        priority=priority_weight(item.priority),
        technician_id=item.technician_id,
        customer_name=item.customer_name,
        address=item.address,
    )


def _technician_from_input(item: TechnicianInput) -> OptimizationTechnician:
    start_location = None
    if item.start_latitude is not None and item.start_longitude is not None:
        start_location = Location(latitude=item.start_latitude, longitude=item.start_longitude)
    work_start = item.work_start or settings.default_work_start
    work_end = item.work_end or settings.default_work_end
    if work_end <= work_start:
        raise ValueError(f"Technician {item.technician_id} has a working window that ends before it starts.")
    return OptimizationTechnician(
        technician_id=item.technician_id,
        name=item.name,
        work_start=work_start,
        work_end=work_end,
        max_jobs=item.max_jobs if item.max_jobs is not None else settings.default_max_jobs,
        start_location=start_location,
        active=item.active,
    )


def _to_response(
    result: OptimizationResult,
    technicians: Sequence[OptimizationTechnician],
    day: date,
) -> OptimizeResponse:
    roster = {tech.technician_id: tech for tech in technicians}
    route_summaries = {item.technician_id: item for item in result.summary.routes}

    plans = [
        RoutePlanModel(
            technician_id=route.technician_id,
            technician_name=route.technician_name,
            job_count=len(route.stops),
            total_distance=round(route.total_distance, 2),
            total_travel_min=round(route.total_travel_min, 1),
            total_service_min=route.total_service_min,
            total_duration_min=round(route.total_duration_min, 1),
            idle_min=round(route.idle_min, 1),
            overtime_min=round(route.overtime_min, 1),
            efficiency_score=route_summaries[route.technician_id].efficiency_score,
            flags=list(route.flags),
            warnings=route_violations(route, roster[route.technician_id]),
            stops=[
                RouteStopModel(
                    job_id=stop.job_id,
                    sequence=stop.sequence,
                    arrival_time=format_minutes(stop.arrival_min),
                    departure_time=format_minutes(stop.departure_min),
                    arrival_min=round(stop.arrival_min, 2),
                    departure_min=round(stop.departure_min, 2),
                    distance_from_prev=round(stop.distance_from_prev, 2),
                    travel_min_from_prev=round(stop.travel_min_from_prev, 2),
                    service_min=stop.service_min,
                    wait_min=round(stop.wait_min, 2),
                    flags=list(stop.flags),
                )
                for stop in route.stops
            ],
        )
        for route in result.routes
    ]

    summary = result.summary
    savings = None
    if summary.savings is not None:
        savings = SavingsModel(
            distance=round(summary.savings.distance, 2),
            travel_min=round(summary.savings.travel_min, 1),
        )

    return OptimizeResponse(
        date=day,
        metadata=result.metadata,
        summary=FleetSummaryModel(
            total_distance=round(summary.total_distance, 2),
            total_travel_min=round(summary.total_travel_min, 1),
            working_min=summary.working_min,
            idle_min=round(summary.idle_min, 1),
            total_duration_min=round(summary.total_duration_min, 1),
            efficiency_score=summary.efficiency_score,
            jobs_assigned=summary.jobs_assigned,
            jobs_unassigned=summary.jobs_unassigned,
            routes_over_hours=summary.routes_over_hours,
            savings=savings,
        ),
        routes=plans,
        unassigned=[UnassignedJobModel(job_id=item.job_id, reason=item.reason) for item in result.unassigned],
    )


def optimize_day(payload: OptimizeRequest) -> OptimizeResponse:
    """Load (or accept) a day's inputs, optimize, and optionally write the plan back."""

    needs_store = payload.jobs is None or payload.technicians is None or payload.persist
    if needs_store and get_supabase_client() is None:
        raise ValueError(
            "Database is not configured. Provide jobs and technicians inline or set FRO_SUPABASE_URL and FRO_SUPABASE_KEY."
        )

    if payload.jobs is not None:
        jobs = [_job_from_input(item) for item in payload.jobs]
    else:
        jobs = get_jobs_for_date(payload.date)

    if payload.technicians is not None:
        technicians = [_technician_from_input(item) for item in payload.technicians]
    else:
        technicians = get_active_technicians()

    result = optimize_schedule(
        jobs,
        technicians,
        day=payload.date,
        strategy=payload.strategy,
        use_two_opt=payload.two_opt,
        include_savings=payload.include_savings,
    )

    if payload.requested_by:
        result.metadata["requested_by"] = payload.requested_by

    if payload.persist:
        planned = []
        past_midnight = []
        for route in result.routes:
            for stop in route.stops:
                try:
                    planned.append((stop.job_id, route.technician_id, minutes_to_time(stop.arrival_min)))
                except ValueError:
                    past_midnight.append(stop.job_id)
        if past_midnight:
            logger.warning(
                f"Not saving {len(past_midnight)} job(s) that would start after midnight: {', '.join(past_midnight)}"
            )

        updated, failed = save_job_assignments(payload.date, planned) if planned else (0, [])
        failed = past_midnight + failed
        result.metadata["persisted"] = updated
        if failed:
            result.metadata["persist_failed"] = failed

    return _to_response(result, technicians, payload.date)


def apply_assignments(payload: ApplyRequest) -> ApplyResponse:
    """Persist a plan the dispatcher accepted (possibly after manual edits)."""

    if get_supabase_client() is None:
        raise ValueError("Database is not configured. Set FRO_SUPABASE_URL and FRO_SUPABASE_KEY.")

    updated, failed = save_job_assignments(
        payload.date,
        [(item.job_id, item.technician_id, item.scheduled_time) for item in payload.assignments],
    )
    return ApplyResponse(date=payload.date, updated=updated, failed=failed)
