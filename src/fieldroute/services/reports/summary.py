"""Route and fleet summaries for an optimized day."""

from __future__ import annotations

import math
from typing import Sequence

from ...config import settings
from ...models.domain import OptimizationTechnician
from ..routing.assigner import Assignment
from ..routing.estimator import StraightLineEstimator, TravelEstimator
from ..routing.models import (
    MISSING_COORDINATES,
    WORKING_HOURS_EXCEEDED,
    Baseline,
    FleetSummary,
    RouteSummary,
    Savings,
    TechnicianRoute,
    UnassignedJob,
)
from ..routing.sequencer import build_route, route_anchor


def efficiency_score(working_min: float, total_min: float) -> float:
    """Working share of the route duration as a percentage in [0, 100]."""

    if total_min <= 0:
        return 100.0
    score = working_min / total_min * 100.0
    return round(min(100.0, max(0.0, score)), 1)


def summarize_route(route: TechnicianRoute) -> RouteSummary:
    return RouteSummary(
        technician_id=route.technician_id,
        job_count=len(route.stops),
        total_distance=route.total_distance,
        total_travel_min=route.total_travel_min,
        working_min=route.total_service_min,
        idle_min=route.idle_min,
        total_duration_min=route.total_duration_min,
        efficiency_score=efficiency_score(route.total_service_min, route.total_duration_min),
    )


def estimate_savings(baseline: Baseline, routes: Sequence[TechnicianRoute]) -> Savings:
    """Baseline minus optimized; negative values mean the plan got longer."""

    return Savings(
        distance=baseline.distance - sum(route.total_distance for route in routes),
        travel_min=baseline.travel_min - sum(route.total_travel_min for route in routes),
    )


def unoptimized_baseline(assignment: Assignment, estimator: TravelEstimator | None = None) -> Baseline:
    """Travel totals if each technician visited their jobs in booked order.

    Booked order is pinned time first, then input order, which is how the
    schedule reads before anyone optimizes it.
    """
    estimator = estimator or StraightLineEstimator()
    distance = 0.0
    travel = 0.0
    for technician in assignment.technicians:
        jobs = assignment.jobs_for(technician.technician_id)
        if not jobs:
            continue
        order = sorted(
            range(len(jobs)),
            key=lambda index: (
                jobs[index].scheduled_time is None,
                jobs[index].scheduled_time,
                index,
            ),
        )
        anchor = route_anchor(technician, [jobs[index] for index in order])
        matrix = estimator.matrix([anchor, *(job.location for job in jobs)])
        route = build_route(technician, jobs, order, matrix)
        distance += route.total_distance
        travel += route.total_travel_min
    return Baseline(distance=distance, travel_min=travel)


def build_fleet_summary(
    routes: Sequence[TechnicianRoute],
    unassigned: Sequence[UnassignedJob] = (),
    baseline: Baseline | None = None,
) -> FleetSummary:
    summaries = [summarize_route(route) for route in routes]
    working = sum(item.working_min for item in summaries)
    total = sum(item.total_duration_min for item in summaries)
    return FleetSummary(
        routes=summaries,
        total_distance=sum(item.total_distance for item in summaries),
        total_travel_min=sum(item.total_travel_min for item in summaries),
        working_min=working,
        idle_min=sum(item.idle_min for item in summaries),
        total_duration_min=total,
        efficiency_score=efficiency_score(working, total),
        jobs_assigned=sum(item.job_count for item in summaries),
        jobs_unassigned=len(unassigned),
        routes_over_hours=sum(1 for route in routes if WORKING_HOURS_EXCEEDED in route.flags),
        savings=estimate_savings(baseline, routes) if baseline is not None else None,
    )


def route_violations(route: TechnicianRoute, technician: OptimizationTechnician) -> list[str]:
    """Dispatcher-facing warnings for one route."""

    violations: list[str] = []
    if route.overtime_min > 0:
        violations.append(f"Route exceeds working hours by {math.ceil(route.overtime_min)} minutes")
    if len(route.stops) > technician.max_jobs:
        violations.append(f"Route has {len(route.stops)} jobs, exceeds max of {technician.max_jobs}")
    if route.stops:
        score = efficiency_score(route.total_service_min, route.total_duration_min)
        if score < settings.low_efficiency_threshold:
            violations.append(f"Low efficiency score: {score:g}%")
    missing = [stop.job_id for stop in route.stops if MISSING_COORDINATES in stop.flags]
    if missing:
        violations.append(f"Travel estimated without coordinates for job(s): {', '.join(missing)}")
    return violations
