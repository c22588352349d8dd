"""Nearest-neighbor sequencing of one technician's stops.

The visit order is built greedily from the technician's start location (or
the first geocoded job when no depot is known), always moving to the closest
unvisited job. Ties go to the earliest pinned time, then to input order, so
identical inputs always produce the identical route. An optional 2-opt pass
can shorten the greedy tour afterwards.

Jobs that would run past the end of the working window are still scheduled;
the route is flagged so a dispatcher can decide what to move.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from ...config import settings
from ...models.domain import Location, OptimizationJob, OptimizationTechnician
from .clock import time_to_minutes
from .estimator import StraightLineEstimator, TravelEstimate, TravelEstimator, TravelMatrix
from .models import MISSING_COORDINATES, WORKING_HOURS_EXCEEDED, RouteStop, TechnicianRoute

logger = logging.getLogger(__name__)

_EPSILON = 1e-9


def _pinned_minutes(job: OptimizationJob) -> float | None:
    if job.scheduled_time is None:
        return None
    return time_to_minutes(job.scheduled_time)


def _nearest_neighbor_order(jobs: Sequence[OptimizationJob], matrix: TravelMatrix) -> list[int]:
    remaining = list(range(len(jobs)))
    order: list[int] = []
    position = 0  # matrix index; 0 is the anchor

    while remaining:

        def selection_key(index: int) -> tuple:
            estimate = matrix[position][index + 1]
            pinned = _pinned_minutes(jobs[index])
            return (
                not estimate.known,
                estimate.distance,
                estimate.travel_min,
                pinned if pinned is not None else math.inf,
                index,
            )

        nearest = min(remaining, key=selection_key)
        remaining.remove(nearest)
        order.append(nearest)
        if jobs[nearest].location is not None:
            position = nearest + 1

    return order


def route_anchor(technician: OptimizationTechnician, jobs: Sequence[OptimizationJob]) -> Location | None:
    """Where the day starts: the depot, else the first job that has coordinates."""

    if technician.start_location is not None:
        return technician.start_location
    return next((job.location for job in jobs if job.location is not None), None)


def _path_distance(order: Sequence[int], jobs: Sequence[OptimizationJob], matrix: TravelMatrix) -> float:
    total = 0.0
    position = 0
    for index in order:
        estimate = matrix[position][index + 1]
        if estimate.known:
            total += estimate.distance
        if jobs[index].location is not None:
            position = index + 1
    return total


def two_opt(
    order: list[int],
    jobs: Sequence[OptimizationJob],
    matrix: TravelMatrix,
    *,
    max_passes: int | None = None,
) -> list[int]:
    """Reverse segments of the tour while that strictly shortens it."""

    if max_passes is None:
        max_passes = settings.two_opt_max_passes
    best = list(order)
    best_distance = _path_distance(best, jobs, matrix)

    for _ in range(max_passes):
        improved = False
        for i in range(len(best) - 1):
            for k in range(i + 1, len(best)):
                candidate = best[:i] + best[i : k + 1][::-1] + best[k + 1 :]
                candidate_distance = _path_distance(candidate, jobs, matrix)
                if candidate_distance < best_distance - _EPSILON:
                    best, best_distance = candidate, candidate_distance
                    improved = True
        if not improved:
            break
    return best


def _empty_route(technician: OptimizationTechnician) -> TechnicianRoute:
    return TechnicianRoute(
        technician_id=technician.technician_id,
        technician_name=technician.name,
        stops=[],
        total_distance=0.0,
        total_travel_min=0.0,
        total_service_min=0.0,
        total_duration_min=0.0,
        idle_min=0.0,
    )


def build_route(
    technician: OptimizationTechnician,
    jobs: Sequence[OptimizationJob],
    order: Sequence[int],
    matrix: TravelMatrix,
) -> TechnicianRoute:
    """Lay a fixed visit order onto the technician's clock."""

    if not order:
        return _empty_route(technician)

    work_start = time_to_minutes(technician.work_start)
    work_end = time_to_minutes(technician.work_end)
    current_time = work_start
    position = 0
    stops: list[RouteStop] = []

    for sequence, index in enumerate(order, start=1):
        job = jobs[index]
        estimate: TravelEstimate = matrix[position][index + 1]
        if estimate.known:
            distance, travel = estimate.distance, estimate.travel_min
        else:
            distance, travel = 0.0, settings.fallback_travel_minutes

        ready = current_time + travel
        pinned = _pinned_minutes(job)
        arrival = max(ready, pinned) if pinned is not None else ready
        departure = arrival + job.duration_min

        flags = [MISSING_COORDINATES] if job.location is None else []
        stops.append(
            RouteStop(
                job_id=job.job_id,
                sequence=sequence,
                arrival_min=arrival,
                departure_min=departure,
                distance_from_prev=distance,
                travel_min_from_prev=travel,
                service_min=float(job.duration_min),
                wait_min=arrival - ready,
                flags=flags,
            )
        )
        current_time = departure
        if job.location is not None:
            position = index + 1

    route = TechnicianRoute(
        technician_id=technician.technician_id,
        technician_name=technician.name,
        stops=stops,
        total_distance=sum(stop.distance_from_prev for stop in stops),
        total_travel_min=sum(stop.travel_min_from_prev for stop in stops),
        total_service_min=sum(stop.service_min for stop in stops),
        total_duration_min=sum(stop.service_min + stop.travel_min_from_prev for stop in stops),
        idle_min=sum(stop.wait_min for stop in stops),
    )

    overtime = stops[-1].departure_min - work_end
    if overtime > _EPSILON:
        route.flags.append(WORKING_HOURS_EXCEEDED)
        route.overtime_min = overtime
        logger.warning(
            f"Route for technician {technician.technician_id} runs {overtime:.0f} min past working hours"
        )
    return route


def sequence_route(
    technician: OptimizationTechnician,
    jobs: Sequence[OptimizationJob],
    estimator: TravelEstimator | None = None,
    *,
    use_two_opt: bool | None = None,
) -> TechnicianRoute:
    """Order ``jobs`` for ``technician`` and compute arrival times and totals."""

    if not jobs:
        return _empty_route(technician)

    estimator = estimator or StraightLineEstimator()
    use_two_opt = settings.two_opt_enabled if use_two_opt is None else use_two_opt

    anchor = route_anchor(technician, jobs)
    matrix = estimator.matrix([anchor, *(job.location for job in jobs)])

    order = _nearest_neighbor_order(jobs, matrix)
    if use_two_opt and len(order) > 2:
        order = two_opt(order, jobs, matrix)

    return build_route(technician, jobs, order, matrix)
