"""Distribution of a day's jobs across technicians."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ...config import settings
from ...models.domain import Location, OptimizationJob, OptimizationTechnician
from ..geospatial import centroid, location_distance
from .clock import time_to_minutes
from .errors import NoActiveTechniciansError
from .estimator import StraightLineEstimator, TravelEstimator
from .models import CAPACITY_EXHAUSTED, UnassignedJob

logger = logging.getLogger(__name__)

STRATEGIES = ("nearest_centroid", "round_robin")


@dataclass(slots=True)
class Assignment:
    technicians: List[OptimizationTechnician]
    groups: Dict[str, List[OptimizationJob]]
    unassigned: List[UnassignedJob] = field(default_factory=list)

    def jobs_for(self, technician_id: str) -> list[OptimizationJob]:
        return self.groups.get(technician_id, [])


def _remaining(technician: OptimizationTechnician, groups: Dict[str, List[OptimizationJob]]) -> int:
    return technician.max_jobs - len(groups[technician.technician_id])


def _within_window(job: OptimizationJob, technician: OptimizationTechnician) -> bool:
    if job.scheduled_time is None:
        return True
    pinned = time_to_minutes(job.scheduled_time)
    return time_to_minutes(technician.work_start) <= pinned <= time_to_minutes(technician.work_end)


def _anchor(technician: OptimizationTechnician, assigned: Sequence[OptimizationJob]) -> Location | None:
    if technician.start_location is not None:
        return technician.start_location
    return centroid([job.location for job in assigned if job.location is not None])


def _window_minutes(technician: OptimizationTechnician) -> float:
    return time_to_minutes(technician.work_end) - time_to_minutes(technician.work_start)


def _job_minutes(estimator: TravelEstimator, anchor: Location | None, job: OptimizationJob) -> float:
    """Service time plus a rough travel leg from the technician's anchor."""

    if job.location is None:
        travel = settings.fallback_travel_minutes
    elif anchor is None:
        travel = 0.0
    else:
        travel = estimator.estimate(anchor, job.location).travel_min
    return job.duration_min + travel


def _committed_minutes(
    technician: OptimizationTechnician,
    assigned: Sequence[OptimizationJob],
    estimator: TravelEstimator,
) -> float:
    return sum(
        _job_minutes(estimator, _anchor(technician, assigned[:count]), job)
        for count, job in enumerate(assigned)
    )


def _honor_pins(
    jobs: Sequence[OptimizationJob],
    roster: Dict[str, OptimizationTechnician],
    groups: Dict[str, List[OptimizationJob]],
) -> list[OptimizationJob]:
    """Place pinned jobs with their technician; return everything still open."""

    open_jobs: list[OptimizationJob] = []
    for job in jobs:
        technician = roster.get(job.technician_id) if job.technician_id else None
        if technician is None:
            if job.technician_id:
                logger.warning(
                    f"Job {job.job_id} is pinned to unavailable technician {job.technician_id}; reassigning"
                )
            open_jobs.append(job)
        elif _remaining(technician, groups) > 0:
            groups[technician.technician_id].append(job)
        else:
            logger.warning(
                f"Technician {technician.technician_id} is already at capacity; releasing pinned job {job.job_id}"
            )
            open_jobs.append(job)
    return open_jobs


def _place_nearest_centroid(
    jobs: Sequence[OptimizationJob],
    technicians: Sequence[OptimizationTechnician],
    groups: Dict[str, List[OptimizationJob]],
) -> list[OptimizationJob]:
    estimator = StraightLineEstimator()
    committed = {
        tech.technician_id: _committed_minutes(tech, groups[tech.technician_id], estimator) for tech in technicians
    }

    leftover: list[OptimizationJob] = []
    for job in jobs:
        candidates = [tech for tech in technicians if _remaining(tech, groups) > 0]
        if not candidates:
            leftover.append(job)
            continue

        def placement_key(indexed: tuple[int, OptimizationTechnician]) -> tuple:
            roster_index, technician = indexed
            anchor = _anchor(technician, groups[technician.technician_id])
            if job.location is None:
                distance = math.inf
            elif anchor is None:
                # an idle technician with no depot can take any job
                distance = 0.0
            else:
                distance = location_distance(anchor, job.location, unit=settings.distance_unit)
            load = committed[technician.technician_id] + _job_minutes(estimator, anchor, job)
            return (
                not _within_window(job, technician),
                load > _window_minutes(technician),
                distance,
                -_remaining(technician, groups),
                roster_index,
            )

        roster_order = [(technicians.index(tech), tech) for tech in candidates]
        _, chosen = min(roster_order, key=placement_key)
        assigned = groups[chosen.technician_id]
        committed[chosen.technician_id] += _job_minutes(estimator, _anchor(chosen, assigned), job)
        if committed[chosen.technician_id] > _window_minutes(chosen):
            logger.warning(
                f"Job {job.job_id} pushes technician {chosen.technician_id} past working hours; "
                "every technician with capacity is full for the day"
            )
        assigned.append(job)
    return leftover


def _place_round_robin(
    jobs: Sequence[OptimizationJob],
    technicians: Sequence[OptimizationTechnician],
    groups: Dict[str, List[OptimizationJob]],
) -> list[OptimizationJob]:
    leftover: list[OptimizationJob] = []
    cursor = 0
    for job in jobs:
        for offset in range(len(technicians)):
            technician = technicians[(cursor + offset) % len(technicians)]
            if _remaining(technician, groups) > 0:
                groups[technician.technician_id].append(job)
                cursor = (cursor + offset + 1) % len(technicians)
                break
        else:
            leftover.append(job)
    return leftover


def assign_jobs(
    jobs: Sequence[OptimizationJob],
    technicians: Sequence[OptimizationTechnician],
    *,
    strategy: str | None = None,
) -> Assignment:
    """Group jobs per technician, honoring pins, capacity and working hours.

    Working hours are a soft limit: a job only goes past a technician's window
    when every technician with spare capacity would overflow too
    (``nearest_centroid`` strategy).

    Raises:
        NoActiveTechniciansError: if no technician is active.
        ValueError: for an unknown strategy.
    """
    strategy = strategy or settings.assignment_strategy
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown assignment strategy '{strategy}'. Expected one of {', '.join(STRATEGIES)}.")

    active = [tech for tech in technicians if tech.active]
    if not active:
        raise NoActiveTechniciansError(len(jobs))

    input_index = {job.job_id: index for index, job in enumerate(jobs)}
    if len(input_index) != len(jobs):
        raise ValueError("Job identifiers must be unique within one optimization run.")

    roster = {tech.technician_id: tech for tech in active}
    groups: Dict[str, List[OptimizationJob]] = {tech.technician_id: [] for tech in active}

    open_jobs = _honor_pins(jobs, roster, groups)
    open_jobs.sort(
        key=lambda job: (
            -job.priority,
            time_to_minutes(job.scheduled_time) if job.scheduled_time is not None else math.inf,
            input_index[job.job_id],
        )
    )

    if strategy == "round_robin":
        leftover = _place_round_robin(open_jobs, active, groups)
    else:
        leftover = _place_nearest_centroid(open_jobs, active, groups)

    # sequencing breaks ties by input order
    for group in groups.values():
        group.sort(key=lambda job: input_index[job.job_id])

    unassigned = [UnassignedJob(job_id=job.job_id, reason=CAPACITY_EXHAUSTED) for job in leftover]
    if unassigned:
        logger.warning(f"{len(unassigned)} job(s) could not be assigned: all technicians are at capacity")

    return Assignment(technicians=active, groups=groups, unassigned=unassigned)
