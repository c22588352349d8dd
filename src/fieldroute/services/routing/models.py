"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

MISSING_COORDINATES = "MISSING_COORDINATES"
WORKING_HOURS_EXCEEDED = "WORKING_HOURS_EXCEEDED"
CAPACITY_EXHAUSTED = "capacity_exhausted"


@dataclass(slots=True)
class RouteStop:
    job_id: str
    sequence: int
    arrival_min: float
    departure_min: float
    distance_from_prev: float
    travel_min_from_prev: float
    service_min: float
    wait_min: float = 0.0
    flags: List[str] = field(default_factory=list)


@dataclass(slots=True)
class TechnicianRoute:
    technician_id: str
    technician_name: str
    stops: List[RouteStop]
    total_distance: float
    total_travel_min: float
    total_service_min: float
    total_duration_min: float
    idle_min: float
    overtime_min: float = 0.0
    flags: List[str] = field(default_factory=list)

    @property
    def job_ids(self) -> list[str]:
        return [stop.job_id for stop in self.stops]


@dataclass(slots=True)
class UnassignedJob:
    job_id: str
    reason: str


@dataclass(slots=True)
class Baseline:
    """Travel totals of a plan before optimization."""

    distance: float
    travel_min: float


@dataclass(slots=True)
class Savings:
    distance: float
    travel_min: float


@dataclass(slots=True)
class RouteSummary:
    technician_id: str
    job_count: int
    total_distance: float
    total_travel_min: float
    working_min: float
    idle_min: float
    total_duration_min: float
    efficiency_score: float


@dataclass(slots=True)
class FleetSummary:
    routes: List[RouteSummary]
    total_distance: float
    total_travel_min: float
    working_min: float
    idle_min: float
    total_duration_min: float
    efficiency_score: float
    jobs_assigned: int
    jobs_unassigned: int
    routes_over_hours: int
    savings: Optional[Savings] = None


@dataclass(slots=True)
class OptimizationResult:
    date: Optional[str]
    routes: List[TechnicianRoute]
    unassigned: List[UnassignedJob]
    summary: FleetSummary
    metadata: dict
