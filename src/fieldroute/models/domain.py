"""Domain models for jobs and technicians fed to the optimizer."""

from dataclasses import dataclass
from datetime import time
from typing import Optional

PRIORITY_WEIGHTS = {"low": 1, "medium": 2, "high": 3, "urgent": 4}


@dataclass(frozen=True, slots=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class OptimizationJob:
    """A job awaiting placement on a technician's day.

    ``location`` is ``None`` when the customer address was never geocoded.
    ``technician_id`` pins the job to a technician when already assigned.
    """

    job_id: str
    location: Optional[Location]
    duration_min: int = 60
    scheduled_time: Optional[time] = None
    priority: int = 0
    technician_id: Optional[str] = None
    customer_name: Optional[str] = None
    address: Optional[str] = None


@dataclass(frozen=True, slots=True)
class OptimizationTechnician:
    """A technician available for the day with a same-day working window."""

    technician_id: str
    name: str
    work_start: time
    work_end: time
    max_jobs: int
    start_location: Optional[Location] = None
    active: bool = True


def priority_weight(priority: str | int | None) -> int:
    """Translate a CRM priority label into a sortable weight."""

    if priority is None:
        return 0
    if isinstance(priority, int):
        return priority
    return PRIORITY_WEIGHTS.get(priority.strip().lower(), 0)
