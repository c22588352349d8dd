"""Exceptions raised by the route optimizer."""

from __future__ import annotations


class OptimizationError(ValueError):
    """Base class for optimizer failures that abort a run."""

    code = "optimization_error"


class NoActiveTechniciansError(OptimizationError):
    """Raised when there is nobody to assign the day's jobs to."""

    code = "no_active_technicians"

    def __init__(self, job_count: int) -> None:
        super().__init__(f"No active technicians available to assign {job_count} job(s).")
        self.job_count = job_count
