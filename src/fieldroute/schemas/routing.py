"""Routing request/response schemas."""

from __future__ import annotations

import datetime as dt
from datetime import time
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

Priority = Literal["low", "medium", "high", "urgent"]
Strategy = Literal["nearest_centroid", "round_robin"]


class JobInput(BaseModel):
    job_id: str
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    duration_min: Optional[int] = Field(default=None, ge=1, description="Estimated service time in minutes.")
    scheduled_time: Optional[time] = Field(default=None, description="Fixed start time, if the customer booked one.")
    priority: Optional[Priority] = None
    technician_id: Optional[str] = Field(default=None, description="Technician the job is already pinned to.")
    customer_name: Optional[str] = None
    address: Optional[str] = None


class TechnicianInput(BaseModel):
    technician_id: str
    name: str
    work_start: Optional[time] = None
    work_end: Optional[time] = None
    max_jobs: Optional[int] = Field(default=None, ge=0)
    start_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    start_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    active: bool = True

    @model_validator(mode="after")
    def _check_window(self) -> "TechnicianInput":
        if self.work_start and self.work_end and self.work_end <= self.work_start:
            raise ValueError("work_end must be later than work_start")
        return self


class OptimizeRequest(BaseModel):
    date: dt.date
    jobs: Optional[List[JobInput]] = Field(
        default=None,
        description="Jobs to plan. When omitted, the day's open jobs are loaded from the database.",
    )
    technicians: Optional[List[TechnicianInput]] = Field(
        default=None,
        description="Technician roster. When omitted, active technicians are loaded from the database.",
    )
    strategy: Optional[Strategy] = None
    two_opt: Optional[bool] = Field(default=None, description="Override the 2-opt improvement setting.")
    include_savings: bool = True
    persist: bool = Field(default=False, description="Write the suggested assignments back to the job store.")
    requested_by: Optional[str] = Field(default=None, description="Person or system requesting the run.")

    @model_validator(mode="after")
    def _check_unique_jobs(self) -> "OptimizeRequest":
        if self.jobs:
            ids = [job.job_id for job in self.jobs]
            if len(set(ids)) != len(ids):
                raise ValueError("job_id values must be unique")
        return self


class RouteStopModel(BaseModel):
    job_id: str
    sequence: int
    arrival_time: str
    departure_time: str
    arrival_min: float
    departure_min: float
    distance_from_prev: float
    travel_min_from_prev: float
    service_min: float
    wait_min: float
    flags: List[str]


class RoutePlanModel(BaseModel):
    technician_id: str
    technician_name: str
    job_count: int
    total_distance: float
    total_travel_min: float
    total_service_min: float
    total_duration_min: float
    idle_min: float
    overtime_min: float
    efficiency_score: float
    flags: List[str]
    warnings: List[str]
    stops: List[RouteStopModel]


class UnassignedJobModel(BaseModel):
    job_id: str
    reason: str


class SavingsModel(BaseModel):
    distance: float
    travel_min: float


class FleetSummaryModel(BaseModel):
    total_distance: float
    total_travel_min: float
    working_min: float
    idle_min: float
    total_duration_min: float
    efficiency_score: float
    jobs_assigned: int
    jobs_unassigned: int
    routes_over_hours: int
    savings: Optional[SavingsModel] = None


class OptimizeResponse(BaseModel):
    date: dt.date
    metadata: dict
    summary: FleetSummaryModel
    routes: List[RoutePlanModel]
    unassigned: List[UnassignedJobModel]


class JobAssignmentModel(BaseModel):
    job_id: str
    technician_id: str
    scheduled_time: time


class ApplyRequest(BaseModel):
    date: dt.date
    assignments: List[JobAssignmentModel] = Field(..., min_length=1)


class ApplyResponse(BaseModel):
    date: dt.date
    updated: int
    failed: List[str]
