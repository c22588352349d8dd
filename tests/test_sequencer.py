from datetime import time

import pytest

from fieldroute.config import settings
from fieldroute.models.domain import Location, OptimizationJob, OptimizationTechnician
from fieldroute.services.routing.estimator import StraightLineEstimator, TravelEstimate, TravelEstimator
from fieldroute.services.routing.models import MISSING_COORDINATES, WORKING_HOURS_EXCEEDED
from fieldroute.services.routing.sequencer import _path_distance, sequence_route, two_opt


class LineEstimator(TravelEstimator):
    """Points on a line: one latitude degree is one mile and one minute."""

    name = "line"

    def estimate(self, origin, destination):
        if origin is None or destination is None:
            return TravelEstimate(0.0, 0.0, known=False)
        distance = abs(origin.latitude - destination.latitude)
        return TravelEstimate(distance=distance, travel_min=distance)


def _job(jid: str, lat: float | None, duration: int = 30, scheduled: time | None = None) -> OptimizationJob:
    location = Location(latitude=lat, longitude=0.0) if lat is not None else None
    return OptimizationJob(job_id=jid, location=location, duration_min=duration, scheduled_time=scheduled)


def _tech(start: time = time(8, 0), end: time = time(16, 0), depot: float | None = 0.0) -> OptimizationTechnician:
    return OptimizationTechnician(
        technician_id="T1",
        name="Tech One",
        work_start=start,
        work_end=end,
        max_jobs=10,
        start_location=Location(latitude=depot, longitude=0.0) if depot is not None else None,
    )


def _assert_timing_invariants(route):
    for previous, current in zip(route.stops, route.stops[1:]):
        assert current.arrival_min >= previous.arrival_min
        assert current.arrival_min >= (
            previous.arrival_min + previous.service_min + current.travel_min_from_prev - 1e-6
        )


def test_empty_job_list_yields_empty_route():
    route = sequence_route(_tech(), [], LineEstimator())

    assert route.stops == []
    assert route.total_distance == 0.0
    assert route.total_travel_min == 0.0
    assert route.total_duration_min == 0.0
    assert route.flags == []


def test_identical_locations_keep_input_order():
    spot = Location(latitude=37.7749, longitude=-122.4194)
    jobs = [OptimizationJob(job_id=f"J{i}", location=spot, duration_min=60) for i in range(1, 4)]
    technician = OptimizationTechnician(
        technician_id="T1", name="Tech", work_start=time(8, 0), work_end=time(16, 0), max_jobs=5
    )

    route = sequence_route(technician, jobs, StraightLineEstimator())

    assert route.job_ids == ["J1", "J2", "J3"]
    assert route.total_distance == pytest.approx(0.0)
    assert [stop.arrival_min for stop in route.stops] == [480.0, 540.0, 600.0]


def test_visits_nearest_job_first():
    jobs = [_job("FAR", 3.0), _job("NEAR", 1.0), _job("MID", 2.0)]

    route = sequence_route(_tech(), jobs, LineEstimator())

    assert route.job_ids == ["NEAR", "MID", "FAR"]
    assert [stop.sequence for stop in route.stops] == [1, 2, 3]
    assert route.stops[0].arrival_min == pytest.approx(481.0)
    assert route.stops[1].arrival_min == pytest.approx(512.0)
    assert route.stops[2].arrival_min == pytest.approx(543.0)
    assert route.total_distance == pytest.approx(3.0)
    assert route.total_travel_min == pytest.approx(3.0)
    assert route.total_service_min == pytest.approx(90.0)
    assert route.total_duration_min == pytest.approx(93.0)
    _assert_timing_invariants(route)


def test_first_job_is_the_anchor_without_depot():
    jobs = [_job("A", 5.0), _job("B", 1.0), _job("C", 4.0)]

    route = sequence_route(_tech(depot=None), jobs, LineEstimator())

    assert route.job_ids == ["A", "C", "B"]
    assert route.stops[0].travel_min_from_prev == 0.0
    assert route.stops[0].arrival_min == 480.0


def test_ties_prefer_earliest_pinned_time():
    jobs = [
        _job("LATE", 1.0, scheduled=time(9, 0)),
        _job("EARLY", 1.0, scheduled=time(8, 30)),
        _job("OPEN", 1.0),
    ]

    route = sequence_route(_tech(), jobs, LineEstimator())

    assert route.job_ids == ["EARLY", "LATE", "OPEN"]


def test_pinned_time_delays_arrival_and_records_wait():
    jobs = [_job("PINNED", 1.0, scheduled=time(10, 0)), _job("NEXT", 2.0)]

    route = sequence_route(_tech(), jobs, LineEstimator())

    first, second = route.stops
    assert first.job_id == "PINNED"
    assert first.arrival_min == 600.0
    assert first.wait_min == pytest.approx(119.0)
    assert second.arrival_min == pytest.approx(631.0)
    assert route.idle_min == pytest.approx(119.0)
    _assert_timing_invariants(route)


def test_overflow_past_working_hours_is_flagged_not_dropped():
    jobs = [_job("A", 0.0, duration=45), _job("B", 0.0, duration=45)]

    route = sequence_route(_tech(start=time(8, 0), end=time(9, 0)), jobs, LineEstimator())

    assert route.job_ids == ["A", "B"]
    assert WORKING_HOURS_EXCEEDED in route.flags
    assert route.overtime_min == pytest.approx(30.0)


def test_route_within_hours_has_no_flags():
    route = sequence_route(_tech(), [_job("A", 1.0)], LineEstimator())

    assert route.flags == []
    assert route.overtime_min == 0.0


def test_missing_coordinates_use_fallback_travel_and_are_flagged():
    jobs = [_job("A", 1.0), _job("MISSING", None), _job("B", 2.0)]

    route = sequence_route(_tech(), jobs, LineEstimator())

    assert route.job_ids == ["A", "B", "MISSING"]
    missing = route.stops[2]
    assert missing.flags == [MISSING_COORDINATES]
    assert missing.distance_from_prev == 0.0
    assert missing.travel_min_from_prev == settings.fallback_travel_minutes
    assert route.stops[0].flags == []
    assert route.stops[1].distance_from_prev == pytest.approx(1.0)
    _assert_timing_invariants(route)


def test_sequencing_is_deterministic():
    jobs = [_job(f"J{i}", float(lat)) for i, lat in enumerate([4, 2, 7, 2, 5, 1, 6])]

    first = sequence_route(_tech(), jobs, LineEstimator())
    second = sequence_route(_tech(), jobs, LineEstimator())

    assert first == second
    assert sorted(first.job_ids) == sorted(job.job_id for job in jobs)
    _assert_timing_invariants(first)


def test_two_opt_uncrosses_a_tour():
    jobs = [_job("A", 1.0), _job("B", 2.0), _job("C", 3.0), _job("D", 4.0)]
    points = [Location(latitude=0.0, longitude=0.0), *(job.location for job in jobs)]
    matrix = LineEstimator().matrix(points)

    improved = two_opt([0, 2, 1, 3], jobs, matrix)

    assert improved == [0, 1, 2, 3]
    assert _path_distance(improved, jobs, matrix) == pytest.approx(4.0)


def test_two_opt_never_lengthens_the_route():
    jobs = [_job(f"J{i}", float(lat)) for i, lat in enumerate([3, -2, 1, 6, -4, 2])]

    greedy = sequence_route(_tech(), jobs, LineEstimator(), use_two_opt=False)
    improved = sequence_route(_tech(), jobs, LineEstimator(), use_two_opt=True)

    assert improved.total_distance <= greedy.total_distance + 1e-9
    assert sorted(improved.job_ids) == sorted(greedy.job_ids)
    _assert_timing_invariants(improved)


def test_ungeocoded_first_job_does_not_become_the_anchor():
    jobs = [_job("NOGEO", None), _job("A", 1.0), _job("B", 2.0)]

    route = sequence_route(_tech(depot=None), jobs, LineEstimator())

    assert route.job_ids == ["A", "B", "NOGEO"]
    first, second, last = route.stops
    assert first.travel_min_from_prev == 0.0
    assert first.arrival_min == 480.0
    assert first.flags == []
    assert second.distance_from_prev == pytest.approx(1.0)
    assert second.flags == []
    assert last.flags == [MISSING_COORDINATES]
    assert last.travel_min_from_prev == settings.fallback_travel_minutes


def test_two_opt_with_zero_passes_keeps_the_order():
    jobs = [_job("A", 1.0), _job("B", 2.0), _job("C", 3.0), _job("D", 4.0)]
    points = [Location(latitude=0.0, longitude=0.0), *(job.location for job in jobs)]
    matrix = LineEstimator().matrix(points)

    assert two_opt([0, 2, 1, 3], jobs, matrix, max_passes=0) == [0, 2, 1, 3]
