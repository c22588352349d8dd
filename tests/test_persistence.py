from datetime import date, time
from types import SimpleNamespace

import pytest

from fieldroute.config import settings
from fieldroute.persistence import database


class FakeQuery:
    """Records the chained query calls and returns canned rows."""

    def __init__(self, client, table):
        self._client = client
        self.table = table
        self.calls = []

    @property
    def not_(self):
        self.calls.append(("not_",))
        return self

    def __getattr__(self, name):
        def method(*args):
            self.calls.append((name, *args))
            return self

        return method

    def execute(self):
        self._client.executed.append(self)
        if self._client.error is not None:
            raise self._client.error
        return SimpleNamespace(data=self._client.responder(self))


class FakeSupabase:
    def __init__(self, responder=lambda query: [], error=None):
        self.responder = responder
        self.error = error
        self.executed = []

    def table(self, name):
        return FakeQuery(self, name)


def test_job_from_row_reads_joined_customer():
    row = {
        "id": 42,
        "technician_id": "T1",
        "scheduled_time": "09:30:00",
        "duration": 90,
        "priority": "urgent",
        "customer": [{"name": "Ada", "address": "1 Main St", "lat": "37.77", "lng": -122.42}],
    }

    job = database.job_from_row(row)

    assert job.job_id == "42"
    assert job.technician_id == "T1"
    assert job.scheduled_time == time(9, 30)
    assert job.duration_min == 90
    assert job.priority == 4
    assert job.location.latitude == pytest.approx(37.77)
    assert job.customer_name == "Ada"


def test_job_from_row_defaults_missing_fields():
    job = database.job_from_row({"id": "J1", "scheduled_time": "not a time", "customer": None})

    assert job.location is None
    assert job.scheduled_time is None
    assert job.technician_id is None
    assert job.priority == 0
    assert job.duration_min == settings.default_job_duration_minutes


def test_technician_from_row_uses_working_hours_and_home():
    row = {
        "id": "T1",
        "name": "Tess",
        "working_hours_start": "07:00",
        "working_hours_end": "15:30",
        "max_jobs_per_day": 6,
        "home_lat": 37.8,
        "home_lng": -122.3,
        "is_active": True,
    }

    technician = database.technician_from_row(row)

    assert technician.work_start == time(7, 0)
    assert technician.work_end == time(15, 30)
    assert technician.max_jobs == 6
    assert technician.start_location.longitude == pytest.approx(-122.3)
    assert technician.active


def test_technician_from_row_falls_back_to_settings():
    technician = database.technician_from_row({"id": "T2", "max_jobs_per_day": 0})

    assert technician.name == "T2"
    assert technician.work_start == settings.default_work_start
    assert technician.work_end == settings.default_work_end
    assert technician.max_jobs == 0
    assert technician.start_location is None


def test_get_jobs_for_date_filters_by_day_and_status(monkeypatch):
    client = FakeSupabase(responder=lambda query: [{"id": "J1", "customer": {"lat": 1.0, "lng": 2.0}}])
    monkeypatch.setattr(database, "get_supabase_client", lambda: client)

    jobs = database.get_jobs_for_date(date(2025, 3, 14))

    assert [job.job_id for job in jobs] == ["J1"]
    (query,) = client.executed
    assert query.table == "jobs"
    assert ("eq", "scheduled_date", "2025-03-14") in query.calls
    assert ("in_", "status", ["cancelled", "completed"]) in query.calls


def test_get_jobs_for_date_without_database_returns_empty(monkeypatch):
    monkeypatch.setattr(database, "get_supabase_client", lambda: None)

    assert database.get_jobs_for_date(date(2025, 3, 14)) == []


def test_get_jobs_for_date_wraps_query_errors(monkeypatch):
    monkeypatch.setattr(database, "get_supabase_client", lambda: FakeSupabase(error=RuntimeError("boom")))

    with pytest.raises(ValueError):
        database.get_jobs_for_date(date(2025, 3, 14))


def test_get_active_technicians(monkeypatch):
    client = FakeSupabase(responder=lambda query: [{"id": "T1", "name": "Tess"}, {"id": "T2", "name": "Uma"}])
    monkeypatch.setattr(database, "get_supabase_client", lambda: client)

    technicians = database.get_active_technicians()

    assert [tech.technician_id for tech in technicians] == ["T1", "T2"]
    assert ("eq", "is_active", True) in client.executed[0].calls


def test_save_job_assignments_reports_missing_jobs(monkeypatch):
    def responder(query):
        target = next(call[2] for call in query.calls if call[0] == "eq")
        return [] if target == "GONE" else [{"id": target}]

    client = FakeSupabase(responder=responder)
    monkeypatch.setattr(database, "get_supabase_client", lambda: client)

    updated, failed = database.save_job_assignments(
        date(2025, 3, 14),
        [("J1", "T1", time(9, 0)), ("GONE", "T1", time(10, 15))],
    )

    assert updated == 1
    assert failed == ["GONE"]
    payload = client.executed[0].calls[0][1]
    assert payload["technician_id"] == "T1"
    assert payload["scheduled_date"] == "2025-03-14"
    assert payload["scheduled_time"] == "09:00"


def test_save_job_assignments_counts_errors_as_failures(monkeypatch):
    monkeypatch.setattr(database, "get_supabase_client", lambda: FakeSupabase(error=RuntimeError("offline")))

    updated, failed = database.save_job_assignments(date(2025, 3, 14), [("J1", "T1", time(9, 0))])

    assert updated == 0
    assert failed == ["J1"]


def test_save_job_assignments_without_database(monkeypatch):
    monkeypatch.setattr(database, "get_supabase_client", lambda: None)

    updated, failed = database.save_job_assignments(date(2025, 3, 14), [("J1", "T1", time(9, 0))])

    assert updated == 0
    assert failed == ["J1"]
