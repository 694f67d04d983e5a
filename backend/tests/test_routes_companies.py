"""
Tests for the intake, status and catalog endpoints.
"""
from datetime import datetime
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from mining_intel.core.db import get_db
from mining_intel.main import app
from mining_intel.models import Company, CompanyStatus
from mining_intel.services.intake import BatchTooLargeError, EmptyBatchError, parse_company_names
from mining_intel.services.queue import UNACKED_KEY, CeleryTaskQueue, get_task_queue
from mining_intel.services.storage import StorageWriter

from tests.fixtures.intelligence_fixtures import make_report


class RecordingQueue:
    def __init__(self, pending=0):
        self.enqueued = []
        self.pending = pending

    def enqueue(self, company_name):
        self.enqueued.append(company_name)

    def pending_count(self):
        return self.pending


@pytest.fixture
def queue():
    return RecordingQueue()


@pytest.fixture
def client(db_session, queue):
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_task_queue] = lambda: queue
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class TestParseCompanyNames:
    def test_trims_drops_blanks_and_dedupes(self):
        assert parse_company_names(" BHP , , Vale,bhp,  Rio   Tinto ") == ["BHP", "Vale", "Rio Tinto"]

    def test_only_commas_is_empty(self):
        with pytest.raises(EmptyBatchError):
            parse_company_names(" , ,, ")

    def test_batch_cap(self):
        names = ",".join(f"Company {i}" for i in range(11))
        with pytest.raises(BatchTooLargeError):
            parse_company_names(names)

    def test_duplicates_do_not_count_towards_cap(self):
        names = ",".join(["Vale"] * 15 + [f"Company {i}" for i in range(9)])
        assert len(parse_company_names(names)) == 10


class TestProcessEndpoint:
    def test_queues_one_task_per_unique_name(self, client, queue):
        resp = client.post("/api/companies/process", json={"companies": "BHP, Vale, BHP"})

        assert resp.status_code == 202
        assert resp.json() == {
            "message": "Processing started successfully in the background.",
            "companies_queued": 2,
        }
        assert queue.enqueued == ["BHP", "Vale"]

    def test_empty_batch_is_rejected(self, client, queue):
        resp = client.post("/api/companies/process", json={"companies": " , "})
        assert resp.status_code == 400
        assert resp.json()["message"] == "No valid company names provided."
        assert queue.enqueued == []

    def test_oversized_batch_is_rejected(self, client, queue):
        names = ",".join(f"Company {i}" for i in range(11))
        resp = client.post("/api/companies/process", json={"companies": names})
        assert resp.status_code == 422
        assert "maximum of 10" in resp.json()["message"]
        assert queue.enqueued == []

    def test_missing_field_is_a_validation_error(self, client):
        resp = client.post("/api/companies/process", json={})
        assert resp.status_code == 422


class TestStatusEndpoint:
    def test_reports_pending_jobs(self, client, queue):
        queue.pending = 3
        assert client.get("/api/companies/status").json() == {"is_processing": True, "pending_jobs": 3}

    def test_idle(self, client):
        assert client.get("/api/companies/status").json() == {"is_processing": False, "pending_jobs": 0}

    def test_work_taken_by_workers_still_counts(self, client, fake_redis):
        # Nothing waiting; one task running, one held for a retry countdown
        fake_redis.hashes[UNACKED_KEY] = {"tag-1": "{}", "tag-2": "{}"}
        app.dependency_overrides[get_task_queue] = lambda: CeleryTaskQueue(client=fake_redis)

        assert client.get("/api/companies/status").json() == {"is_processing": True, "pending_jobs": 2}

    def test_waiting_and_in_flight_are_summed(self, fake_redis):
        fake_redis.lists["intelligence"] = ["m1", "m2", "m3"]
        fake_redis.hashes[UNACKED_KEY] = {"tag-1": "{}"}
        assert CeleryTaskQueue(client=fake_redis).pending_count() == 4

    def test_broker_outage_reports_idle(self, broken_redis):
        assert CeleryTaskQueue(client=broken_redis).pending_count() == 0


class TestCatalogEndpoints:
    def _seed(self, db, *names):
        for name in names:
            db.add(Company(name=name, status=CompanyStatus.COMPLETED, updated_at=datetime.utcnow()))
        db.commit()

    def test_list_is_sorted_and_paginated(self, client, db_session):
        self._seed(db_session, *[f"Mine {i:02d}" for i in range(12)])

        first = client.get("/api/companies").json()
        assert first["total"] == 12
        assert first["per_page"] == 10
        assert first["last_page"] == 2
        assert [c["name"] for c in first["data"]][:2] == ["Mine 00", "Mine 01"]

        second = client.get("/api/companies", params={"page": 2}).json()
        assert [c["name"] for c in second["data"]] == ["Mine 10", "Mine 11"]

    def test_search_is_case_insensitive(self, client, db_session):
        self._seed(db_session, "BHP Group", "Rio Tinto", "Vale")

        data = client.get("/api/companies", params={"search": "tin"}).json()["data"]
        assert [c["name"] for c in data] == ["Rio Tinto"]
        assert data[0]["status"] == "completed"

    def test_detail_includes_executives_and_assets(self, client, db_session):
        report = make_report()
        company = StorageWriter(db_session).commit(
            "Test Mining Corp S.A.", report.leadership, report.assets
        )

        body = client.get(f"/api/companies/{company.id}").json()

        assert body["name"] == "Test Mining Corp S.A."
        assert body["status"] == "completed"
        assert body["executives"][0]["name"] == "John Doe"
        assert body["executives"][0]["technical_summary"] == ["Point 1", "Point 2", "Point 3"]
        asset = body["assets"][0]
        assert asset["name"] == "Alpha Mine"
        assert asset["latitude"] == pytest.approx(-19.916681)
        assert asset["longitude"] == pytest.approx(-43.934493)

    def test_unknown_company_is_404(self, client):
        assert client.get(f"/api/companies/{uuid4()}").status_code == 404


class TestCorsOrigins:
    @pytest.fixture
    def cors_settings(self, monkeypatch):
        from mining_intel import main

        def configure(env, origin=None, allow_all=False):
            monkeypatch.setattr(main.settings, "ENV", env)
            monkeypatch.setattr(main.settings, "FRONTEND_ORIGIN", origin)
            monkeypatch.setattr(main.settings, "CORS_ALLOW_ALL_ORIGINS", allow_all)
            return main._cors_origins

        return configure

    def test_prod_uses_configured_origins(self, cors_settings):
        origins = cors_settings("prod", "https://a.example, https://b.example")
        assert origins() == ["https://a.example", "https://b.example"]

    def test_prod_without_origin_refuses_to_start(self, cors_settings):
        with pytest.raises(RuntimeError):
            cors_settings("prod")()

    def test_dev_defaults_to_any_origin(self, cors_settings):
        assert cors_settings("dev")() == ["*"]
        assert cors_settings("dev", "http://localhost:4200")() == ["http://localhost:4200"]
        assert cors_settings("dev", "http://localhost:4200", allow_all=True)() == ["*"]
