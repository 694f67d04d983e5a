"""
Tests for the Storage Writer and the Freshness Guard against an in-memory
SQLite database.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from mining_intel.models import Asset, Company, CompanyStatus, Executive
from mining_intel.services.freshness import find_company, is_fresh
from mining_intel.services.storage import StorageWriter

from tests.fixtures.intelligence_fixtures import make_report


def _children(db, company):
    executives = db.query(Executive).filter(Executive.company_id == company.id).all()
    assets = db.query(Asset).filter(Asset.company_id == company.id).all()
    return executives, assets


class TestStorageWriterCommit:
    def test_creates_company_and_children(self, db_session):
        report = make_report()
        company = StorageWriter(db_session).commit(
            "Test Mining Corp S.A.", report.leadership, report.assets
        )

        assert company.name == "Test Mining Corp S.A."
        assert company.status == CompanyStatus.COMPLETED
        executives, assets = _children(db_session, company)
        assert [e.name for e in executives] == ["John Doe"]
        assert executives[0].technical_summary == ["Point 1", "Point 2", "Point 3"]
        assert len(assets) == 1
        asset = assets[0]
        assert asset.name == "Alpha Mine"
        assert asset.commodities == ["Gold"]
        assert float(asset.latitude) == pytest.approx(-19.916681)
        assert float(asset.longitude) == pytest.approx(-43.934493)

    def test_reprocessing_replaces_instead_of_duplicating(self, db_session):
        writer = StorageWriter(db_session)
        report = make_report()
        first = writer.commit("Test Mining Corp S.A.", report.leadership, report.assets)
        second = writer.commit("Test Mining Corp S.A.", report.leadership, report.assets)

        assert first.id == second.id
        assert db_session.query(Company).count() == 1
        executives, assets = _children(db_session, second)
        assert len(executives) == len(report.leadership)
        assert len(assets) == len(report.assets)

    def test_resolution_is_case_insensitive_and_adopts_official_spelling(self, db_session):
        writer = StorageWriter(db_session)
        report = make_report()
        original = writer.commit("TEST MINING CORP S.A.", report.leadership, report.assets)
        updated = writer.commit("Test Mining Corp S.A.", report.leadership, [])

        assert original.id == updated.id
        assert updated.name == "Test Mining Corp S.A."
        _, assets = _children(db_session, updated)
        assert assets == []

    def test_missing_fields_get_defaults(self, db_session):
        report = make_report(leadership=[{}], assets=[{"name": None}])
        company = StorageWriter(db_session).commit("Sparse Mining", report.leadership, report.assets)

        executives, assets = _children(db_session, company)
        assert executives[0].name == "Unknown"
        assert executives[0].expertise == []
        assert assets[0].name == "Unknown"
        assert assets[0].commodities == []
        assert assets[0].latitude is None

    def test_failure_rolls_back_everything(self, db_session, monkeypatch):
        writer = StorageWriter(db_session)
        report = make_report()
        company = writer.commit("Test Mining Corp S.A.", report.leadership, report.assets)
        company_id = company.id

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        with pytest.raises(OperationalError):
            writer.commit("Test Mining Corp S.A.", [], [])
        monkeypatch.undo()

        company = db_session.get(Company, company_id)
        executives, assets = _children(db_session, company)
        assert len(executives) == 1
        assert len(assets) == 1
        assert company.status == CompanyStatus.COMPLETED

    def test_deleting_company_cascades_to_children(self, db_session):
        report = make_report()
        company = StorageWriter(db_session).commit("Cascade Mining", report.leadership, report.assets)

        db_session.delete(company)
        db_session.commit()

        assert db_session.query(Executive).count() == 0
        assert db_session.query(Asset).count() == 0


class TestStorageWriterReject:
    def test_creates_rejected_company_without_children(self, db_session):
        company = StorageWriter(db_session).mark_rejected("Pizza Palace Ltd")

        assert company.status == CompanyStatus.REJECTED
        executives, assets = _children(db_session, company)
        assert executives == [] and assets == []

    def test_rejection_touches_but_keeps_existing_children(self, db_session):
        writer = StorageWriter(db_session)
        report = make_report()
        company = writer.commit("Old Mining", report.leadership, report.assets)
        company.updated_at = datetime.utcnow() - timedelta(days=3)
        db_session.commit()

        rejected = writer.mark_rejected("old mining")

        assert rejected.id == company.id
        assert rejected.status == CompanyStatus.REJECTED
        assert rejected.updated_at > datetime.utcnow() - timedelta(minutes=1)
        executives, assets = _children(db_session, rejected)
        assert len(executives) == 1 and len(assets) == 1


class TestFreshnessGuard:
    def _company(self, db, name, age):
        company = Company(
            name=name,
            status=CompanyStatus.COMPLETED,
            updated_at=datetime.utcnow() - age,
        )
        db.add(company)
        db.commit()
        return company

    def test_recent_company_is_fresh(self, db_session):
        self._company(db_session, "Existing Mine", timedelta(minutes=5))
        assert is_fresh(db_session, "Existing Mine")

    def test_match_is_case_insensitive(self, db_session):
        self._company(db_session, "Existing Mine", timedelta(hours=1))
        assert is_fresh(db_session, "  existing MINE ")
        assert find_company(db_session, "EXISTING mine") is not None

    def test_old_company_is_stale(self, db_session):
        self._company(db_session, "Existing Mine", timedelta(hours=25))
        assert not is_fresh(db_session, "Existing Mine")

    def test_unknown_company_is_stale(self, db_session):
        assert not is_fresh(db_session, "Never Seen Mining")

    def test_partial_names_do_not_match(self, db_session):
        self._company(db_session, "Existing Mine Holdings", timedelta(minutes=5))
        assert not is_fresh(db_session, "Existing Mine")

    def test_custom_window(self, db_session):
        self._company(db_session, "Existing Mine", timedelta(hours=2))
        assert not is_fresh(db_session, "Existing Mine", window=timedelta(hours=1))
