import json

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.core.errors import MigrationPartialFailure, NotFound
from app.models import BUSINESS_MODELS
from app.models.admin_audit_log import AdminAuditLog
from app.models.company import Company
from app.models.lead import Lead
from app.models.task import Task
from app.services import backfill as backfill_module
from app.services.backfill import backfill_company_ids
from tests.fixtures_data import COMPANY_ACTIVE, COMPANY_OTHER, SCENARIO_LEADS


def _build_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    db.add(Company(**COMPANY_ACTIVE))
    db.add(Company(**COMPANY_OTHER))
    for lead in SCENARIO_LEADS:
        db.add(Lead(**lead))
    db.commit()
    return db, engine


def _lead_companies(db) -> dict:
    db.expire_all()
    return {lead.id: lead.company_id for lead in db.query(Lead).all()}


def test_backfill_assigns_only_the_legacy_lead_and_is_idempotent():
    db, _ = _build_session()

    first = backfill_company_ids(db, 5, ["leads"])
    second = backfill_company_ids(db, 5, ["leads"])

    assert first.modified == {"leads": 1}
    assert second.modified == {"leads": 0}
    assert second.total_modified == 0
    assert _lead_companies(db) == {1: 5, 2: 6, 3: 5}


def test_backfill_reassigns_dangling_company_ids():
    db, _ = _build_session()
    db.add(Lead(id=4, company_id=404, name="Lead of a deleted company"))
    db.commit()

    report = backfill_company_ids(db, 5, ["leads"])

    assert report.modified == {"leads": 2}
    assert _lead_companies(db)[4] == 5
    assert _lead_companies(db)[2] == 6


def test_backfill_defaults_to_every_business_collection():
    db, _ = _build_session()
    db.add(Task(title="Call back", assigned_to="ana", company_id=None))
    db.commit()

    report = backfill_company_ids(db, 5)

    assert set(report.modified) == set(BUSINESS_MODELS)
    assert report.modified["leads"] == 1
    assert report.modified["tasks"] == 1
    assert report.total_modified == 2


def test_dry_run_counts_without_writing():
    db, _ = _build_session()

    report = backfill_company_ids(db, 5, ["leads"], dry_run=True)

    assert report.dry_run is True
    assert report.modified == {"leads": 1}
    assert _lead_companies(db)[3] is None
    assert db.query(AdminAuditLog).count() == 0


def test_unknown_and_missing_collections_are_skipped_not_fatal(caplog):
    db, engine = _build_session()
    Base.metadata.tables["tasks"].drop(bind=engine)

    with caplog.at_level("WARNING", logger="app.services.backfill"):
        report = backfill_company_ids(db, 5, ["tickets", "tasks", "leads"])

    assert report.skipped == {"tickets": "unknown collection", "tasks": "table missing"}
    assert report.modified == {"leads": 1}
    assert any("tickets" in record.getMessage() for record in caplog.records)


def test_failing_collection_does_not_abort_the_rest(monkeypatch):
    db, _ = _build_session()
    db.add(Task(title="Call back", assigned_to="ana", company_id=None))
    db.commit()
    original = backfill_module._backfill_collection

    def _flaky(session, model, target_company_id, dry_run):
        if model is Lead:
            raise OperationalError("UPDATE leads", {}, Exception("database is locked"))
        return original(session, model, target_company_id, dry_run)

    monkeypatch.setattr(backfill_module, "_backfill_collection", _flaky)

    with pytest.raises(MigrationPartialFailure) as exc:
        backfill_company_ids(db, 5, ["leads", "tasks"])

    report = exc.value.report
    assert report.failures == {"leads": "OperationalError"}
    assert report.modified == {"tasks": 1}
    assert "leads" in str(exc.value)
    assert _lead_companies(db)[3] is None


def test_missing_target_company_is_not_found():
    db, _ = _build_session()

    with pytest.raises(NotFound) as exc:
        backfill_company_ids(db, 99, ["leads"])

    assert exc.value.reason == "company_missing"


def test_backfill_writes_audit_entry_with_report():
    db, _ = _build_session()

    backfill_company_ids(db, 5, ["leads"], actor_id=1)

    entry = db.query(AdminAuditLog).one()
    assert entry.action == "backfill_company_ids"
    assert entry.user_id == 1
    assert entry.company_id == 5
    assert json.loads(entry.meta_json)["modified"] == {"leads": 1}
