from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.deps import get_tenant_context
from app.models.admin_audit_log import AdminAuditLog
from app.models.company import Company
from app.models.lead import Lead
from app.models.user import User
from app.routers.admin_backfill import router as admin_backfill_router
from app.routers.admin_companies import router as admin_companies_router
from app.services import backfill as backfill_module
from app.services.tenant_context import TenantContext
from tests.fixtures_data import COMPANY_ACTIVE, COMPANY_OTHER, COMPANY_PENDING, SCENARIO_LEADS


def _build_client(context: TenantContext):
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
    db.add(Company(**COMPANY_PENDING))
    db.add_all(
        [
            User(id=1, username="root", name="Root", password_hash="x", role="superuser", is_active=True),
            User(id=21, username="acme-admin", name="A", password_hash="x", role="admin", company_id=5, is_active=True),
            User(id=41, username="initech-1", name="I1", password_hash="x", role="admin", company_id=7, is_active=False),
            User(id=42, username="initech-2", name="I2", password_hash="x", role="user", company_id=7, is_active=False),
            User(id=43, username="initech-3", name="I3", password_hash="x", role="user", company_id=7, is_active=False),
        ]
    )
    for lead in SCENARIO_LEADS:
        db.add(Lead(**lead))
    db.commit()

    app = FastAPI()
    app.include_router(admin_companies_router)
    app.include_router(admin_backfill_router)
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_tenant_context] = lambda: context

    return TestClient(app), db


def _superuser() -> TenantContext:
    return TenantContext(user_id=1, role="superuser", company_id=None)


def _tenant_admin() -> TenantContext:
    return TenantContext(user_id=21, role="admin", company_id=5, permissions=frozenset({"users:view"}))


def test_company_routes_require_superuser():
    client, _ = _build_client(_tenant_admin())

    assert client.get("/api/admin/companies").status_code == 403
    assert client.post("/api/admin/companies/7/approve").status_code == 403
    assert client.post("/api/admin/backfill", json={"company_id": 5}).status_code == 403


def test_list_companies_with_active_user_counts():
    client, _ = _build_client(_superuser())

    response = client.get("/api/admin/companies")

    assert response.status_code == 200
    assert [(row["id"], row["status"], row["active_users"]) for row in response.json()] == [
        (5, "active", 1),
        (6, "active", 0),
        (7, "pending", 0),
    ]


def test_pending_approvals_lists_companies_and_inactive_users():
    client, _ = _build_client(_superuser())

    body = client.get("/api/admin/pending-approvals").json()

    assert [company["id"] for company in body["companies"]] == [7]
    assert [user["id"] for user in body["users"]] == [41, 42, 43]


def test_approve_activates_users_up_to_max_users():
    client, db = _build_client(_superuser())

    response = client.post("/api/admin/companies/7/approve")

    assert response.status_code == 200
    assert response.json()["status"] == "active"
    assert response.json()["active_users"] == 2
    db.expire_all()
    assert {user.id for user in db.query(User).filter(User.company_id == 7, User.is_active.is_(True))} == {41, 42}
    assert db.query(AdminAuditLog).filter(AdminAuditLog.action == "approve_company").count() == 1


def test_reapproving_suspended_company_keeps_deactivated_users_inactive():
    client, db = _build_client(_superuser())
    client.post("/api/admin/companies/7/approve")
    db.query(User).filter(User.id == 42).update({User.is_active: False})
    db.commit()

    client.post("/api/admin/companies/7/suspend")
    response = client.post("/api/admin/companies/7/approve")

    assert response.status_code == 200
    assert response.json()["status"] == "active"
    assert response.json()["active_users"] == 1
    db.expire_all()
    assert {user.id for user in db.query(User).filter(User.company_id == 7, User.is_active.is_(True))} == {41}


def test_suspend_company():
    client, _ = _build_client(_superuser())

    response = client.post("/api/admin/companies/5/suspend")

    assert response.status_code == 200
    assert response.json()["status"] == "suspended"


def test_unknown_company_is_not_found():
    client, _ = _build_client(_superuser())

    assert client.post("/api/admin/companies/99/approve").status_code == 404


def test_max_users_cannot_drop_below_active_users():
    client, _ = _build_client(_superuser())
    client.post("/api/admin/companies/7/approve")

    too_low = client.put("/api/admin/companies/7", json={"max_users": 1})
    ok = client.put("/api/admin/companies/7", json={"max_users": 5, "name": "Initech Corp"})

    assert too_low.status_code == 400
    assert ok.status_code == 200
    assert ok.json()["max_users"] == 5
    assert ok.json()["name"] == "Initech Corp"


def test_backfill_route_returns_report():
    client, db = _build_client(_superuser())

    dry = client.post("/api/admin/backfill", json={"company_id": 5, "collections": ["leads"], "dry_run": True})
    real = client.post("/api/admin/backfill", json={"company_id": 5, "collections": ["leads", "tickets"]})
    again = client.post("/api/admin/backfill", json={"company_id": 5, "collections": ["leads"]})

    assert dry.json()["modified"] == {"leads": 1}
    assert real.status_code == 200
    assert real.json()["modified"] == {"leads": 1}
    assert real.json()["skipped"] == {"tickets": "unknown collection"}
    assert again.json()["total_modified"] == 0


def test_backfill_route_reports_partial_failure(monkeypatch):
    client, _ = _build_client(_superuser())

    def _broken(session, model, target_company_id, dry_run):
        raise OperationalError("UPDATE", {}, Exception("disk I/O error"))

    monkeypatch.setattr(backfill_module, "_backfill_collection", _broken)

    response = client.post("/api/admin/backfill", json={"company_id": 5, "collections": ["leads"]})

    assert response.status_code == 500
    assert response.json()["report"]["failures"] == {"leads": "OperationalError"}


def test_backfill_route_unknown_company_is_not_found():
    client, _ = _build_client(_superuser())

    response = client.post("/api/admin/backfill", json={"company_id": 99})

    assert response.status_code == 404
