from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.core.errors import Forbidden, NotFound
from app.core.metrics import access_metrics
from app.models.lead import Lead
from app.services.authorization_service import AccessPolicy
from app.services.tenant_context import TenantContext
from tests.fixtures_data import LEADS_VIEWER, SCENARIO_LEADS


def _build_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    for lead in SCENARIO_LEADS:
        db.add(Lead(**lead))
    db.commit()
    return db


def _viewer() -> TenantContext:
    return TenantContext(**LEADS_VIEWER)


def _superuser() -> TenantContext:
    return TenantContext(user_id=1, role="superuser", company_id=None)


def test_scope_query_shows_own_and_legacy_leads_only():
    db = _build_session()
    policy = AccessPolicy(include_legacy=True)

    rows = policy.scope_query(_viewer(), db.query(Lead), Lead).all()

    assert {row.id for row in rows} == {1, 3}


def test_scope_query_strict_mode_hides_legacy_leads():
    db = _build_session()
    policy = AccessPolicy(include_legacy=False)

    rows = policy.scope_query(_viewer(), db.query(Lead), Lead).all()

    assert {row.id for row in rows} == {1}


def test_scope_query_per_call_override_beats_policy_default():
    db = _build_session()
    policy = AccessPolicy(include_legacy=True)

    rows = policy.scope_query(_viewer(), db.query(Lead), Lead, include_legacy=False).all()

    assert {row.id for row in rows} == {1}


def test_superuser_scope_query_returns_base_query_unchanged():
    db = _build_session()
    policy = AccessPolicy()
    base = db.query(Lead).filter(Lead.name.like("Lead%"))

    scoped = policy.scope_query(_superuser(), base, Lead)

    assert scoped is base
    assert {row.id for row in scoped.all()} == {1, 2}


def test_foreign_record_is_never_visible_even_with_legacy_fallback():
    policy = AccessPolicy(include_legacy=True)
    foreign = SimpleNamespace(id=2, company_id=6)

    with pytest.raises(Forbidden) as exc:
        policy.assert_ownership(_viewer(), foreign, resource="leads")

    assert exc.value.status_code == 403
    assert exc.value.reason == "tenant_mismatch"
    assert exc.value.detail == "Record belongs to another company"


def test_assert_ownership_returns_own_and_legacy_records():
    policy = AccessPolicy(include_legacy=True)
    own = SimpleNamespace(id=1, company_id=5)
    legacy = SimpleNamespace(id=3, company_id=None)

    assert policy.assert_ownership(_viewer(), own) is own
    assert policy.assert_ownership(_viewer(), legacy) is legacy


def test_assert_ownership_rejects_legacy_record_in_strict_mode():
    policy = AccessPolicy(include_legacy=False)

    with pytest.raises(Forbidden):
        policy.assert_ownership(_viewer(), SimpleNamespace(id=3, company_id=None))


def test_assert_ownership_missing_record_is_not_found():
    policy = AccessPolicy()

    with pytest.raises(NotFound) as exc:
        policy.assert_ownership(_viewer(), None)

    assert exc.value.status_code == 404
    assert exc.value.reason == "record_missing"


def test_superuser_owns_every_record():
    policy = AccessPolicy(include_legacy=False)
    foreign = SimpleNamespace(id=2, company_id=6)

    assert policy.assert_ownership(_superuser(), foreign) is foreign


@pytest.mark.parametrize(
    ("resource", "action", "allowed"),
    [
        ("leads", "view", True),
        ("leads", "delete", False),
        ("leads", "create", False),
        ("orders", "view", False),
    ],
)
def test_authorize_allows_only_granted_permission_strings(resource, action, allowed):
    policy = AccessPolicy()

    if allowed:
        assert policy.authorize(_viewer(), resource, action) is None
    else:
        with pytest.raises(Forbidden) as exc:
            policy.authorize(_viewer(), resource, action)
        assert exc.value.detail == f"Missing permission {resource}:{action}"
        assert exc.value.reason == "permission_missing"


def test_authorize_treats_unregistered_resources_as_opaque_strings():
    policy = AccessPolicy()
    context = TenantContext(user_id=3, role="user", company_id=5, permissions=frozenset({"fleet:view"}))

    assert policy.authorize(context, "fleet", "view") is None


def test_superuser_is_authorized_for_everything():
    policy = AccessPolicy()

    for resource, action in [("leads", "delete"), ("company-settings", "update"), ("anything", "view")]:
        assert policy.authorize(_superuser(), resource, action) is None


def test_leads_viewer_cannot_delete_and_denial_is_counted():
    access_metrics.reset()
    policy = AccessPolicy()

    with pytest.raises(Forbidden):
        policy.authorize(_viewer(), "leads", "delete")
    policy.authorize(_viewer(), "leads", "view")

    snapshot = access_metrics.snapshot()
    assert snapshot["denied"] == {"leads:delete": 1}
    assert snapshot["denied_by_reason"] == {"permission_missing": 1}
    assert snapshot["allowed"] == {"leads:view": 1}


def test_denial_is_logged_with_reason(caplog):
    policy = AccessPolicy()

    with caplog.at_level("WARNING", logger="app.services.authorization_service"):
        with pytest.raises(Forbidden):
            policy.authorize(_viewer(), "leads", "delete")

    record = caplog.records[-1]
    assert record.reason == "permission_missing"
    assert record.resource == "leads"
    assert "Access denied" in record.getMessage()


def test_ensure_superuser_rejects_tenant_admin():
    policy = AccessPolicy()
    admin = TenantContext(user_id=4, role="admin", company_id=5, permissions=frozenset({"users:view"}))

    with pytest.raises(Forbidden) as exc:
        policy.ensure_superuser(admin)

    assert exc.value.reason == "superuser_required"
    assert policy.ensure_superuser(_superuser()) is None


@pytest.mark.parametrize("supplied", [6, 5, None])
def test_stamp_ownership_forces_caller_company(supplied):
    policy = AccessPolicy()
    values = {"name": "New lead", "company_id": supplied}

    stamped = policy.stamp_ownership(_viewer(), values)

    assert stamped["company_id"] == 5
    assert stamped["name"] == "New lead"
    assert values["company_id"] == supplied


def test_stamp_ownership_sets_company_when_field_absent():
    stamped = AccessPolicy().stamp_ownership(_viewer(), {"name": "New lead"})

    assert stamped == {"name": "New lead", "company_id": 5}


def test_superuser_stamp_keeps_chosen_company():
    policy = AccessPolicy()

    assert policy.stamp_ownership(_superuser(), {"company_id": 6})["company_id"] == 6
    assert "company_id" not in policy.stamp_ownership(_superuser(), {"name": "x"})


def test_strip_ownership_blocks_company_moves_for_tenants():
    policy = AccessPolicy()

    assert policy.strip_ownership(_viewer(), {"name": "x", "company_id": 6}) == {"name": "x"}
    assert policy.strip_ownership(_superuser(), {"company_id": 6}) == {"company_id": 6}
