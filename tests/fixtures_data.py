"""Reusable data sets for the backend test scenarios."""

COMPANY_ACTIVE = {"id": 5, "name": "Acme Industries", "email": "ops@acme.test", "status": "active", "max_users": 3}
COMPANY_OTHER = {"id": 6, "name": "Globex", "email": "ops@globex.test", "status": "active", "max_users": 3}
COMPANY_PENDING = {"id": 7, "name": "Initech", "email": "ops@initech.test", "status": "pending", "max_users": 2}

# leads 1 and 2 belong to companies 5 and 6, lead 3 predates multi-tenancy
SCENARIO_LEADS = [
    {"id": 1, "company_id": 5, "name": "Lead for Acme"},
    {"id": 2, "company_id": 6, "name": "Lead for Globex"},
    {"id": 3, "company_id": None, "name": "Legacy lead"},
]

LEADS_VIEWER = {
    "user_id": 11,
    "role": "user",
    "company_id": 5,
    "permissions": frozenset({"leads:view"}),
    "username": "viewer",
}

SALES_USER_PERMISSIONS = [
    "leads:view",
    "leads:create",
    "leads:update",
    "leads:delete",
    "users:view",
    "users:create",
    "users:update",
    "users:delete",
]
