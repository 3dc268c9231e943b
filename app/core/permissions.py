"""Registry of the ``resource:action`` permission strings users can be granted.

The access policy compares permission strings as opaque tokens. The registry
only exists so that grants are validated when they are written: a typo such as
``"lead:view"`` fails with ``InvalidPermission`` instead of silently granting
nothing.
"""
from __future__ import annotations

from typing import Iterable

from app.core.config import EXTRA_PERMISSION_RESOURCES
from app.core.errors import InvalidPermission

ACTIONS = ("view", "create", "update", "delete")

ROLES = ("user", "sales", "accounts", "admin", "superuser")
SUPERUSER_ROLE = "superuser"

# Resources that only support a subset of the actions.
_RESTRICTED_ACTIONS = {
    "dashboard": ("view",),
    "reports": ("view",),
    "company-settings": ("view", "update"),
}

BASE_RESOURCES = (
    "customers",
    "suppliers",
    "leads",
    "quotations",
    "orders",
    "invoices",
    "payments",
    "inventory",
    "tasks",
    "purchase-orders",
    "sales-targets",
    "dashboard",
    "reports",
    "company-settings",
    "users",
)


def format_permission(resource: str, action: str) -> str:
    return f"{resource}:{action}"


def parse_permission(value: str) -> tuple[str, str]:
    resource, sep, action = (value or "").strip().lower().partition(":")
    if not sep or not resource or not action:
        raise InvalidPermission([value])
    return resource, action


def _build_registry(resources: Iterable[str]) -> frozenset[str]:
    known = set()
    for resource in resources:
        for action in _RESTRICTED_ACTIONS.get(resource, ACTIONS):
            known.add(format_permission(resource, action))
    return frozenset(known)


KNOWN_PERMISSIONS = _build_registry((*BASE_RESOURCES, *EXTRA_PERMISSION_RESOURCES))


def is_known_permission(value: str) -> bool:
    return (value or "").strip().lower() in KNOWN_PERMISSIONS


def validate_permissions(values: Iterable[str]) -> list[str]:
    """Normalise a grant list and reject anything not in the registry."""
    normalized = []
    unknown = []
    for value in values:
        candidate = (value or "").strip().lower()
        if candidate in KNOWN_PERMISSIONS:
            normalized.append(candidate)
        else:
            unknown.append(value)
    if unknown:
        raise InvalidPermission(unknown)
    return sorted(set(normalized))


def _grant(resources: Iterable[str], actions: Iterable[str]) -> set[str]:
    return {format_permission(resource, action) for resource in resources for action in actions}


DEFAULT_ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "admin": KNOWN_PERMISSIONS,
    "sales": frozenset(
        _grant(("customers", "leads", "quotations", "orders"), ("view", "create", "update"))
        | {"dashboard:view"}
    ),
    "accounts": frozenset(
        _grant(("invoices", "payments"), ("view", "create", "update"))
        | {"orders:view", "customers:view", "dashboard:view"}
    ),
    "user": frozenset(),
    SUPERUSER_ROLE: frozenset(),
}


def default_permissions_for_role(role: str) -> list[str]:
    return sorted(DEFAULT_ROLE_PERMISSIONS.get((role or "").strip().lower(), frozenset()))
