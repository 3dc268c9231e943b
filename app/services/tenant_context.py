from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from app.core.errors import Forbidden, NotFound
from app.core.permissions import SUPERUSER_ROLE
from app.models.company import Company
from app.models.user import User

logger = logging.getLogger(__name__)


def normalize_role(role: str | None) -> str:
    return (role or "").strip().lower()


@dataclass(frozen=True)
class TenantContext:
    """Who is acting, for which tenant, with which grants."""

    user_id: int
    role: str
    company_id: int | None
    permissions: frozenset[str] = field(default_factory=frozenset)
    username: str | None = None

    @property
    def is_superuser(self) -> bool:
        return self.role == SUPERUSER_ROLE

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions


def build_context(user: User) -> TenantContext:
    return TenantContext(
        user_id=int(user.id),
        role=normalize_role(user.role),
        company_id=int(user.company_id) if user.company_id is not None else None,
        permissions=frozenset(str(value).strip().lower() for value in (user.permissions or [])),
        username=user.username,
    )


def resolve_tenant_context(db: Session, user_id: int) -> TenantContext:
    """Look up the acting user and derive role, company and permissions.

    Raises ``NotFound`` when the id no longer maps to an active user (the API
    layer treats that as unauthenticated) and ``Forbidden`` when a tenant user
    has no usable company.
    """
    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None or not user.is_active:
        logger.warning("Tenant context unavailable: user_id=%s found=%s", user_id, user is not None)
        raise NotFound("User not found or inactive", reason="user_inactive")

    context = build_context(user)
    if context.is_superuser:
        return context

    if context.company_id is None:
        logger.warning("Tenant context rejected: user_id=%s has no company", user_id)
        raise Forbidden("User is not assigned to a company", reason="user_without_company")

    company = db.query(Company).filter(Company.id == context.company_id).first()
    if company is None or company.status != "active":
        logger.warning(
            "Tenant context rejected: user_id=%s company_id=%s status=%s",
            user_id,
            context.company_id,
            getattr(company, "status", None),
        )
        raise Forbidden("Company is not active", reason="company_inactive")

    return context
