from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import or_

from app.core.config import LEGACY_NULL_COMPANY_VISIBLE
from app.core.errors import Forbidden, NotFound
from app.core.metrics import access_metrics
from app.core.permissions import format_permission
from app.services.tenant_context import TenantContext

logger = logging.getLogger(__name__)

COMPANY_FIELD = "company_id"


class AccessPolicy:
    """Single authority for tenant scoping and permission checks.

    Holds no per-request state. ``include_legacy`` controls whether records
    without a company stay visible to every tenant while the backfill is
    pending.
    """

    def __init__(self, include_legacy: bool = True) -> None:
        self.include_legacy = include_legacy

    @staticmethod
    def log_access_denied(
        *,
        reason: str,
        context: TenantContext,
        resource: str | None = None,
        action: str | None = None,
        record_company_id: int | None = None,
    ) -> None:
        logger.warning(
            "Access denied (%s): user_id=%s role=%s company_id=%s resource=%s action=%s record_company_id=%s",
            reason,
            context.user_id,
            context.role,
            context.company_id,
            resource,
            action,
            record_company_id,
            extra={"reason": reason, "resource": resource, "action": action},
        )

    def _deny(self, detail: str, *, reason: str, context: TenantContext, permission: str, **log_fields) -> Forbidden:
        self.log_access_denied(reason=reason, context=context, **log_fields)
        access_metrics.record_deny(permission, reason)
        return Forbidden(detail, reason=reason)

    def authorize(self, context: TenantContext, resource: str, action: str) -> None:
        permission = format_permission(resource, action)
        if context.is_superuser or context.has_permission(permission):
            access_metrics.record_allow(permission)
            return None

        raise self._deny(
            f"Missing permission {permission}",
            reason="permission_missing",
            context=context,
            permission=permission,
            resource=resource,
            action=action,
        )

    def ensure_superuser(self, context: TenantContext) -> None:
        if context.is_superuser:
            return None
        raise self._deny(
            "Superuser access required",
            reason="superuser_required",
            context=context,
            permission="platform:admin",
        )

    def _use_legacy(self, include_legacy: bool | None) -> bool:
        return self.include_legacy if include_legacy is None else include_legacy

    def tenant_criterion(self, context: TenantContext, model, include_legacy: bool | None = None):
        if context.is_superuser:
            return None

        column = getattr(model, COMPANY_FIELD)
        if self._use_legacy(include_legacy):
            return or_(column == context.company_id, column.is_(None))
        return column == context.company_id

    def scope_query(self, context: TenantContext, query, model, include_legacy: bool | None = None):
        criterion = self.tenant_criterion(context, model, include_legacy=include_legacy)
        if criterion is None:
            return query
        return query.filter(criterion)

    def is_visible(self, context: TenantContext, record: Any, include_legacy: bool | None = None) -> bool:
        if context.is_superuser:
            return True

        record_company_id = getattr(record, COMPANY_FIELD, None)
        if record_company_id is None:
            return self._use_legacy(include_legacy)
        return int(record_company_id) == context.company_id

    def stamp_ownership(self, context: TenantContext, values: Mapping[str, Any]) -> dict[str, Any]:
        stamped = dict(values)
        if context.is_superuser:
            return stamped

        supplied = stamped.get(COMPANY_FIELD)
        if supplied is not None and supplied != context.company_id:
            logger.info(
                "Overriding client supplied company_id=%s with company_id=%s user_id=%s",
                supplied,
                context.company_id,
                context.user_id,
            )
        stamped[COMPANY_FIELD] = context.company_id
        return stamped

    def strip_ownership(self, context: TenantContext, values: Mapping[str, Any]) -> dict[str, Any]:
        cleaned = dict(values)
        if not context.is_superuser:
            cleaned.pop(COMPANY_FIELD, None)
        return cleaned

    def assert_ownership(
        self,
        context: TenantContext,
        record: Any,
        resource: str | None = None,
        include_legacy: bool | None = None,
    ) -> Any:
        if record is None:
            self.log_access_denied(reason="record_missing", context=context, resource=resource)
            raise NotFound("Record not found", reason="record_missing")

        if self.is_visible(context, record, include_legacy=include_legacy):
            return record

        record_company_id = getattr(record, COMPANY_FIELD, None)
        raise self._deny(
            "Record belongs to another company",
            reason="tenant_mismatch",
            context=context,
            permission=f"{resource or 'record'}:ownership",
            resource=resource,
            record_company_id=record_company_id,
        )


access_policy = AccessPolicy(include_legacy=LEGACY_NULL_COMPANY_VISIBLE)
