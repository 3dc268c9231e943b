from __future__ import annotations

import logging

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import NotFound, Unauthenticated
from app.core.request_context import set_request_context
from app.services.auth import decode_access_token, extract_user_id
from app.services.authorization_service import access_policy
from app.services.tenant_context import TenantContext, resolve_tenant_context

# Swagger "Authorize" (OAuth2 password flow) posts to this endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")

logger = logging.getLogger(__name__)


def get_tenant_context(
    request: Request,
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> TenantContext:
    """Decode the bearer token and resolve the caller's tenant context."""
    try:
        payload = decode_access_token(token)
    except ValueError as exc:
        logger.info("Rejected bearer token on %s", request.url.path, extra={"reason": "token_invalid"})
        raise Unauthenticated("Invalid or expired token", reason="token_invalid") from exc

    user_id = extract_user_id(payload)
    if user_id is None:
        raise Unauthenticated("Token has no subject", reason="token_invalid")

    try:
        context = resolve_tenant_context(db, user_id)
    except NotFound as exc:
        raise Unauthenticated("User not found or inactive", reason=exc.reason) from exc

    request.state.tenant_context = context
    set_request_context(
        user_id=str(context.user_id),
        company_id=str(context.company_id) if context.company_id is not None else None,
    )
    return context


def require_permission(resource: str, action: str):
    """Dependency factory: resolve the context and authorize ``resource:action``."""

    def _dependency(context: TenantContext = Depends(get_tenant_context)) -> TenantContext:
        access_policy.authorize(context, resource, action)
        return context

    return _dependency


def require_superuser(context: TenantContext = Depends(get_tenant_context)) -> TenantContext:
    access_policy.ensure_superuser(context)
    return context
