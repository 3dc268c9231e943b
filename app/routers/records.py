from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Query, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import require_permission
from app.models import BUSINESS_MODELS
from app.schemas.records import RECORD_PAYLOADS, RecordPayload, serialize_record
from app.services.authorization_service import access_policy
from app.services.tenant_context import TenantContext


def _validate(schema: type[RecordPayload], data: Dict[str, Any]) -> RecordPayload:
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc


def _validate_changes(schema: type[RecordPayload], record, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate only the supplied fields against the stored document.

    Stored values that predate a constraint are left alone unless the payload
    rewrites them.
    """
    unknown = [name for name in payload if name not in schema.model_fields]
    if unknown:
        raise RequestValidationError(
            [
                {"type": "extra_forbidden", "loc": ("body", name), "msg": "Extra inputs are not permitted", "input": payload[name]}
                for name in unknown
            ]
        )

    document = schema.model_construct(**{name: getattr(record, name) for name in schema.model_fields})
    try:
        for name, value in payload.items():
            setattr(document, name, value)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc
    return {name: getattr(document, name) for name in payload}


def build_record_router(resource: str, model, schema: type[RecordPayload]) -> APIRouter:
    """CRUD routes for one business collection, every path guarded by the access policy."""
    router = APIRouter(prefix=f"/api/{resource}", tags=[resource])

    def _load(db: Session, context: TenantContext, record_id: int):
        record = db.query(model).filter(model.id == record_id).first()
        return access_policy.assert_ownership(context, record, resource=resource)

    @router.get("")
    def list_records(
        limit: int = Query(default=100, ge=1, le=500),
        offset: int = Query(default=0, ge=0),
        context: TenantContext = Depends(require_permission(resource, "view")),
        db: Session = Depends(get_db),
    ):
        query = access_policy.scope_query(context, db.query(model), model)
        rows = query.order_by(model.id.asc()).limit(limit).offset(offset).all()
        return [serialize_record(row) for row in rows]

    @router.get("/{record_id}")
    def get_record(
        record_id: int,
        context: TenantContext = Depends(require_permission(resource, "view")),
        db: Session = Depends(get_db),
    ):
        return serialize_record(_load(db, context, record_id))

    @router.post("", status_code=status.HTTP_201_CREATED)
    def create_record(
        payload: Dict[str, Any] = Body(...),
        context: TenantContext = Depends(require_permission(resource, "create")),
        db: Session = Depends(get_db),
    ):
        values = _validate(schema, payload).model_dump()
        record = model(**access_policy.stamp_ownership(context, values))
        db.add(record)
        db.commit()
        db.refresh(record)
        return serialize_record(record)

    @router.put("/{record_id}")
    def update_record(
        record_id: int,
        payload: Dict[str, Any] = Body(...),
        context: TenantContext = Depends(require_permission(resource, "update")),
        db: Session = Depends(get_db),
    ):
        record = _load(db, context, record_id)

        changes = access_policy.strip_ownership(context, _validate_changes(schema, record, payload))

        for field_name, value in changes.items():
            setattr(record, field_name, value)
        db.commit()
        db.refresh(record)
        return serialize_record(record)

    @router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_record(
        record_id: int,
        context: TenantContext = Depends(require_permission(resource, "delete")),
        db: Session = Depends(get_db),
    ):
        record = _load(db, context, record_id)
        db.delete(record)
        db.commit()
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


routers = [
    build_record_router(resource, model, RECORD_PAYLOADS[resource])
    for resource, model in BUSINESS_MODELS.items()
]
