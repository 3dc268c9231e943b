from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import MigrationPartialFailure
from app.deps import require_superuser
from app.services.backfill import backfill_company_ids
from app.services.tenant_context import TenantContext

router = APIRouter(prefix="/api/admin", tags=["admin-backfill"])


class BackfillRequest(BaseModel):
    company_id: int = Field(..., ge=1)
    collections: Optional[List[str]] = None
    dry_run: bool = False


@router.post("/backfill")
def run_backfill(
    payload: BackfillRequest,
    context: TenantContext = Depends(require_superuser),
    db: Session = Depends(get_db),
):
    try:
        report = backfill_company_ids(
            db,
            payload.company_id,
            payload.collections,
            dry_run=payload.dry_run,
            actor_id=context.user_id,
        )
    except MigrationPartialFailure as exc:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc), "report": exc.report.as_dict()},
        )
    return report.as_dict()
