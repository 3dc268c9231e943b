from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.metrics import access_metrics, request_metrics
from app.deps import require_superuser
from app.services.tenant_context import TenantContext

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("/access")
def access_outcomes(_context: TenantContext = Depends(require_superuser)):
    return {"access": access_metrics.snapshot(), "requests": request_metrics.snapshot()}
