from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import require_permission
from app.models.inventory import InventoryItem
from app.models.lead import Lead
from app.models.order import Order
from app.models.task import Task
from app.schemas.records import serialize_record
from app.services.authorization_service import access_policy
from app.services.tenant_context import TenantContext

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])

RECENT_LIMIT = 5


def _scoped(db: Session, context: TenantContext, model):
    return access_policy.scope_query(context, db.query(model), model)


@router.get("/stats")
def dashboard_stats(
    context: TenantContext = Depends(require_permission("dashboard", "view")),
    db: Session = Depends(get_db),
):
    leads = _scoped(db, context, Lead)
    orders = _scoped(db, context, Order)
    tasks = _scoped(db, context, Task)
    low_stock = _scoped(db, context, InventoryItem).filter(InventoryItem.quantity <= InventoryItem.threshold)

    return {
        "total_leads": leads.count(),
        "active_orders": orders.filter(Order.status != "completed").count(),
        "low_stock_count": low_stock.count(),
        "pending_tasks": tasks.filter(Task.status == "pending").count(),
        "urgent_tasks": tasks.filter(Task.priority == "high", Task.status == "pending").count(),
        "recent_leads": [
            serialize_record(row)
            for row in leads.order_by(Lead.created_at.desc(), Lead.id.desc()).limit(RECENT_LIMIT).all()
        ],
        "recent_orders": [
            serialize_record(row)
            for row in orders.order_by(Order.created_at.desc(), Order.id.desc()).limit(RECENT_LIMIT).all()
        ],
    }


@router.get("/low-stock")
def low_stock_items(
    context: TenantContext = Depends(require_permission("dashboard", "view")),
    db: Session = Depends(get_db),
):
    rows = (
        _scoped(db, context, InventoryItem)
        .filter(InventoryItem.quantity <= InventoryItem.threshold)
        .order_by(InventoryItem.quantity.asc(), InventoryItem.id.asc())
        .all()
    )
    return [serialize_record(row) for row in rows]
