from sqlalchemy import JSON, Column, DateTime, Integer, String

from app.core.database import Base
from app.models.mixins import CompanyOwnedMixin


class PurchaseOrder(CompanyOwnedMixin, Base):
    __tablename__ = "purchase_orders"

    po_number = Column(String(40), nullable=False, index=True)
    supplier_id = Column(Integer, nullable=True, index=True)
    supplier_name = Column(String(120), nullable=False)
    items = Column(JSON, nullable=False, default=list)
    total_cents = Column(Integer, nullable=False, default=0)
    status = Column(String(30), nullable=False, default="draft")
    expected_at = Column(DateTime, nullable=True)
