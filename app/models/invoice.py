from sqlalchemy import Column, DateTime, Integer, String

from app.core.database import Base
from app.models.mixins import CompanyOwnedMixin


class Invoice(CompanyOwnedMixin, Base):
    __tablename__ = "invoices"

    invoice_number = Column(String(40), nullable=False, index=True)
    order_id = Column(Integer, nullable=True, index=True)
    customer_name = Column(String(120), nullable=False)
    total_cents = Column(Integer, nullable=False, default=0)
    status = Column(String(30), nullable=False, default="unpaid")
    due_date = Column(DateTime, nullable=True)
