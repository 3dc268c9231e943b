from sqlalchemy import Column, DateTime, Integer, String

from app.core.database import Base
from app.models.mixins import CompanyOwnedMixin


class Payment(CompanyOwnedMixin, Base):
    __tablename__ = "payments"

    invoice_id = Column(Integer, nullable=True, index=True)
    amount_cents = Column(Integer, nullable=False)
    method = Column(String(30), nullable=False, default="bank_transfer")
    reference = Column(String(80), nullable=True)
    status = Column(String(30), nullable=False, default="received")
    paid_at = Column(DateTime, nullable=True)
