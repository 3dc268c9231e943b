from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from app.core.database import Base
from app.models.mixins import CompanyOwnedMixin


class Quotation(CompanyOwnedMixin, Base):
    __tablename__ = "quotations"

    quotation_number = Column(String(40), nullable=False, index=True)
    customer_id = Column(Integer, nullable=True, index=True)
    customer_name = Column(String(120), nullable=False)
    items = Column(JSON, nullable=False, default=list)
    total_cents = Column(Integer, nullable=False, default=0)
    status = Column(String(30), nullable=False, default="draft")
    valid_until = Column(DateTime, nullable=True)
    terms = Column(Text, nullable=True)
