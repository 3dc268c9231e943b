from sqlalchemy import JSON, Column, Integer, String

from app.core.database import Base
from app.models.mixins import CompanyOwnedMixin


class Order(CompanyOwnedMixin, Base):
    __tablename__ = "orders"

    order_number = Column(String(40), nullable=False, index=True)
    customer_name = Column(String(120), nullable=False)
    customer_company = Column(String(160), nullable=True)
    quotation_id = Column(Integer, nullable=True)
    items = Column(JSON, nullable=False, default=list)
    amount_cents = Column(Integer, nullable=False, default=0)
    status = Column(String(30), nullable=False, default="processing")
